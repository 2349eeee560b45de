#!/usr/bin/env python3
"""Two clients contending for the same write lock.

Start a Locktopus server on 127.0.0.1:9009 (or set LOCKTOPUS_HOST /
LOCKTOPUS_PORT) before running this.
"""

import asyncio

from locktopus.core.client import LocktopusClient
from locktopus.core.models import Resource
from locktopus.core.settings import ClientSettings
from locktopus.utils.logging import get_logger

logger = get_logger("ContentionExample")


async def main():
    settings = ClientSettings.from_env()
    first = LocktopusClient.from_settings(settings)
    second = LocktopusClient.from_settings(settings)
    await first.connect()
    await second.connect()

    try:
        # First writer gets the lock straight away
        await first.lock(Resource.write("reports", "daily"))
        logger.info("first acquired=%s", first.is_acquired())

        # Second writer is queued behind it
        await second.lock(Resource.write("reports", "daily"))
        logger.info("second acquired=%s", second.is_acquired())

        waiter = asyncio.create_task(second.acquire())
        await asyncio.sleep(1)
        await first.release()
        logger.info("first released, second acquired=%s", await waiter)

        await second.release()
    finally:
        await first.close()
        await second.close()


if __name__ == "__main__":
    asyncio.run(main())
