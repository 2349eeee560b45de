"""CLI entrypoint to take a lock on a Locktopus server and hold it."""

from __future__ import annotations

import argparse
import asyncio
from pathlib import Path
from typing import List, Optional, Sequence

from locktopus.core.client import LocktopusClient
from locktopus.core.models import Resource
from locktopus.core.settings import ClientSettings
from locktopus.utils.logging import get_logger


logger = get_logger("LockCLI")


def _split_path(raw: str) -> List[str]:
    return [segment for segment in raw.split("/") if segment]


def _build_resources(reads: Sequence[str], writes: Sequence[str]) -> List[Resource]:
    resources = [Resource.read(*_split_path(item)) for item in reads]
    resources.extend(Resource.write(*_split_path(item)) for item in writes)
    return resources


def _parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Lock resources on a Locktopus server and hold them.")
    parser.add_argument("--config", type=Path, default=None, help="Path to client settings YAML (defaults to env)")
    parser.add_argument("--read", action="append", default=[], metavar="PATH", help="Resource path to read-lock, e.g. a/b")
    parser.add_argument("--write", action="append", default=[], metavar="PATH", help="Resource path to write-lock")
    parser.add_argument("--hold", type=float, default=5.0, metavar="SECONDS", help="How long to hold the lock")
    return parser.parse_args(argv)


async def main(argv: Optional[Sequence[str]] = None) -> None:
    args = _parse_args(argv)
    resources = _build_resources(args.read, args.write)
    if not resources:
        raise SystemExit("Nothing to lock: pass at least one --read or --write path")

    settings = ClientSettings.from_file(args.config) if args.config else ClientSettings.from_env()
    client = LocktopusClient.from_settings(settings)

    await client.connect()
    try:
        acquired = await client.lock(*resources)
        logger.info("Lock %s requested (acquired=%s)", client.get_lock_id(), acquired)
        if not acquired:
            logger.info("Waiting for lock %s", client.get_lock_id())
            await client.acquire()
        logger.info("Holding lock %s for %.1fs", client.get_lock_id(), args.hold)
        await asyncio.sleep(args.hold)
        await client.release()
        logger.info("Released lock %s", client.get_lock_id())
    finally:
        await client.close()


if __name__ == "__main__":
    asyncio.run(main())
