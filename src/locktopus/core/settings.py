"""Client settings loader."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from locktopus.core.models import ConnectionOptions, build_address
from locktopus.utils.env import get_bool_env, get_int_env, get_str_env
from locktopus.utils.logging import resolve_level


class ClientSettings(BaseModel):
    """Where and how a client connects. ``url`` wins over the structured fields."""

    url: Optional[str] = None
    host: str = "127.0.0.1"
    port: int = Field(default=9009, ge=1, le=65535)
    namespace: str = "default"
    secure: bool = False
    log_level: str = "INFO"

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        resolve_level(value)
        return value.upper()

    def connection_options(self) -> ConnectionOptions:
        return ConnectionOptions(
            host=self.host,
            port=self.port,
            namespace=self.namespace,
            secure=self.secure,
        )

    def address(self) -> str:
        if self.url:
            return self.url
        return build_address(self.connection_options())

    @classmethod
    def from_file(cls, path: Path) -> "ClientSettings":
        data = yaml.safe_load(path.read_text()) or {}
        try:
            return cls.model_validate(data)
        except ValidationError as exc:
            raise ValueError(f"Invalid client settings: {exc}") from exc

    @classmethod
    def from_env(cls) -> "ClientSettings":
        data: Dict[str, Any] = {
            "url": get_str_env("LOCKTOPUS_URL"),
            "host": get_str_env("LOCKTOPUS_HOST"),
            "port": get_int_env("LOCKTOPUS_PORT"),
            "namespace": get_str_env("LOCKTOPUS_NAMESPACE"),
            "log_level": get_str_env("LOCKTOPUS_LOG_LEVEL"),
        }
        data = {key: value for key, value in data.items() if value is not None}
        data["secure"] = get_bool_env("LOCKTOPUS_SECURE", default=False)
        try:
            return cls.model_validate(data)
        except ValidationError as exc:
            raise ValueError(f"Invalid client settings: {exc}") from exc
