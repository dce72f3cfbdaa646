from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, validator

from kvbucket.exceptions import InvalidConfigurationError
from kvbucket.storage.options import Option, S3Options, with_backends, with_prefix, with_s3_config

# Load .env file from the working directory
_env_path = Path.cwd() / ".env"
if _env_path.exists():
    load_dotenv(_env_path)

ENV_PREFIX = "KVBUCKET_"


class StorageSettings(BaseModel):
    backends: Optional[str] = None
    path_prefix: str = ""
    s3: Optional[S3Options] = None

    @validator("backends", pre=True)
    def _normalize_backends(cls, value: Any) -> str | None:  # noqa: D401
        if value is None:
            return None
        return str(value).strip().lower() or None

    @classmethod
    def load(cls, path: Path | None = None) -> "StorageSettings":
        """Load storage settings from a YAML configuration file.

        The file may hold the settings at its top level or under a
        ``storage`` section.

        Args:
            path: Optional path to configuration file. If not provided, uses
                KVBUCKET_CONFIG environment variable or defaults to config/storage.yaml.

        Returns:
            StorageSettings instance with loaded configuration.

        Raises:
            FileNotFoundError: If configuration file does not exist.
            InvalidConfigurationError: If configuration is invalid.
        """
        config_path = path or Path(os.getenv(f"{ENV_PREFIX}CONFIG", "config/storage.yaml"))
        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")
        with config_path.open("r", encoding="utf-8") as fp:
            payload = yaml.safe_load(fp) or {}
        if not isinstance(payload, dict):
            raise InvalidConfigurationError("Invalid configuration: expected a mapping", {"path": str(config_path)})
        if isinstance(payload.get("storage"), dict):
            payload = payload["storage"]
        try:
            return cls(**payload)
        except Exception as exc:
            raise InvalidConfigurationError(f"Invalid configuration: {exc}", {"path": str(config_path)}) from exc

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "StorageSettings":
        """Build settings from KVBUCKET_* environment variables."""
        env = os.environ if environ is None else environ
        s3_fields = ("endpoint", "region", "key", "secret", "bucket", "path_prefix")
        s3_values = {
            field: env[f"{ENV_PREFIX}S3_{field.upper()}"]
            for field in s3_fields
            if f"{ENV_PREFIX}S3_{field.upper()}" in env
        }
        return cls(
            backends=env.get(f"{ENV_PREFIX}BACKENDS"),
            path_prefix=env.get(f"{ENV_PREFIX}PATH_PREFIX", ""),
            s3=S3Options(**s3_values) if s3_values else None,
        )

    def to_options(self) -> list[Option]:
        """Return option functions reproducing these settings for new_storage."""
        options: list[Option] = []
        if self.backends is not None:
            options.append(with_backends(self.backends))
        if self.path_prefix:
            options.append(with_prefix(self.path_prefix))
        if self.s3 is not None:
            options.append(with_s3_config(self.s3))
        return options


@lru_cache(maxsize=1)
def get_settings(path: str | None = None) -> StorageSettings:
    return StorageSettings.load(Path(path) if path else None)


__all__ = ["StorageSettings", "get_settings", "ENV_PREFIX"]
