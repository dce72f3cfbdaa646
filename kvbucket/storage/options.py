"""Storage options assembled from option functions and validated once."""

from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import Any, Callable, Optional

from pydantic import BaseModel, Field, validator

from kvbucket.exceptions import (
    InvalidConfigurationError,
    MissingBackendConfigError,
    UnsafePrefixError,
    UnsupportedBackendError,
)
from kvbucket.storage.base import StorageType

SUPPORTED_STORAGE_TYPES = frozenset(kind.value for kind in StorageType)

DEFAULT_DIR_STORAGE_PATH = str(Path(tempfile.gettempdir()) / "kvbucket")

# Roots shallower than this (e.g. "/tmp", "/home") are refused.
MIN_PREFIX_SEGMENTS = 2


class S3Options(BaseModel):
    endpoint: str = ""
    region: str = ""
    key: str = ""
    secret: str = ""
    bucket: str = ""
    path_prefix: str = ""

    @validator("endpoint", "region", "key", "secret", "bucket", "path_prefix", pre=True)
    def _none_to_empty(cls, value: Any) -> str:  # noqa: D401
        return "" if value is None else value

    def check(self) -> None:
        """Raise InvalidConfigurationError when a required setting is empty."""
        if not self.region:
            raise InvalidConfigurationError("region is required", {"field": "region"})
        if not self.key or not self.secret:
            raise InvalidConfigurationError("key or secret is required", {"field": "key"})
        if not self.bucket:
            raise InvalidConfigurationError("bucket is required", {"field": "bucket"})


class Options(BaseModel):
    backends: Optional[str] = None
    path_prefix: str = ""
    tracer: Optional[Any] = None
    s3opts: Optional[S3Options] = Field(default=None)

    def validate_and_fix(self) -> None:
        """Check the draft for consistency, filling in defaults.

        Raises:
            UnsupportedBackendError: Backend kind unset or unknown.
            MissingBackendConfigError: S3 selected without S3 settings.
            InvalidConfigurationError: S3 settings incomplete.
            UnsafePrefixError: Filesystem root with fewer than two segments.
        """
        kind = str(self.backends) if self.backends is not None else ""
        if kind not in SUPPORTED_STORAGE_TYPES:
            raise UnsupportedBackendError("unsupported backends", {"backends": kind})
        self.backends = kind

        if kind == StorageType.S3.value:
            if self.s3opts is None:
                raise MissingBackendConfigError("no S3 config provided")
            self.s3opts.check()
            return

        if not self.path_prefix:
            self.path_prefix = DEFAULT_DIR_STORAGE_PATH
        segments = [part for part in os.path.normpath(self.path_prefix).split(os.sep) if part]
        if len(segments) < MIN_PREFIX_SEGMENTS:
            raise UnsafePrefixError(
                f"path prefix must have at least {MIN_PREFIX_SEGMENTS} segments",
                {"path_prefix": self.path_prefix},
            )


Option = Callable[[Options], None]


def with_backends(backends: StorageType | str) -> Option:
    def apply(opts: Options) -> None:
        opts.backends = str(backends)
    return apply


def with_prefix(prefix: str) -> Option:
    def apply(opts: Options) -> None:
        opts.path_prefix = prefix
    return apply


def with_tracer(tracer: Any) -> Option:
    def apply(opts: Options) -> None:
        opts.tracer = tracer
    return apply


def with_s3_config(s3opts: S3Options) -> Option:
    def apply(opts: Options) -> None:
        opts.s3opts = s3opts
    return apply


__all__ = [
    "S3Options",
    "Options",
    "Option",
    "SUPPORTED_STORAGE_TYPES",
    "DEFAULT_DIR_STORAGE_PATH",
    "with_backends",
    "with_prefix",
    "with_tracer",
    "with_s3_config",
]
