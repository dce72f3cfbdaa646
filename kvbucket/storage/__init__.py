"""Storage abstraction (S3-compatible bucket or local filesystem)."""

from kvbucket.storage.base import Object, Storage, StorageType
from kvbucket.storage.factory import new_storage
from kvbucket.storage.local import FileStorage
from kvbucket.storage.options import (
    DEFAULT_DIR_STORAGE_PATH,
    Option,
    Options,
    S3Options,
    with_backends,
    with_prefix,
    with_s3_config,
    with_tracer,
)
from kvbucket.storage.s3 import S3Storage
from kvbucket.storage.traced import TracingStorage

__all__ = [
    "Object",
    "Storage",
    "StorageType",
    "new_storage",
    "FileStorage",
    "S3Storage",
    "TracingStorage",
    "DEFAULT_DIR_STORAGE_PATH",
    "Option",
    "Options",
    "S3Options",
    "with_backends",
    "with_prefix",
    "with_s3_config",
    "with_tracer",
]
