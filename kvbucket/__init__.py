"""Key/value storage over a local directory tree or an S3-compatible bucket.

Usage:
    from kvbucket import new_storage, setup_logging, with_backends, with_prefix

    setup_logging(level="DEBUG")  # kvbucket logs stay silent until enabled
    storage = new_storage(with_backends("file"), with_prefix("/data/storage"))
    storage.put("runs/1/metadata.json", b'{"x": 1}')
    storage.get("runs/1/metadata.json")
"""

from loguru import logger

from kvbucket.context import Context
from kvbucket.logging_config import setup_logging
from kvbucket.exceptions import (
    CancelledError,
    ConfigurationError,
    DeadlineExceededError,
    InvalidConfigurationError,
    InvalidKeyError,
    KvbucketError,
    MissingBackendConfigError,
    NotFoundError,
    StorageError,
    UnsafeConfigurationError,
    UnsafePrefixError,
    UnsupportedBackendError,
    UnsupportedOperationError,
)
from kvbucket.storage import (
    FileStorage,
    Object,
    Options,
    S3Options,
    S3Storage,
    Storage,
    StorageType,
    TracingStorage,
    new_storage,
    with_backends,
    with_prefix,
    with_s3_config,
    with_tracer,
)

__version__ = "0.1.0"

logger.disable(__name__)

__all__ = [
    "Context",
    "setup_logging",
    "CancelledError",
    "ConfigurationError",
    "DeadlineExceededError",
    "InvalidConfigurationError",
    "InvalidKeyError",
    "KvbucketError",
    "MissingBackendConfigError",
    "NotFoundError",
    "StorageError",
    "UnsafeConfigurationError",
    "UnsafePrefixError",
    "UnsupportedBackendError",
    "UnsupportedOperationError",
    "FileStorage",
    "Object",
    "Options",
    "S3Options",
    "S3Storage",
    "Storage",
    "StorageType",
    "TracingStorage",
    "new_storage",
    "with_backends",
    "with_prefix",
    "with_s3_config",
    "with_tracer",
]
