from __future__ import annotations

from loguru import logger

from kvbucket.exceptions import UnsupportedBackendError
from kvbucket.storage.base import Storage, StorageType
from kvbucket.storage.local import FileStorage
from kvbucket.storage.options import Option, Options
from kvbucket.storage.s3 import S3Storage
from kvbucket.storage.traced import TracingStorage


def new_storage(*options: Option) -> Storage:
    """Build a storage handle from option functions.

    Usage:
        storage = new_storage(with_backends("file"), with_prefix("/data/storage"))
        storage.put("runs/1/log.txt", b"Hello World")

    Raises:
        ConfigurationError: If the options are inconsistent; nothing is built.
    """
    opts = Options()
    for opt in options:
        opt(opts)

    opts.validate_and_fix()

    storage: Storage
    if opts.backends == StorageType.S3.value:
        storage = S3Storage(opts.s3opts)
        logger.info(f"Storage initialized: backends=s3 bucket={opts.s3opts.bucket}")
    elif opts.backends == StorageType.LOCAL.value:
        storage = FileStorage(opts.path_prefix)
        logger.info(f"Storage initialized: backends=file root={opts.path_prefix}")
    else:
        raise UnsupportedBackendError("unsupported backends", {"backends": str(opts.backends)})

    if opts.tracer is not None:
        return TracingStorage(storage, opts.tracer)

    return storage


__all__ = ["new_storage"]
