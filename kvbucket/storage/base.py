"""Storage contract shared by every backend.

Keys are slash-delimited logical paths. Each backend maps a key to its own
medium (a file under a root directory, an object under a bucket prefix) and
exposes the same operations, so callers depend only on :class:`Storage`.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Sequence

from kvbucket.context import Context
from kvbucket.exceptions import UnsupportedOperationError


class StorageType(str, Enum):
    S3 = "s3"
    LOCAL = "file"

    def __str__(self) -> str:
        return self.value


@dataclass
class Object:
    """One stored item as observed through listing or retrieval."""
    key: str
    size: int = 0
    data: Optional[bytes] = None

    def to_dict(self) -> dict[str, Any]:
        return {"key": self.key, "size": self.size, "data": self.data}


class Storage(ABC):
    """Abstract key/value storage.

    Every operation accepts an optional :class:`~kvbucket.context.Context`;
    a cancelled or expired context makes the call raise
    :class:`~kvbucket.exceptions.CancelledError` instead of doing I/O.
    Provider errors other than "not found" are raised unchanged.
    """

    @abstractmethod
    def put(self, key: str, data: bytes, ctx: Context | None = None) -> None:
        """Write data under key.

        Args:
            key: Logical path, e.g. 'runs/1/log.txt'
            data: Payload bytes
            ctx: Optional execution context
        """

    @abstractmethod
    def get(self, key: str, ctx: Context | None = None) -> bytes:
        """Return the full payload stored under key.

        Raises:
            NotFoundError: If the key is absent.
        """

    def get_multiple(self, keys: Sequence[str], ctx: Context | None = None) -> list[Object]:
        """Return one Object with data per key, in input order.

        Fails on the first unreadable key; partial results are discarded.
        Backends without bulk retrieval raise UnsupportedOperationError.
        """
        raise UnsupportedOperationError(
            f"{type(self).__name__} does not support get_multiple",
            {"backend": type(self).__name__},
        )

    @abstractmethod
    def exists(self, key: str, ctx: Context | None = None) -> bool:
        """Return whether key is present. Not-found is never an error."""

    @abstractmethod
    def delete(self, key: str, ctx: Context | None = None) -> None:
        """Remove the object stored under key."""

    @abstractmethod
    def list(self, prefix: str, ctx: Context | None = None) -> list[Object]:
        """Return the objects under prefix, without data."""

    @abstractmethod
    def purge(self, ctx: Context | None = None) -> None:
        """Remove everything under the storage root. Not recoverable."""


__all__ = ["StorageType", "Object", "Storage"]
