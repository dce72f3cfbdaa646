from __future__ import annotations

from typing import Any, Optional, Sequence

from opentelemetry.trace import Tracer

from kvbucket.context import Context
from kvbucket.storage.base import Object, Storage


class TracingStorage(Storage):
    """Wraps a storage and records one span per put/get/exists/delete/list.

    Results and exceptions of the wrapped storage pass through unchanged.
    ``purge`` and ``get_multiple`` are forwarded without a span. Without a
    tracer every call is forwarded as is.
    """

    def __init__(self, storage: Storage, tracer: Optional[Tracer]) -> None:
        self._storage = storage
        self._tracer = tracer

    @property
    def storage(self) -> Storage:
        return self._storage

    def _span(self, name: str, attributes: dict[str, Any]):
        return self._tracer.start_as_current_span(name, attributes=attributes)

    def put(self, key: str, data: bytes, ctx: Context | None = None) -> None:
        if self._tracer is None:
            return self._storage.put(key, data, ctx=ctx)
        with self._span("put", {"key": key}):
            return self._storage.put(key, data, ctx=ctx)

    def get(self, key: str, ctx: Context | None = None) -> bytes:
        if self._tracer is None:
            return self._storage.get(key, ctx=ctx)
        with self._span("get", {"key": key}):
            return self._storage.get(key, ctx=ctx)

    def get_multiple(self, keys: Sequence[str], ctx: Context | None = None) -> list[Object]:
        return self._storage.get_multiple(keys, ctx=ctx)

    def exists(self, key: str, ctx: Context | None = None) -> bool:
        if self._tracer is None:
            return self._storage.exists(key, ctx=ctx)
        with self._span("exists", {"key": key}):
            return self._storage.exists(key, ctx=ctx)

    def delete(self, key: str, ctx: Context | None = None) -> None:
        if self._tracer is None:
            return self._storage.delete(key, ctx=ctx)
        with self._span("delete", {"key": key}):
            return self._storage.delete(key, ctx=ctx)

    def list(self, prefix: str, ctx: Context | None = None) -> list[Object]:
        if self._tracer is None:
            return self._storage.list(prefix, ctx=ctx)
        with self._span("list", {"prefix": prefix}):
            return self._storage.list(prefix, ctx=ctx)

    def purge(self, ctx: Context | None = None) -> None:
        return self._storage.purge(ctx=ctx)


__all__ = ["TracingStorage"]
