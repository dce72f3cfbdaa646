from __future__ import annotations

import os
import shutil
from pathlib import Path
from typing import Sequence

from loguru import logger

from kvbucket.context import Context, ensure_context
from kvbucket.exceptions import InvalidKeyError, NotFoundError
from kvbucket.storage.base import Object, Storage
from kvbucket.storage.options import DEFAULT_DIR_STORAGE_PATH

# Files are copied in chunks so a cancelled context can stop a large transfer.
CHUNK_SIZE = 1024 * 1024


class FileStorage(Storage):
    """Storage rooted at a directory; every key is a file below it.

    ``put`` only creates files: writing to a key that already exists leaves
    the existing file untouched and still succeeds.
    """

    def __init__(self, root: str | os.PathLike[str] = DEFAULT_DIR_STORAGE_PATH) -> None:
        self.root = Path(root)

    def _path(self, key: str) -> Path:
        relative = key.lstrip("/")
        if not relative:
            raise InvalidKeyError("key is required", {"key": key})
        root = os.path.normpath(self.root)
        path = os.path.normpath(os.path.join(root, relative))
        if os.path.commonpath([root, path]) != root or path == root:
            raise InvalidKeyError("key resolves outside the storage root", {"key": key})
        return Path(path)

    def put(self, key: str, data: bytes, ctx: Context | None = None) -> None:
        ctx = ensure_context(ctx)
        path = self._path(key)
        ctx.check()
        self.root.mkdir(mode=0o777, parents=True, exist_ok=True)
        path.parent.mkdir(mode=0o777, parents=True, exist_ok=True)
        try:
            fp = path.open("xb")
        except FileExistsError:
            logger.debug(f"Local put skipped, already exists: {key}")
            return
        try:
            with fp:
                view = memoryview(data)
                for offset in range(0, len(view), CHUNK_SIZE):
                    ctx.check()
                    fp.write(view[offset:offset + CHUNK_SIZE])
        except BaseException:
            # A partial file would block every later put of the same key.
            path.unlink(missing_ok=True)
            raise
        logger.debug(f"Local put: {key} ({len(data)} bytes)")

    def _read(self, path: Path, key: str, ctx: Context) -> bytes:
        ctx.check()
        try:
            fp = path.open("rb")
        except FileNotFoundError as exc:
            raise NotFoundError(f"key not found: {key}", {"key": key}) from exc
        chunks: list[bytes] = []
        with fp:
            while True:
                ctx.check()
                chunk = fp.read(CHUNK_SIZE)
                if not chunk:
                    break
                chunks.append(chunk)
        return b"".join(chunks)

    def get(self, key: str, ctx: Context | None = None) -> bytes:
        return self._read(self._path(key), key, ensure_context(ctx))

    def get_multiple(self, keys: Sequence[str], ctx: Context | None = None) -> list[Object]:
        ctx = ensure_context(ctx)
        results: list[Object] = []
        for key in keys:
            data = self._read(self._path(key), key, ctx)
            results.append(Object(key=key, size=len(data), data=data))
        return results

    def exists(self, key: str, ctx: Context | None = None) -> bool:
        path = self._path(key)
        ensure_context(ctx).check()
        try:
            path.stat()
        except FileNotFoundError:
            return False
        return True

    def list(self, prefix: str, ctx: Context | None = None) -> list[Object]:
        """List the entries of the directory ``prefix`` (one level).

        ``prefix`` is a directory path in its own right, not a key below the
        root. Entries are returned by bare name, sorted, without size or data.
        """
        ensure_context(ctx).check()
        with os.scandir(prefix) as entries:
            names = sorted(entry.name for entry in entries)
        return [Object(key=name) for name in names]

    def delete(self, key: str, ctx: Context | None = None) -> None:
        path = self._path(key)
        ensure_context(ctx).check()
        try:
            path.unlink()
        except FileNotFoundError as exc:
            raise NotFoundError(f"key not found: {key}", {"key": key}) from exc
        logger.debug(f"Local delete: {key}")

    def purge(self, ctx: Context | None = None) -> None:
        ensure_context(ctx).check()
        try:
            shutil.rmtree(self.root)
        except FileNotFoundError:
            return
        logger.debug(f"Local purge: {self.root}")


__all__ = ["FileStorage"]
