from __future__ import annotations

import posixpath
from contextlib import closing
from typing import Any, Optional

import boto3
from botocore.exceptions import ClientError
from loguru import logger

from kvbucket.context import Context, ensure_context
from kvbucket.exceptions import InvalidKeyError, NotFoundError
from kvbucket.storage.base import Object, Storage
from kvbucket.storage.options import S3Options

_NOT_FOUND_CODES = frozenset({"404", "NoSuchKey", "NotFound"})


def _is_not_found(exc: ClientError) -> bool:
    return str(exc.response.get("Error", {}).get("Code", "")) in _NOT_FOUND_CODES


class S3Storage(Storage):
    """Storage on an S3-compatible bucket; every key is an object under a prefix.

    Objects are written with a public-read ACL and always overwritten.
    Bulk retrieval is not available: ``get_multiple`` raises
    UnsupportedOperationError, issue repeated ``get`` calls instead.
    """

    def __init__(self, opts: S3Options, client: Optional[Any] = None) -> None:
        self.bucket = opts.bucket
        prefix = posixpath.normpath(opts.path_prefix.strip("/")) if opts.path_prefix.strip("/") else ""
        self.prefix = "" if prefix == "." else prefix
        if client is None:
            session = boto3.session.Session(
                aws_access_key_id=opts.key,
                aws_secret_access_key=opts.secret,
                region_name=opts.region,
            )
            client = session.client("s3", endpoint_url=opts.endpoint or None)
        self.client = client

    def _key(self, key: str) -> str:
        """Join key to the prefix and clean the result.

        A trailing slash survives so prefix searches stay directory-like.
        """
        relative = key.lstrip("/")
        joined = posixpath.join(self.prefix, relative) if self.prefix else relative
        if not joined:
            return ""
        s3_key = posixpath.normpath(joined)
        if s3_key == ".":
            s3_key = ""
        if s3_key == ".." or s3_key.startswith("../"):
            raise InvalidKeyError("key resolves outside the storage prefix", {"key": key})
        if self.prefix and s3_key != self.prefix and not s3_key.startswith(self.prefix + "/"):
            raise InvalidKeyError("key resolves outside the storage prefix", {"key": key})
        if joined.endswith("/") and s3_key:
            s3_key += "/"
        return s3_key

    def _object_key(self, key: str) -> str:
        s3_key = self._key(key)
        if not s3_key.strip("/") or s3_key.rstrip("/") == self.prefix:
            raise InvalidKeyError("key is required", {"key": key})
        return s3_key

    def put(self, key: str, data: bytes, ctx: Context | None = None) -> None:
        s3_key = self._object_key(key)
        ensure_context(ctx).check()
        self.client.put_object(
            ACL="public-read",
            Bucket=self.bucket,
            Key=s3_key,
            Body=data,
        )
        logger.debug(f"S3 put: s3://{self.bucket}/{s3_key} ({len(data)} bytes)")

    def get(self, key: str, ctx: Context | None = None) -> bytes:
        s3_key = self._object_key(key)
        ctx = ensure_context(ctx)
        ctx.check()
        try:
            response = self.client.get_object(Bucket=self.bucket, Key=s3_key)
        except ClientError as exc:
            if _is_not_found(exc):
                raise NotFoundError(f"key not found: {key}", {"key": key, "bucket": self.bucket}) from exc
            raise
        with closing(response["Body"]) as body:
            ctx.check()
            return body.read()

    def exists(self, key: str, ctx: Context | None = None) -> bool:
        s3_key = self._object_key(key)
        ensure_context(ctx).check()
        try:
            self.client.head_object(Bucket=self.bucket, Key=s3_key)
        except ClientError as exc:
            if _is_not_found(exc):
                return False
            raise
        return True

    def list(self, prefix: str, ctx: Context | None = None) -> list[Object]:
        """List objects whose key starts with ``join(prefix, prefix_arg)``.

        An empty ``prefix_arg`` searches ``prefix + "/"``, so the single object
        stored at the bare prefix path (the one ``purge`` deletes) and sibling
        prefixes such as ``prefix-old`` are not listed.
        """
        ctx = ensure_context(ctx)
        search_path = self._key(prefix)
        paginator = self.client.get_paginator("list_objects_v2")
        results: list[Object] = []
        ctx.check()
        for page in paginator.paginate(Bucket=self.bucket, Prefix=search_path):
            for item in page.get("Contents", []):
                results.append(Object(key=item["Key"], size=int(item.get("Size", 0))))
            ctx.check()
        return results

    def delete(self, key: str, ctx: Context | None = None) -> None:
        s3_key = self._object_key(key)
        ensure_context(ctx).check()
        self.client.delete_object(Bucket=self.bucket, Key=s3_key)
        logger.debug(f"S3 delete: s3://{self.bucket}/{s3_key}")

    def purge(self, ctx: Context | None = None) -> None:
        """Delete the single object stored at the prefix path.

        Objects below the prefix are left in place, unlike FileStorage.purge.
        """
        if not self.prefix:
            raise InvalidKeyError("purge requires a path prefix", {"bucket": self.bucket})
        ensure_context(ctx).check()
        self.client.delete_object(Bucket=self.bucket, Key=self.prefix)
        logger.debug(f"S3 purge: s3://{self.bucket}/{self.prefix}")


__all__ = ["S3Storage"]
