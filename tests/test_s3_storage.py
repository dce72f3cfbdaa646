from __future__ import annotations

import io
import os

import boto3
import pytest
from botocore.exceptions import ClientError
from botocore.response import StreamingBody
from botocore.stub import Stubber

from kvbucket.context import Context
from kvbucket.exceptions import CancelledError, InvalidKeyError, NotFoundError, UnsupportedOperationError
from kvbucket.storage.base import Object
from kvbucket.storage.options import S3Options
from kvbucket.storage.s3 import S3Storage

BUCKET = "test-bucket"


@pytest.fixture()
def opts():
    return S3Options(
        endpoint="https://nyc3.digitaloceanspaces.com",
        region="us-east-1",
        key="access",
        secret="secret",
        bucket=BUCKET,
        path_prefix="/tests/s3-storage",
    )


@pytest.fixture()
def client():
    return boto3.client(
        "s3",
        region_name="us-east-1",
        aws_access_key_id="access",
        aws_secret_access_key="secret",
    )


@pytest.fixture()
def stubbed(opts, client):
    storage = S3Storage(opts, client=client)
    with Stubber(client) as stubber:
        yield storage, stubber
        stubber.assert_no_pending_responses()


def _body(data: bytes) -> tuple[StreamingBody, io.BytesIO]:
    raw = io.BytesIO(data)
    return StreamingBody(raw, len(data)), raw


def test_prefix_is_stripped_of_slashes(opts, client):
    storage = S3Storage(opts, client=client)

    assert storage.prefix == "tests/s3-storage"
    assert storage.bucket == BUCKET


def test_client_is_built_from_options(opts):
    storage = S3Storage(opts)

    assert storage.client.meta.region_name == "us-east-1"
    assert storage.client.meta.endpoint_url == "https://nyc3.digitaloceanspaces.com"


def test_put_writes_public_read_object(stubbed):
    storage, stubber = stubbed
    stubber.add_response(
        "put_object",
        {},
        {
            "ACL": "public-read",
            "Bucket": BUCKET,
            "Key": "tests/s3-storage/a/b.json",
            "Body": b'{"x": 1}',
        },
    )

    storage.put("a/b.json", b'{"x": 1}')


def test_get_reads_and_closes_body(stubbed):
    storage, stubber = stubbed
    body, raw = _body(b'{"x": 1}')
    stubber.add_response(
        "get_object",
        {"Body": body},
        {"Bucket": BUCKET, "Key": "tests/s3-storage/a/b.json"},
    )

    assert storage.get("a/b.json") == b'{"x": 1}'
    assert raw.closed


def test_get_closes_body_when_cancelled_mid_call(stubbed):
    storage, stubber = stubbed
    body, raw = _body(b"payload")
    stubber.add_response("get_object", {"Body": body}, {"Bucket": BUCKET, "Key": "tests/s3-storage/a.txt"})

    class CancelAfterCall(Context):
        calls = 0

        def check(self) -> None:
            self.calls += 1
            if self.calls > 1:
                self.cancel()
            super().check()

    with pytest.raises(CancelledError):
        storage.get("a.txt", ctx=CancelAfterCall())
    assert raw.closed


def test_get_missing_key_raises_not_found(stubbed):
    storage, stubber = stubbed
    stubber.add_client_error("get_object", service_error_code="NoSuchKey", http_status_code=404)

    with pytest.raises(NotFoundError) as exc_info:
        storage.get("missing.json")
    assert isinstance(exc_info.value.__cause__, ClientError)


def test_get_access_denied_propagates_unchanged(stubbed):
    storage, stubber = stubbed
    stubber.add_client_error("get_object", service_error_code="AccessDenied", http_status_code=403)

    with pytest.raises(ClientError) as exc_info:
        storage.get("secret.json")
    assert exc_info.value.response["Error"]["Code"] == "AccessDenied"


def test_exists_true(stubbed):
    storage, stubber = stubbed
    stubber.add_response("head_object", {}, {"Bucket": BUCKET, "Key": "tests/s3-storage/example1.json"})

    assert storage.exists("example1.json") is True


@pytest.mark.parametrize("code", ["404", "NotFound", "NoSuchKey"])
def test_exists_false_on_not_found(stubbed, code):
    storage, stubber = stubbed
    stubber.add_client_error("head_object", service_error_code=code, http_status_code=404)

    assert storage.exists("/abra/cadabra/non-existent.txt") is False


def test_exists_other_errors_propagate(stubbed):
    storage, stubber = stubbed
    stubber.add_client_error("head_object", service_error_code="403", http_status_code=403)

    with pytest.raises(ClientError):
        storage.exists("forbidden.txt")


def test_list_returns_key_and_size_across_pages(stubbed):
    storage, stubber = stubbed
    stubber.add_response(
        "list_objects_v2",
        {
            "IsTruncated": True,
            "NextContinuationToken": "page-2",
            "Contents": [
                {"Key": "tests/s3-storage/runs/example1.json", "Size": 28},
                {"Key": "tests/s3-storage/runs/example2.json", "Size": 29},
            ],
        },
        {"Bucket": BUCKET, "Prefix": "tests/s3-storage/runs"},
    )
    stubber.add_response(
        "list_objects_v2",
        {
            "IsTruncated": False,
            "Contents": [{"Key": "tests/s3-storage/runs/example3.json", "Size": 30}],
        },
        {"Bucket": BUCKET, "Prefix": "tests/s3-storage/runs", "ContinuationToken": "page-2"},
    )

    objects = storage.list("runs")

    assert objects == [
        Object(key="tests/s3-storage/runs/example1.json", size=28),
        Object(key="tests/s3-storage/runs/example2.json", size=29),
        Object(key="tests/s3-storage/runs/example3.json", size=30),
    ]


def test_list_empty_prefix_searches_storage_prefix(stubbed):
    storage, stubber = stubbed
    stubber.add_response(
        "list_objects_v2",
        {"IsTruncated": False},
        {"Bucket": BUCKET, "Prefix": "tests/s3-storage/"},
    )

    assert storage.list("") == []


def test_delete_under_prefix(stubbed):
    storage, stubber = stubbed
    stubber.add_response("delete_object", {}, {"Bucket": BUCKET, "Key": "tests/s3-storage/example1.json"})

    storage.delete("example1.json")


def test_purge_deletes_prefix_object(stubbed):
    storage, stubber = stubbed
    stubber.add_response("delete_object", {}, {"Bucket": BUCKET, "Key": "tests/s3-storage"})

    storage.purge()


def test_purge_without_prefix_is_rejected(client):
    opts = S3Options(region="us-east-1", key="access", secret="secret", bucket=BUCKET)
    storage = S3Storage(opts, client=client)

    with pytest.raises(InvalidKeyError):
        storage.purge()


def test_get_multiple_is_unsupported(opts, client):
    storage = S3Storage(opts, client=client)

    with pytest.raises(UnsupportedOperationError):
        storage.get_multiple(["a.txt"])


def test_empty_key_is_rejected_before_any_call(stubbed):
    storage, _ = stubbed

    with pytest.raises(InvalidKeyError):
        storage.put("", b"data")


def test_cancelled_context_makes_no_call(stubbed):
    storage, _ = stubbed
    ctx = Context()
    ctx.cancel()

    with pytest.raises(CancelledError):
        storage.put("a.txt", b"data", ctx=ctx)
    with pytest.raises(CancelledError):
        storage.exists("a.txt", ctx=ctx)
    with pytest.raises(CancelledError):
        storage.delete("a.txt", ctx=ctx)


@pytest.fixture(scope="module")
def live_storage():
    opts = S3Options(
        endpoint=os.getenv("TEST_S3_ENDPOINT", ""),
        region=os.getenv("TEST_S3_REGION", ""),
        key=os.getenv("TEST_S3_ACCESS_KEY", ""),
        secret=os.getenv("TEST_S3_SECRET_KEY", ""),
        bucket=os.getenv("TEST_S3_BUCKET", ""),
        path_prefix="/tests/s3-storage",
    )
    if not (opts.region and opts.key and opts.secret and opts.bucket):
        pytest.skip("TEST_S3_* environment variables are not set")
    storage = S3Storage(opts)
    yield storage
    storage.purge()


def test_live_bucket_roundtrip(live_storage):
    live_storage.put("example1.json", b'{"example": "hello world 1"}')
    live_storage.put("example2.json", b'{"example": "hello world 2"}')

    assert live_storage.exists("example1.json") is True
    assert live_storage.get("example2.json") == b'{"example": "hello world 2"}'
    assert len(live_storage.list("")) >= 2
    assert live_storage.exists("/abra/cadabra/non-existent.txt") is False

    live_storage.delete("example1.json")
    live_storage.delete("example2.json")

    with pytest.raises(NotFoundError):
        live_storage.get("example1.json")


@pytest.mark.parametrize(
    ("key", "expected"),
    [
        ("a/../b.json", "tests/s3-storage/b.json"),
        ("a//b", "tests/s3-storage/a/b"),
        ("./a/./b.json", "tests/s3-storage/a/b.json"),
    ],
)
def test_put_cleans_joined_key(stubbed, key, expected):
    storage, stubber = stubbed
    stubber.add_response(
        "put_object",
        {},
        {"ACL": "public-read", "Bucket": BUCKET, "Key": expected, "Body": b"data"},
    )

    storage.put(key, b"data")


def test_list_cleans_prefix_and_keeps_trailing_slash(stubbed):
    storage, stubber = stubbed
    stubber.add_response(
        "list_objects_v2",
        {"IsTruncated": False},
        {"Bucket": BUCKET, "Prefix": "tests/s3-storage/runs/"},
    )

    assert storage.list("runs//1/../") == []


@pytest.mark.parametrize("key", ["../outside.json", "a/../../outside.json", "a/.."])
def test_keys_escaping_prefix_are_rejected(stubbed, key):
    storage, _ = stubbed

    with pytest.raises(InvalidKeyError):
        storage.put(key, b"data")


def test_prefix_is_cleaned(client):
    opts = S3Options(region="us-east-1", key="access", secret="secret", bucket=BUCKET, path_prefix="/tests//s3-storage/")

    assert S3Storage(opts, client=client).prefix == "tests/s3-storage"
