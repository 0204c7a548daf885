"""Unit tests for the S3 object store wrapper."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from core.config import IngestConfig
from core.errors import EmptyBodyError, IngestConfigError, ObjectStoreError
from ingest.object_store import S3ObjectStore, create_s3_client, is_supported_key
from tests.fake_s3 import FIXED_MODIFIED, FakeS3Client, client_error


def test_list_files_keeps_json_lines_keys_only() -> None:
    """Listing should keep .jl/.jsonl keys and drop everything else."""
    client = FakeS3Client(
        {
            "raw/a.jl": b"{}",
            "raw/b.jsonl": b"{}",
            "raw/c.json": b"{}",
            "raw/readme.txt": b"x",
        }
    )
    store = S3ObjectStore(client)

    keys = store.list_files("reviews", "raw/")

    assert keys == ["raw/a.jl", "raw/b.jsonl"]


def test_list_files_excludes_prefix_marker() -> None:
    """A key equal to the prefix is a directory marker, not a file."""
    client = FakeS3Client({"raw.jl": b"", "raw.jl/part-1.jl": b"{}"})
    store = S3ObjectStore(client)

    keys = store.list_files("reviews", "raw.jl")

    assert keys == ["raw.jl/part-1.jl"]


def test_list_files_follows_every_page() -> None:
    """Listing should accumulate keys across all pages."""
    objects = {f"raw/{index:03d}.jl": b"{}" for index in range(7)}
    client = FakeS3Client(objects, page_size=3)
    store = S3ObjectStore(client)

    keys = store.list_files("reviews", "raw/")

    assert len(keys) == 7 and client.pages_served == 3


def test_list_candidates_carries_listing_metadata() -> None:
    """Candidates should include size and last-modified from the listing."""
    client = FakeS3Client({"raw/a.jl": b"12345"})
    store = S3ObjectStore(client)

    candidate = store.list_candidates("reviews", "raw/")[0]

    assert (candidate.size_bytes, candidate.last_modified) == (5, FIXED_MODIFIED)


def test_list_files_raises_object_store_error_on_failure() -> None:
    """Listing failures should surface instead of returning partial results."""
    client = FakeS3Client({"raw/a.jl": b"{}"})
    client.list_error = client_error("AccessDenied", "ListObjectsV2")
    store = S3ObjectStore(client)

    with pytest.raises(ObjectStoreError):
        store.list_files("reviews", "raw/")


def test_open_stream_returns_body() -> None:
    """Opening a stream should return the object body."""
    client = FakeS3Client({"raw/a.jl": b'{"a": 1}\n'})
    store = S3ObjectStore(client)

    body = store.open_stream("reviews", "raw/a.jl")

    assert body.read() == b'{"a": 1}\n'


def test_open_stream_raises_for_missing_body() -> None:
    """A response without a body should raise EmptyBodyError."""
    client = FakeS3Client({"raw/a.jl": b"{}"})
    client.missing_body.add("raw/a.jl")
    store = S3ObjectStore(client)

    with pytest.raises(EmptyBodyError):
        store.open_stream("reviews", "raw/a.jl")


def test_open_stream_wraps_client_errors() -> None:
    """Missing objects should raise ObjectStoreError."""
    store = S3ObjectStore(FakeS3Client())

    with pytest.raises(ObjectStoreError):
        store.open_stream("reviews", "raw/missing.jl")


def test_get_metadata_reads_size_and_timestamp() -> None:
    """Metadata should mirror the head response."""
    store = S3ObjectStore(FakeS3Client({"raw/a.jl": b"abc"}))

    metadata = store.get_metadata("reviews", "raw/a.jl")

    assert (metadata.size_bytes, metadata.last_modified) == (3, FIXED_MODIFIED)


def test_get_metadata_defaults_missing_fields() -> None:
    """Missing size and timestamp should default to 0 and now."""

    class _BareHeadClient(FakeS3Client):
        def head_object(self, Bucket: str, Key: str) -> dict:
            return {}

    before = datetime.now(timezone.utc)
    metadata = S3ObjectStore(_BareHeadClient()).get_metadata("reviews", "raw/a.jl")

    assert metadata.size_bytes == 0 and metadata.last_modified >= before


@pytest.mark.parametrize(
    ("key", "expected"),
    [("a.jl", True), ("a.jsonl", True), ("a.json", False), ("a.JL", False), ("jl", False)],
)
def test_is_supported_key(key: str, expected: bool) -> None:
    """Only exact .jl and .jsonl suffixes are ingestible."""
    assert is_supported_key(key) is expected


def test_list_files_raises_when_a_later_page_fails() -> None:
    """A failure after the first page should not return the keys seen so far."""
    objects = {f"raw/{index:03d}.jl": b"{}" for index in range(7)}
    client = FakeS3Client(objects, page_size=3)
    client.list_error = client_error("SlowDown", "ListObjectsV2")
    client.list_error_after_pages = 1
    store = S3ObjectStore(client)

    with pytest.raises(ObjectStoreError):
        store.list_files("reviews", "raw/")

    assert client.pages_served == 1


def test_create_s3_client_rejects_unknown_profile(tmp_path, monkeypatch: pytest.MonkeyPatch) -> None:
    """An unknown AWS profile should surface as a config error."""
    monkeypatch.setenv("AWS_CONFIG_FILE", str(tmp_path / "config"))
    monkeypatch.setenv("AWS_SHARED_CREDENTIALS_FILE", str(tmp_path / "credentials"))
    config = IngestConfig(
        bucket="reviews",
        key_prefix="",
        concurrency_limit=1,
        mark_empty_files=False,
        s3_region="us-east-1",
        s3_profile="no-such-profile",
        data_root=tmp_path,
    )

    with pytest.raises(IngestConfigError, match="no-such-profile"):
        create_s3_client(config)
