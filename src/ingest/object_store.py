"""S3 object store access for review ingestion.

This module lists candidate JSON-lines objects under a prefix, opens
object bodies as byte streams, and reports basic object metadata.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Iterator

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from core.config import IngestConfig
from core.constants import LIST_PAGE_SIZE, SUPPORTED_LINE_EXTENSIONS
from core.errors import EmptyBodyError, IngestConfigError, ObjectStoreError
from core.logging_config import get_logger
from core.types import CandidateFile, ObjectMetadata

_LOGGER = get_logger(__name__)


class S3ObjectStore:
    """Thin boto3 wrapper with ingest-specific error translation."""

    def __init__(self, s3_client: Any) -> None:
        self._client = s3_client

    @classmethod
    def from_config(cls, config: IngestConfig) -> "S3ObjectStore":
        """Build a store backed by a boto3 client for the configured session."""
        return cls(create_s3_client(config))

    def list_files(self, bucket: str, prefix: str) -> list[str]:
        """List candidate JSON-lines keys under a prefix.

        Args:
            bucket: Source bucket.
            prefix: Key prefix, possibly empty.

        Returns:
            Keys ending in a supported extension, in listing order.

        Raises:
            ObjectStoreError: If any listing page fails.
        """
        return [candidate.key for candidate in self.list_candidates(bucket, prefix)]

    def list_candidates(self, bucket: str, prefix: str) -> list[CandidateFile]:
        """List candidate files with the size and timestamp from the listing.

        Raises:
            ObjectStoreError: If any listing page fails.
        """
        candidates: list[CandidateFile] = []
        try:
            for obj in self._iter_objects(bucket, prefix):
                key = obj.get("Key")
                if not key or key == prefix or not is_supported_key(key):
                    continue
                candidates.append(
                    CandidateFile(
                        key=key,
                        size_bytes=int(obj.get("Size") or 0),
                        last_modified=obj.get("LastModified") or _utc_now(),
                    )
                )
        except (BotoCoreError, ClientError) as error:
            _LOGGER.error("s3_list_failed", bucket=bucket, prefix=prefix, error=str(error))
            raise ObjectStoreError(
                f"Failed to list s3://{bucket}/{prefix}: {error}. "
                "Check the bucket name and AWS credentials."
            ) from error
        _LOGGER.info("s3_files_listed", bucket=bucket, prefix=prefix, file_count=len(candidates))
        return candidates

    def open_stream(self, bucket: str, key: str) -> Any:
        """Open an object body as a readable byte stream.

        Raises:
            EmptyBodyError: If the response carries no body.
            ObjectStoreError: If the request fails.
        """
        try:
            response = self._client.get_object(Bucket=bucket, Key=key)
        except (BotoCoreError, ClientError) as error:
            _LOGGER.error("s3_get_object_failed", bucket=bucket, key=key, error=str(error))
            raise ObjectStoreError(
                f"Failed to open s3://{bucket}/{key}: {error}. "
                "Check that the object exists and is readable."
            ) from error
        body = response.get("Body")
        if body is None:
            raise EmptyBodyError(f"Empty response body for s3://{bucket}/{key}.")
        return body

    def get_metadata(self, bucket: str, key: str) -> ObjectMetadata:
        """Return object size and last-modified time.

        Missing fields fall back to 0 bytes and the current time.

        Raises:
            ObjectStoreError: If the request fails.
        """
        try:
            response = self._client.head_object(Bucket=bucket, Key=key)
        except (BotoCoreError, ClientError) as error:
            _LOGGER.error("s3_head_object_failed", bucket=bucket, key=key, error=str(error))
            raise ObjectStoreError(
                f"Failed to read metadata for s3://{bucket}/{key}: {error}."
            ) from error
        return ObjectMetadata(
            size_bytes=int(response.get("ContentLength") or 0),
            last_modified=response.get("LastModified") or _utc_now(),
        )

    def _iter_objects(self, bucket: str, prefix: str) -> Iterator[dict[str, Any]]:
        paginator = self._client.get_paginator("list_objects_v2")
        pages = paginator.paginate(
            Bucket=bucket,
            Prefix=prefix,
            PaginationConfig={"PageSize": LIST_PAGE_SIZE},
        )
        for page in pages:
            yield from page.get("Contents", [])


def create_s3_client(config: IngestConfig) -> Any:
    """Create a boto3 S3 client.

    Args:
        config: Runtime config containing optional profile/region.

    Returns:
        Boto3 S3 client.

    Raises:
        IngestConfigError: If the AWS profile or region cannot be resolved.
    """
    session_kwargs: dict[str, str] = {}
    if config.s3_profile:
        session_kwargs["profile_name"] = config.s3_profile
    if config.s3_region:
        session_kwargs["region_name"] = config.s3_region
    try:
        session = boto3.session.Session(**session_kwargs)
        return session.client("s3")
    except BotoCoreError as error:
        raise IngestConfigError(
            f"Failed to create S3 client: {error}. "
            "Check AWS_PROFILE, AWS_REGION and the AWS config files."
        ) from error


def is_supported_key(key: str) -> bool:
    """Return whether an S3 object key has a JSON-lines extension."""
    return key.endswith(SUPPORTED_LINE_EXTENSIONS)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)
