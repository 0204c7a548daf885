"""Runtime configuration model for review ingest.

This module owns all environment variable parsing and validation.
Other modules consume a typed config object instead of raw env reads.
"""

from __future__ import annotations

from dataclasses import dataclass
import os
from pathlib import Path

from core.constants import DATABASE_FILE_NAME, DEFAULT_CONCURRENCY_LIMIT, DEFAULT_DATA_ROOT
from core.errors import IngestConfigError

_TRUE_VALUES = ("1", "true", "yes", "on")


@dataclass(frozen=True)
class IngestConfig:
    """Validated runtime configuration.

    Attributes:
        bucket: Source S3 bucket. Optional here, required when a run starts.
        key_prefix: Key prefix that candidate files are listed under.
        concurrency_limit: Maximum number of files processed at once.
        mark_empty_files: Mark files yielding no valid reviews as processed.
        s3_region: Optional AWS region for S3 operations.
        s3_profile: Optional AWS profile for boto3 session initialization.
        data_root: Local root directory for the review database.
    """

    bucket: str | None
    key_prefix: str
    concurrency_limit: int
    mark_empty_files: bool
    s3_region: str | None
    s3_profile: str | None
    data_root: Path

    @classmethod
    def from_env(cls) -> "IngestConfig":
        """Build config from process environment variables.

        Returns:
            A validated config object.

        Raises:
            IngestConfigError: If environment values are invalid.
        """
        data_root_value = os.getenv("REVIEW_INGEST_DATA_ROOT", str(DEFAULT_DATA_ROOT))
        concurrency_value = os.getenv("INGESTION_CONCURRENCY", str(DEFAULT_CONCURRENCY_LIMIT))
        return cls(
            bucket=os.getenv("S3_BUCKET") or None,
            key_prefix=os.getenv("S3_PREFIX", ""),
            concurrency_limit=parse_concurrency_limit(concurrency_value),
            mark_empty_files=os.getenv("INGESTION_MARK_EMPTY_FILES", "").lower() in _TRUE_VALUES,
            s3_region=os.getenv("AWS_REGION"),
            s3_profile=os.getenv("AWS_PROFILE"),
            data_root=Path(data_root_value).expanduser().resolve(),
        )

    @property
    def database_path(self) -> Path:
        """Path of the SQLite review database."""
        return self.data_root / DATABASE_FILE_NAME

    def require_bucket(self) -> str:
        """Return the configured bucket.

        Raises:
            IngestConfigError: If no bucket is configured.
        """
        if not self.bucket:
            raise IngestConfigError(
                "S3_BUCKET is required for ingestion but is not set. "
                "Export S3_BUCKET or pass --bucket and retry."
            )
        return self.bucket


def parse_concurrency_limit(raw_value: str) -> int:
    """Parse the file concurrency limit.

    Args:
        raw_value: Raw string from environment or CLI.

    Returns:
        Parsed positive integer.

    Raises:
        IngestConfigError: If value is not a positive integer.
    """
    try:
        limit = int(raw_value)
    except ValueError as error:
        raise IngestConfigError(
            "Invalid INGESTION_CONCURRENCY value: "
            f"expected integer, got '{raw_value}'. "
            "Set INGESTION_CONCURRENCY to a positive number."
        ) from error
    if limit < 1:
        raise IngestConfigError(
            f"Invalid INGESTION_CONCURRENCY value: {limit}. "
            "Set INGESTION_CONCURRENCY to 1 or more."
        )
    return limit
