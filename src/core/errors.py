"""Review ingest exception hierarchy.

This module defines traceable domain errors with clear boundaries.
Run-level, file-level and record-level failures each get their own type.
"""

from __future__ import annotations


class ReviewIngestError(Exception):
    """Base exception for all review ingest failures."""


class IngestConfigError(ReviewIngestError):
    """Raised for invalid or missing runtime configuration."""


class ObjectStoreError(ReviewIngestError):
    """Raised when listing or reading objects from S3 fails."""


class EmptyBodyError(ObjectStoreError):
    """Raised when S3 returns an object without a payload."""


class StreamReadError(ReviewIngestError):
    """Raised when an object stream fails while lines are being read."""


class TransformError(ReviewIngestError):
    """Raised when a raw record lacks the structure needed for mapping."""


class ReviewStoreError(ReviewIngestError):
    """Raised for review persistence failures."""


class LedgerWriteError(ReviewStoreError):
    """Raised when a processed-file marker cannot be written."""
