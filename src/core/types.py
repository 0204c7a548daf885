"""Shared typed models.

This module defines immutable data models used by the object store,
parser, transformer, orchestrator and store layers to keep the
interfaces between them explicit and stable.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Protocol, Sequence

RawRecord = Any


class RunState(str, Enum):
    """Lifecycle state of the ingestion orchestrator."""

    IDLE = "idle"
    RUNNING = "running"


@dataclass(frozen=True)
class CandidateFile:
    """Object discovered under the configured prefix.

    Attributes:
        key: Object key within the bucket.
        size_bytes: Object size reported by the listing.
        last_modified: Last modification time reported by the listing.
    """

    key: str
    size_bytes: int
    last_modified: datetime


@dataclass(frozen=True)
class ObjectMetadata:
    """Basic object metadata used for diagnostics."""

    size_bytes: int
    last_modified: datetime


@dataclass(frozen=True)
class ReviewerInfo:
    """Optional reviewer attributes attached to a review."""

    country_name: str | None = None
    display_name: str | None = None
    flag_name: str | None = None
    review_group_name: str | None = None
    room_type_name: str | None = None
    country_id: int | None = None
    length_of_stay: int | None = None
    review_group_id: int | None = None
    room_type_id: int | None = None
    reviewed_count: int | None = None
    is_expert_reviewer: bool = False
    is_show_global_icon: bool = False
    is_show_reviewed_count: bool = False


@dataclass(frozen=True)
class NormalizedReview:
    """Typed review record produced from one raw JSON line.

    Required fields may still be ``None`` straight out of the transformer;
    ``validate_review`` decides whether the record is kept.

    Attributes:
        hotel_id: Hotel identifier.
        platform: Source platform name, e.g. ``Agoda``.
        hotel_name: Hotel display name.
        hotel_review_id: Platform-side review identifier.
        provider_id: Review provider identifier.
        rating: Numeric rating in [0, 10].
        review_comments: Review body text.
        review_date: Parsed review timestamp (UTC).
        review_date_raw: Review timestamp exactly as found in the input.
    """

    hotel_id: int | None
    platform: str | None
    hotel_name: str | None
    hotel_review_id: int | None
    provider_id: int | None
    rating: float | None
    review_comments: str | None
    review_date: datetime | None
    review_date_raw: Any = None
    review_title: str | None = None
    formatted_rating: str | None = None
    formatted_review_date: str | None = None
    rating_text: str | None = None
    check_in_date_month_and_year: str | None = None
    encrypted_review_data: str | None = None
    responder_name: str | None = None
    response_date_text: str | None = None
    response_translate_source: str | None = None
    formatted_response_date: str | None = None
    review_negatives: str | None = None
    review_positives: str | None = None
    review_provider_logo: str | None = None
    review_provider_text: str | None = None
    translate_source: str | None = None
    translate_target: str | None = None
    original_title: str | None = None
    original_comment: str | None = None
    reviewer: ReviewerInfo = field(default_factory=ReviewerInfo)
    overall_by_providers: tuple[Any, ...] = ()


@dataclass(frozen=True)
class ProcessedFileMarker:
    """Ledger entry for a file that has been ingested."""

    file_key: str
    processed_at: datetime
    record_count: int


@dataclass(frozen=True)
class RunCounters:
    """Aggregate result of one ingestion run."""

    processed: int = 0
    skipped: int = 0
    errors: int = 0

    @property
    def total(self) -> int:
        """Number of files that were counted in any bucket."""
        return self.processed + self.skipped + self.errors

    def as_dict(self) -> dict[str, int]:
        """Return counters as a plain JSON-compatible mapping."""
        return asdict(self)


class FileStatus(str, Enum):
    """Terminal status of one file within a run."""

    PROCESSED = "processed"
    SKIPPED = "skipped"
    ERROR = "error"
    EMPTY = "empty"


@dataclass(frozen=True)
class FileOutcome:
    """Per-file result collected by the orchestrator.

    Attributes:
        key: Object key of the file.
        status: Terminal status for this run.
        record_count: Number of valid reviews persisted.
        error: Failure message when status is ``error``.
    """

    key: str
    status: FileStatus
    record_count: int = 0
    error: str | None = None


@dataclass(frozen=True)
class PlatformStats:
    """Review count and average rating for one platform."""

    platform: str
    review_count: int
    average_rating: float


@dataclass(frozen=True)
class ReviewStats:
    """Summary statistics supplied by the review store."""

    total_reviews: int
    total_files: int
    platform_stats: tuple[PlatformStats, ...] = ()

    def as_dict(self) -> dict[str, Any]:
        """Return stats as a plain JSON-compatible mapping."""
        return asdict(self)


@dataclass(frozen=True)
class IngestionStatus:
    """Status snapshot returned by the orchestrator."""

    is_running: bool
    stats: ReviewStats | None = None

    def as_dict(self) -> dict[str, Any]:
        """Return status as a plain JSON-compatible mapping."""
        return {
            "is_running": self.is_running,
            "stats": self.stats.as_dict() if self.stats else None,
        }


class ProcessedFileLedger(Protocol):
    """Durable record of which files have been ingested."""

    def is_processed(self, file_key: str) -> bool:
        ...

    def mark_processed(self, file_key: str, record_count: int) -> ProcessedFileMarker:
        ...


class ReviewSink(ProcessedFileLedger, Protocol):
    """Persistence collaborator receiving validated reviews."""

    def store_reviews(self, reviews: Sequence[NormalizedReview], file_key: str) -> int:
        ...

    def review_stats(self) -> ReviewStats:
        ...
