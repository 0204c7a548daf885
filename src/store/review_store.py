"""SQLite-backed review persistence and processed-file ledger.

This module stores validated reviews and one marker per ingested file.
A single connection is shared by worker threads behind a lock.
"""

from __future__ import annotations

from datetime import datetime, timezone
import json
from pathlib import Path
import sqlite3
import threading
from typing import Sequence

from core.errors import LedgerWriteError, ReviewStoreError
from core.logging_config import get_logger
from core.types import (
    NormalizedReview,
    PlatformStats,
    ProcessedFileMarker,
    ReviewStats,
)

_LOGGER = get_logger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS reviews (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    file_key TEXT NOT NULL,
    hotel_id INTEGER NOT NULL,
    platform TEXT NOT NULL,
    hotel_name TEXT NOT NULL,
    hotel_review_id INTEGER NOT NULL,
    provider_id INTEGER NOT NULL,
    rating REAL NOT NULL,
    review_comments TEXT NOT NULL,
    review_date TEXT NOT NULL,
    review_title TEXT,
    formatted_rating TEXT,
    formatted_review_date TEXT,
    rating_text TEXT,
    check_in_date_month_and_year TEXT,
    encrypted_review_data TEXT,
    responder_name TEXT,
    response_date_text TEXT,
    response_translate_source TEXT,
    formatted_response_date TEXT,
    review_negatives TEXT,
    review_positives TEXT,
    review_provider_logo TEXT,
    review_provider_text TEXT,
    translate_source TEXT,
    translate_target TEXT,
    original_title TEXT,
    original_comment TEXT,
    reviewer_country_name TEXT,
    reviewer_display_name TEXT,
    reviewer_flag_name TEXT,
    reviewer_group_name TEXT,
    room_type_name TEXT,
    reviewer_country_id INTEGER,
    length_of_stay INTEGER,
    review_group_id INTEGER,
    room_type_id INTEGER,
    reviewer_reviewed_count INTEGER,
    is_expert_reviewer INTEGER NOT NULL DEFAULT 0,
    is_show_global_icon INTEGER NOT NULL DEFAULT 0,
    is_show_reviewed_count INTEGER NOT NULL DEFAULT 0,
    overall_by_providers TEXT,
    created_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_reviews_hotel_platform ON reviews (hotel_id, platform);
CREATE INDEX IF NOT EXISTS idx_reviews_review_date ON reviews (review_date);
CREATE INDEX IF NOT EXISTS idx_reviews_provider ON reviews (provider_id);
CREATE TABLE IF NOT EXISTS processed_files (
    file_key TEXT PRIMARY KEY,
    processed_at TEXT NOT NULL,
    record_count INTEGER NOT NULL DEFAULT 0
);
"""

_REVIEW_COLUMNS = (
    "file_key",
    "hotel_id",
    "platform",
    "hotel_name",
    "hotel_review_id",
    "provider_id",
    "rating",
    "review_comments",
    "review_date",
    "review_title",
    "formatted_rating",
    "formatted_review_date",
    "rating_text",
    "check_in_date_month_and_year",
    "encrypted_review_data",
    "responder_name",
    "response_date_text",
    "response_translate_source",
    "formatted_response_date",
    "review_negatives",
    "review_positives",
    "review_provider_logo",
    "review_provider_text",
    "translate_source",
    "translate_target",
    "original_title",
    "original_comment",
    "reviewer_country_name",
    "reviewer_display_name",
    "reviewer_flag_name",
    "reviewer_group_name",
    "room_type_name",
    "reviewer_country_id",
    "length_of_stay",
    "review_group_id",
    "room_type_id",
    "reviewer_reviewed_count",
    "is_expert_reviewer",
    "is_show_global_icon",
    "is_show_reviewed_count",
    "overall_by_providers",
    "created_at",
)


class ReviewStore:
    """Review table plus processed-file ledger in one SQLite database."""

    def __init__(self, db_path: Path | str) -> None:
        if str(db_path) != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(str(db_path), check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._lock = threading.Lock()
        with self._lock:
            self._conn.executescript(_SCHEMA)
            self._conn.commit()

    def close(self) -> None:
        """Close the underlying connection."""
        with self._lock:
            self._conn.close()

    def is_processed(self, file_key: str) -> bool:
        """Return whether a marker exists for the file."""
        with self._lock:
            row = self._conn.execute(
                "SELECT 1 FROM processed_files WHERE file_key = ?", (file_key,)
            ).fetchone()
        return row is not None

    def mark_processed(self, file_key: str, record_count: int) -> ProcessedFileMarker:
        """Upsert the processed marker for a file.

        Raises:
            LedgerWriteError: If the marker cannot be written.
        """
        marker = ProcessedFileMarker(
            file_key=file_key,
            processed_at=datetime.now(timezone.utc),
            record_count=record_count,
        )
        try:
            with self._lock, self._conn:
                self._conn.execute(
                    """
                    INSERT INTO processed_files (file_key, processed_at, record_count)
                    VALUES (?, ?, ?)
                    ON CONFLICT(file_key) DO UPDATE SET
                        processed_at = excluded.processed_at,
                        record_count = excluded.record_count
                    """,
                    (marker.file_key, marker.processed_at.isoformat(), marker.record_count),
                )
        except sqlite3.Error as error:
            _LOGGER.error("mark_processed_failed", file_key=file_key, error=str(error))
            raise LedgerWriteError(
                f"Failed to mark {file_key} as processed: {error}. "
                "The file will be retried on the next run."
            ) from error
        return marker

    def get_marker(self, file_key: str) -> ProcessedFileMarker | None:
        """Return the processed marker for a file if one exists."""
        with self._lock:
            row = self._conn.execute(
                "SELECT file_key, processed_at, record_count FROM processed_files "
                "WHERE file_key = ?",
                (file_key,),
            ).fetchone()
        if row is None:
            return None
        return ProcessedFileMarker(
            file_key=row["file_key"],
            processed_at=datetime.fromisoformat(row["processed_at"]),
            record_count=row["record_count"],
        )

    def store_reviews(self, reviews: Sequence[NormalizedReview], file_key: str) -> int:
        """Insert reviews from one file in a single transaction.

        Returns:
            Number of rows inserted.

        Raises:
            ReviewStoreError: If the insert fails.
        """
        if not reviews:
            return 0
        created_at = datetime.now(timezone.utc).isoformat()
        rows = [_review_row(review, file_key, created_at) for review in reviews]
        placeholders = ", ".join("?" for _ in _REVIEW_COLUMNS)
        statement = (
            f"INSERT INTO reviews ({', '.join(_REVIEW_COLUMNS)}) VALUES ({placeholders})"
        )
        try:
            with self._lock, self._conn:
                self._conn.executemany(statement, rows)
        except sqlite3.Error as error:
            _LOGGER.error("store_reviews_failed", file_key=file_key, error=str(error))
            raise ReviewStoreError(
                f"Failed to store {len(rows)} reviews from {file_key}: {error}."
            ) from error
        _LOGGER.info("reviews_stored", file_key=file_key, review_count=len(rows))
        return len(rows)

    def review_stats(self) -> ReviewStats:
        """Return review totals and per-platform averages."""
        with self._lock:
            total_reviews = self._conn.execute("SELECT COUNT(*) AS c FROM reviews").fetchone()["c"]
            total_files = self._conn.execute(
                "SELECT COUNT(*) AS c FROM processed_files"
            ).fetchone()["c"]
            platform_rows = self._conn.execute(
                """
                SELECT platform, COUNT(*) AS review_count, AVG(rating) AS average_rating
                FROM reviews
                GROUP BY platform
                ORDER BY platform
                """
            ).fetchall()
        return ReviewStats(
            total_reviews=total_reviews,
            total_files=total_files,
            platform_stats=tuple(
                PlatformStats(
                    platform=row["platform"],
                    review_count=row["review_count"],
                    average_rating=round(row["average_rating"], 2),
                )
                for row in platform_rows
            ),
        )


def _review_row(review: NormalizedReview, file_key: str, created_at: str) -> tuple[object, ...]:
    """Flatten a review into column order for insertion."""
    reviewer = review.reviewer
    return (
        file_key,
        review.hotel_id,
        review.platform,
        review.hotel_name,
        review.hotel_review_id,
        review.provider_id,
        review.rating,
        review.review_comments,
        review.review_date.isoformat() if review.review_date else None,
        review.review_title,
        review.formatted_rating,
        review.formatted_review_date,
        review.rating_text,
        review.check_in_date_month_and_year,
        review.encrypted_review_data,
        review.responder_name,
        review.response_date_text,
        review.response_translate_source,
        review.formatted_response_date,
        review.review_negatives,
        review.review_positives,
        review.review_provider_logo,
        review.review_provider_text,
        review.translate_source,
        review.translate_target,
        review.original_title,
        review.original_comment,
        reviewer.country_name,
        reviewer.display_name,
        reviewer.flag_name,
        reviewer.review_group_name,
        reviewer.room_type_name,
        reviewer.country_id,
        reviewer.length_of_stay,
        reviewer.review_group_id,
        reviewer.room_type_id,
        reviewer.reviewed_count,
        int(reviewer.is_expert_reviewer),
        int(reviewer.is_show_global_icon),
        int(reviewer.is_show_reviewed_count),
        json.dumps(list(review.overall_by_providers)),
        created_at,
    )
