"""Core constants used across review ingest modules.

This module centralizes non-domain-specific constants.
Keeping values here avoids magic literals in business logic.
"""

from __future__ import annotations

from pathlib import Path

DEFAULT_DATA_ROOT = Path(".review_ingest")
DATABASE_FILE_NAME = "reviews.sqlite3"
DEFAULT_KEY_PREFIX = ""
DEFAULT_CONCURRENCY_LIMIT = 3
SUPPORTED_LINE_EXTENSIONS = (".jl", ".jsonl")
LIST_PAGE_SIZE = 1000
STREAM_CHUNK_SIZE = 64 * 1024
MALFORMED_LINE_PREVIEW_LENGTH = 100
MIN_RATING = 0.0
MAX_RATING = 10.0
REQUIRED_REVIEW_FIELDS = (
    "hotel_id",
    "platform",
    "hotel_name",
    "hotel_review_id",
    "provider_id",
    "rating",
    "review_comments",
    "review_date",
)
