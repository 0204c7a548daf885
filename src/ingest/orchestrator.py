"""Ingestion orchestration.

This module coordinates file discovery, ledger checks, streaming parse,
review normalization and persistence. Files are processed by a bounded
worker pool, each in isolation, and their outcomes are folded into the
run counters.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
import threading
import time
from typing import Any

from core.config import IngestConfig
from core.errors import ReviewIngestError
from core.logging_config import get_logger
from core.types import (
    FileOutcome,
    FileStatus,
    IngestionStatus,
    ReviewSink,
    RunCounters,
    RunState,
)
from ingest.line_parser import JsonLinesParser
from ingest.object_store import S3ObjectStore
from ingest.review_transform import normalize_records

_LOGGER = get_logger(__name__)


class RunGuard:
    """Single-flight admission for ingestion runs.

    The check and the transition to running happen in one non-blocking
    lock acquire.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()

    @property
    def state(self) -> RunState:
        return RunState.RUNNING if self._lock.locked() else RunState.IDLE

    @property
    def is_running(self) -> bool:
        return self._lock.locked()

    def try_acquire(self) -> bool:
        """Move to running if idle; return whether admission succeeded."""
        return self._lock.acquire(blocking=False)

    def release(self) -> None:
        """Return to idle."""
        self._lock.release()


class IngestionOrchestrator:
    """Runs ingestion passes over the configured bucket and prefix."""

    def __init__(
        self,
        config: IngestConfig,
        object_store: S3ObjectStore,
        review_store: ReviewSink,
        guard: RunGuard | None = None,
    ) -> None:
        self._config = config
        self._object_store = object_store
        self._review_store = review_store
        self._guard = guard or RunGuard()

    @property
    def is_running(self) -> bool:
        return self._guard.is_running

    def run_ingestion(self) -> RunCounters:
        """Execute one ingestion pass.

        Returns:
            Counters for processed, skipped and errored files. Zero
            counters when another run is already in flight.

        Raises:
            IngestConfigError: If no bucket is configured.
            ObjectStoreError: If file discovery fails.
        """
        if not self._guard.try_acquire():
            _LOGGER.warning("ingestion_already_running")
            return RunCounters()
        try:
            return self._run()
        except Exception as error:
            _LOGGER.error("ingestion_failed", error=str(error))
            raise
        finally:
            self._guard.release()

    def trigger_manual_ingestion(self) -> RunCounters:
        """Run ingestion on demand."""
        _LOGGER.info("manual_ingestion_triggered")
        return self.run_ingestion()

    def status(self) -> IngestionStatus:
        """Return whether a run is active plus store statistics."""
        return IngestionStatus(
            is_running=self._guard.is_running,
            stats=self._review_store.review_stats(),
        )

    def _run(self) -> RunCounters:
        bucket = self._config.require_bucket()
        prefix = self._config.key_prefix
        _LOGGER.info("ingestion_started", bucket=bucket, prefix=prefix)
        keys = self._object_store.list_files(bucket, prefix)
        if not keys:
            _LOGGER.info("ingestion_no_files", bucket=bucket, prefix=prefix)
            return RunCounters()
        with ThreadPoolExecutor(
            max_workers=self._config.concurrency_limit,
            thread_name_prefix="ingest-file",
        ) as executor:
            outcomes = list(executor.map(lambda key: self._process_file(bucket, key), keys))
        counters = _aggregate(outcomes)
        _LOGGER.info(
            "ingestion_completed",
            bucket=bucket,
            prefix=prefix,
            file_count=len(keys),
            **counters.as_dict(),
        )
        return counters

    def _process_file(self, bucket: str, key: str) -> FileOutcome:
        """Process one file; every failure is returned, never raised."""
        try:
            return self._ingest_file(bucket, key)
        except ReviewIngestError as error:
            _LOGGER.error("file_processing_failed", file_key=key, error=str(error))
            return FileOutcome(key=key, status=FileStatus.ERROR, error=str(error))
        except Exception as error:  # noqa: BLE001
            _LOGGER.exception("file_processing_crashed", file_key=key)
            return FileOutcome(key=key, status=FileStatus.ERROR, error=repr(error))

    def _ingest_file(self, bucket: str, key: str) -> FileOutcome:
        if self._review_store.is_processed(key):
            _LOGGER.info("file_skipped_already_processed", file_key=key)
            return FileOutcome(key=key, status=FileStatus.SKIPPED)
        started = time.monotonic()
        metadata = self._object_store.get_metadata(bucket, key)
        _LOGGER.info(
            "file_processing_started",
            file_key=key,
            size_bytes=metadata.size_bytes,
            last_modified=metadata.last_modified.isoformat(),
        )
        stream = self._object_store.open_stream(bucket, key)
        try:
            parser = JsonLinesParser(source_name=key)
            result = normalize_records(parser.parse(stream), key)
        finally:
            _close_quietly(stream)
        if not result.reviews:
            return self._handle_empty_file(key, parser.line_count)
        self._review_store.store_reviews(result.reviews, key)
        self._review_store.mark_processed(key, len(result.reviews))
        _LOGGER.info(
            "file_processed",
            file_key=key,
            record_count=len(result.reviews),
            dropped_count=result.dropped_count,
            duration_ms=round((time.monotonic() - started) * 1000),
        )
        return FileOutcome(key=key, status=FileStatus.PROCESSED, record_count=len(result.reviews))

    def _handle_empty_file(self, key: str, line_count: int) -> FileOutcome:
        _LOGGER.warning("file_has_no_valid_reviews", file_key=key, line_count=line_count)
        if not self._config.mark_empty_files:
            return FileOutcome(key=key, status=FileStatus.EMPTY)
        self._review_store.mark_processed(key, 0)
        return FileOutcome(key=key, status=FileStatus.PROCESSED)


def _aggregate(outcomes: list[FileOutcome]) -> RunCounters:
    """Fold per-file outcomes into run counters; empty files are not counted."""
    statuses = [outcome.status for outcome in outcomes]
    return RunCounters(
        processed=statuses.count(FileStatus.PROCESSED),
        skipped=statuses.count(FileStatus.SKIPPED),
        errors=statuses.count(FileStatus.ERROR),
    )


def _close_quietly(stream: Any) -> None:
    close = getattr(stream, "close", None)
    if close is None:
        return
    try:
        close()
    except OSError as error:
        _LOGGER.warning("stream_close_failed", error=str(error))
