"""Review ingest CLI entry points.
This module exposes ingest, status and stats commands.
It maps argparse commands onto the ingestion orchestrator.
"""

from __future__ import annotations

import argparse
from dataclasses import replace
import json
from pathlib import Path
import sys
from typing import Any, Sequence

from core.config import IngestConfig, parse_concurrency_limit
from core.errors import ReviewIngestError
from core.logging_config import configure_logging
from core.s3_uri import parse_s3_uri
from ingest.object_store import S3ObjectStore
from ingest.orchestrator import IngestionOrchestrator
from store.review_store import ReviewStore


def build_parser() -> argparse.ArgumentParser:
    """Build the top-level CLI parser.

    Returns:
        Configured argument parser.
    """
    parser = argparse.ArgumentParser(
        prog="review-ingest",
        description="Ingest JSON-lines hotel reviews from S3",
    )
    parser.add_argument(
        "--data-root",
        help="Override REVIEW_INGEST_DATA_ROOT for this command",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)
    _add_ingest_command(subparsers)
    subparsers.add_parser("status", help="Show whether ingestion is running plus stats")
    subparsers.add_parser("stats", help="Show stored review statistics")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Run the review ingest CLI.

    Args:
        argv: Optional argument vector.

    Returns:
        Process exit code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging()
    try:
        config = _build_config(args)
        store = ReviewStore(config.database_path)
        try:
            return _dispatch(parser, args, config, store)
        finally:
            store.close()
    except ReviewIngestError as error:
        print(f"error: {error}", file=sys.stderr)
        return 1


def _dispatch(
    parser: argparse.ArgumentParser,
    args: argparse.Namespace,
    config: IngestConfig,
    store: ReviewStore,
) -> int:
    if args.command == "ingest":
        return _run_ingest_command(config, store)
    if args.command == "status":
        orchestrator = IngestionOrchestrator(config, S3ObjectStore(s3_client=None), store)
        _print_json(orchestrator.status().as_dict())
        return 0
    if args.command == "stats":
        _print_json(store.review_stats().as_dict())
        return 0
    parser.error(f"Unsupported command: {args.command}")
    return 2


def _build_config(args: argparse.Namespace) -> IngestConfig:
    """Build config from env with CLI overrides applied.

    Args:
        args: Parsed CLI args.

    Returns:
        Effective runtime config.
    """
    config = IngestConfig.from_env()
    if args.data_root:
        config = replace(config, data_root=Path(args.data_root).expanduser().resolve())
    if args.command != "ingest":
        return config
    if args.source:
        location = parse_s3_uri(args.source)
        config = replace(config, bucket=location.bucket, key_prefix=location.prefix)
    if args.bucket:
        config = replace(config, bucket=args.bucket)
    if args.prefix is not None:
        config = replace(config, key_prefix=args.prefix)
    if args.concurrency is not None:
        config = replace(config, concurrency_limit=parse_concurrency_limit(args.concurrency))
    if args.mark_empty_files:
        config = replace(config, mark_empty_files=True)
    return config


def _run_ingest_command(config: IngestConfig, store: ReviewStore) -> int:
    """Handle ingest command.

    Args:
        config: Effective runtime config.
        store: Review store.

    Returns:
        Exit code.
    """
    orchestrator = IngestionOrchestrator(config, S3ObjectStore.from_config(config), store)
    counters = orchestrator.trigger_manual_ingestion()
    _print_json(counters.as_dict())
    return 0


def _print_json(payload: Any) -> None:
    print(json.dumps(payload, indent=2, sort_keys=True, default=str))


def _add_ingest_command(subparsers: Any) -> None:
    """Register ingest subcommand."""
    parser = subparsers.add_parser("ingest", help="Run one ingestion pass")
    parser.add_argument("--source", help="s3://bucket/prefix to ingest from")
    parser.add_argument("--bucket", help="Override S3_BUCKET")
    parser.add_argument("--prefix", help="Override S3_PREFIX")
    parser.add_argument("--concurrency", help="Override INGESTION_CONCURRENCY")
    parser.add_argument(
        "--mark-empty-files",
        action="store_true",
        help="Mark files without valid reviews as processed",
    )
