"""Unit tests for CLI command handling."""

from __future__ import annotations

import json

import pytest

from cli import main as cli_main
from ingest.object_store import S3ObjectStore
from tests.fake_s3 import FakeS3Client
from tests.fixture_paths import fixture_bytes


@pytest.fixture
def fake_client(monkeypatch: pytest.MonkeyPatch) -> FakeS3Client:
    monkeypatch.delenv("S3_PREFIX", raising=False)
    client = FakeS3Client(
        {
            "raw/agoda.jl": fixture_bytes("reviews/agoda_valid.jl"),
            "raw/booking.jsonl": fixture_bytes("reviews/booking_mixed.jsonl"),
        }
    )
    monkeypatch.setattr(
        cli_main.S3ObjectStore,
        "from_config",
        classmethod(lambda cls, config: S3ObjectStore(client)),
    )
    return client


def test_cli_ingest_prints_counters(tmp_path, capsys, fake_client) -> None:
    """CLI ingest should print run counters as JSON."""
    args = ["--data-root", str(tmp_path), "ingest", "--source", "s3://reviews/raw/"]

    exit_code = cli_main.main(args)
    output = json.loads(capsys.readouterr().out)

    assert exit_code == 0 and output == {"errors": 0, "processed": 2, "skipped": 0}


def test_cli_stats_reports_stored_reviews(tmp_path, capsys, fake_client) -> None:
    """CLI stats should reflect reviews stored by a previous ingest."""
    cli_main.main(["--data-root", str(tmp_path), "ingest", "--bucket", "reviews"])
    capsys.readouterr()

    exit_code = cli_main.main(["--data-root", str(tmp_path), "stats"])
    output = json.loads(capsys.readouterr().out)

    assert exit_code == 0 and (output["total_reviews"], output["total_files"]) == (4, 2)


def test_cli_status_reports_idle(tmp_path, capsys) -> None:
    """CLI status should report an idle orchestrator."""
    exit_code = cli_main.main(["--data-root", str(tmp_path), "status"])
    output = json.loads(capsys.readouterr().out)

    assert exit_code == 0 and output["is_running"] is False


def test_cli_ingest_without_bucket_fails(tmp_path, capsys, monkeypatch, fake_client) -> None:
    """Missing bucket configuration should exit with an error."""
    monkeypatch.delenv("S3_BUCKET", raising=False)

    exit_code = cli_main.main(["--data-root", str(tmp_path), "ingest"])

    assert exit_code == 1 and "S3_BUCKET" in capsys.readouterr().err


def test_cli_ingest_with_unknown_profile_fails_cleanly(tmp_path, capsys, monkeypatch) -> None:
    """An unresolvable AWS profile should exit 1 with an error line."""
    monkeypatch.setenv("AWS_PROFILE", "no-such-profile")
    monkeypatch.setenv("AWS_CONFIG_FILE", str(tmp_path / "config"))
    monkeypatch.setenv("AWS_SHARED_CREDENTIALS_FILE", str(tmp_path / "credentials"))

    exit_code = cli_main.main(["--data-root", str(tmp_path), "ingest", "--bucket", "reviews"])

    assert exit_code == 1 and "no-such-profile" in capsys.readouterr().err
