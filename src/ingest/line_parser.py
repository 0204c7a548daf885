"""Streaming JSON-lines parsing.

This module decodes one JSON value per line from a byte stream.
Malformed lines are logged and skipped; only a failure of the stream
itself aborts parsing.
"""

from __future__ import annotations

import json
from typing import Any, Iterator

from botocore.exceptions import BotoCoreError

from core.constants import MALFORMED_LINE_PREVIEW_LENGTH, STREAM_CHUNK_SIZE
from core.errors import StreamReadError
from core.logging_config import get_logger
from core.types import RawRecord

_LOGGER = get_logger(__name__)


class JsonLinesParser:
    """Single-pass JSON-lines decoder with per-line fault tolerance.

    Counters are populated as the stream is consumed and can be read
    once iteration has finished.
    """

    def __init__(self, source_name: str = "<stream>", chunk_size: int = STREAM_CHUNK_SIZE) -> None:
        self._source_name = source_name
        self._chunk_size = chunk_size
        self.line_count = 0
        self.record_count = 0
        self.malformed_count = 0

    def parse(self, stream: Any) -> Iterator[RawRecord]:
        """Yield decoded records from a byte stream.

        Args:
            stream: Object exposing ``read(size)`` returning bytes.

        Yields:
            Decoded JSON values, one per well-formed non-blank line.

        Raises:
            StreamReadError: If reading from the stream fails.
        """
        for line in self._iter_lines(stream):
            self.line_count += 1
            if not line.strip():
                continue
            try:
                record = json.loads(line.decode("utf-8"))
            except ValueError as error:
                self.malformed_count += 1
                _LOGGER.warning(
                    "malformed_line_skipped",
                    source=self._source_name,
                    line_number=self.line_count,
                    line=_preview(line),
                    error=str(error),
                )
                continue
            self.record_count += 1
            yield record
        _LOGGER.info(
            "json_lines_parsed",
            source=self._source_name,
            line_count=self.line_count,
            record_count=self.record_count,
            malformed_count=self.malformed_count,
        )

    def _iter_lines(self, stream: Any) -> Iterator[bytes]:
        # Only the newest chunk is scanned for newlines; partial lines are joined once.
        parts: list[bytes] = []
        while True:
            chunk = self._read_chunk(stream)
            if not chunk:
                break
            head, newline, rest = chunk.partition(b"\n")
            parts.append(head)
            if not newline:
                continue
            *lines, tail = rest.split(b"\n")
            yield b"".join(parts).removesuffix(b"\r")
            for line in lines:
                yield line.removesuffix(b"\r")
            parts = [tail]
        pending = b"".join(parts)
        if pending:
            yield pending.removesuffix(b"\r")

    def _read_chunk(self, stream: Any) -> bytes:
        try:
            return stream.read(self._chunk_size)
        except (BotoCoreError, OSError) as error:
            _LOGGER.error(
                "stream_read_failed",
                source=self._source_name,
                line_count=self.line_count,
                error=str(error),
            )
            raise StreamReadError(
                f"Failed to read {self._source_name} after {self.line_count} lines: {error}. "
                "The file will be retried on the next run."
            ) from error


def parse_json_lines(stream: Any, source_name: str = "<stream>") -> list[RawRecord]:
    """Decode every well-formed line of a stream into a list.

    Raises:
        StreamReadError: If reading from the stream fails.
    """
    return list(JsonLinesParser(source_name).parse(stream))


def _preview(line: bytes) -> str:
    """Return a truncated printable preview of a raw line."""
    text = line.decode("utf-8", errors="replace")
    if len(text) > MALFORMED_LINE_PREVIEW_LENGTH:
        return text[:MALFORMED_LINE_PREVIEW_LENGTH] + "..."
    return text
