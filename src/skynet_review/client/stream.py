"""Incremental Server-Sent-Events ingestion for the streamed analyze call.

The gateway answers ``POST /api/analyze/stream`` with a long-lived chunked
body framed as::

    event: finding
    data: {"id": "...", ...}

    event: complete
    data: done

Chunks may split lines (and multi-byte characters) anywhere, so bytes are
decoded incrementally and buffered until a full line is available. Each
decoded finding is handed to the sink synchronously before more input is
read; a slow sink therefore throttles the network read.
"""

from __future__ import annotations

import codecs
import enum
import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass

import httpx

from skynet_review.client.models import SecurityFinding
from skynet_review.errors import DecodeError, StreamReadError, StreamServerError

logger = logging.getLogger(__name__)

_EVENT_PREFIX = "event:"
_DATA_PREFIX = "data:"

FindingSink = Callable[[SecurityFinding], None]


class EventType(enum.Enum):
    """Recognized SSE event names."""

    FINDING = "finding"
    ERROR = "error"
    COMPLETE = "complete"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, name: str) -> EventType:
        try:
            return cls(name)
        except ValueError:
            return cls.UNKNOWN


@dataclass(frozen=True)
class StreamEvent:
    """One ``data:`` line together with the event type in effect for it."""

    type: EventType
    data: str


class OutcomeKind(enum.Enum):
    SUCCESS = "success"
    SERVER_ERROR = "server-error"
    READ_ERROR = "read-error"


@dataclass(frozen=True)
class IngestionOutcome:
    """Terminal result of a streamed session."""

    kind: OutcomeKind
    findings: int = 0
    completed: bool = False
    message: str | None = None

    @property
    def ok(self) -> bool:
        return self.kind is OutcomeKind.SUCCESS

    def raise_for_failure(self) -> None:
        """Raise the matching :mod:`skynet_review.errors` exception on failure."""
        if self.kind is OutcomeKind.SERVER_ERROR:
            raise StreamServerError(self.message or "Analysis failed")
        if self.kind is OutcomeKind.READ_ERROR:
            raise StreamReadError(self.message or "Stream read error")


class StreamIngestor:
    """Turns a sequence of byte chunks into findings delivered to ``sink``.

    Use :meth:`run` to drive a whole stream, or :meth:`feed` / :meth:`finish`
    to push chunks manually. Once an ``error`` event is seen the ingestor is
    closed and further input is ignored.
    """

    def __init__(self, sink: FindingSink) -> None:
        self._sink = sink
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""
        self._event_type: EventType | None = None
        self._delivered = 0
        self._completed = False
        self._outcome: IngestionOutcome | None = None

    @property
    def closed(self) -> bool:
        return self._outcome is not None

    def run(self, chunks: Iterable[bytes]) -> IngestionOutcome:
        """Consume *chunks* to the end (or the first error event)."""
        try:
            for chunk in chunks:
                if not self.feed(chunk):
                    break
        except (httpx.TransportError, httpx.StreamError) as exc:
            logger.debug("Stream read failed: %r", exc)
            if isinstance(exc, httpx.TimeoutException):
                message = "Stream read error: timed out"
            else:
                message = f"Stream read error: {type(exc).__name__}"
            self._outcome = IngestionOutcome(
                kind=OutcomeKind.READ_ERROR,
                findings=self._delivered,
                completed=self._completed,
                message=message,
            )
            return self._outcome
        return self.finish()

    def feed(self, chunk: bytes) -> bool:
        """Process one chunk. Returns ``False`` once ingestion has stopped."""
        if self.closed:
            return False

        self._buffer += self._decoder.decode(chunk)
        while not self.closed:
            newline = self._buffer.find("\n")
            if newline < 0:
                break
            line = self._buffer[:newline]
            self._buffer = self._buffer[newline + 1 :]
            self._process_line(line)
        return not self.closed

    def finish(self) -> IngestionOutcome:
        """Signal end of stream and return the outcome."""
        if self._outcome is not None:
            return self._outcome

        self._buffer += self._decoder.decode(b"", final=True)
        if self._buffer.strip():
            # An unterminated trailing line is not a complete SSE line
            logger.debug("Discarding %d unterminated byte(s)", len(self._buffer))
        self._buffer = ""

        self._outcome = IngestionOutcome(
            kind=OutcomeKind.SUCCESS,
            findings=self._delivered,
            completed=self._completed,
        )
        return self._outcome

    def _process_line(self, raw: str) -> None:
        line = raw.strip()
        if not line:
            self._event_type = None
            return
        if line.startswith(_EVENT_PREFIX):
            self._event_type = EventType.parse(line[len(_EVENT_PREFIX) :].strip())
            return
        if line.startswith(_DATA_PREFIX):
            if self._event_type is not None:
                self._dispatch(
                    StreamEvent(self._event_type, line[len(_DATA_PREFIX) :].strip())
                )
            return
        # ids, retry hints, comments

    def _dispatch(self, event: StreamEvent) -> None:
        if event.type is EventType.FINDING:
            try:
                finding = SecurityFinding.from_json(event.data)
            except DecodeError as exc:
                logger.debug("Skipping finding: %s", exc)
                return
            self._delivered += 1
            self._sink(finding)
        elif event.type is EventType.ERROR:
            self._outcome = IngestionOutcome(
                kind=OutcomeKind.SERVER_ERROR,
                findings=self._delivered,
                completed=self._completed,
                message=event.data,
            )
        elif event.type is EventType.COMPLETE:
            self._completed = True
        elif event.type is EventType.UNKNOWN:
            pass
