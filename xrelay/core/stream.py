"""Incremental decoding of relay event streams."""

from dataclasses import dataclass, field

from pydantic import ValidationError

from xrelay.exceptions import StreamParseError
from xrelay.models.events import (
    CompleteEvent,
    ErrorEvent,
    ProgressEvent,
    StreamEvent,
    TweetEvent,
    TweetRecord,
    stream_event_adapter,
)

DATA_PREFIX = "data: "


class SSEDecoder:
    """
    Line-buffered decoder for ``data: <json>`` frames.

    Chunk boundaries need not align with lines; the trailing partial
    line is held until the next chunk completes it.
    """

    def __init__(self) -> None:
        self._buffer = ""

    def feed(self, text: str) -> list[StreamEvent]:
        """
        Add decoded text and return every event completed by it.

        Raises:
            StreamParseError: If a data line is not a valid event
        """
        self._buffer += text
        lines = self._buffer.split("\n")
        self._buffer = lines.pop()
        return [event for event in map(self._parse_line, lines) if event is not None]

    def flush(self) -> list[StreamEvent]:
        """Parse whatever remains once the stream has ended."""
        remainder, self._buffer = self._buffer, ""
        event = self._parse_line(remainder)
        return [event] if event is not None else []

    @staticmethod
    def _parse_line(line: str) -> StreamEvent | None:
        line = line.rstrip("\r")
        if not line.startswith(DATA_PREFIX):
            return None
        try:
            return stream_event_adapter.validate_json(line[len(DATA_PREFIX):])
        except ValidationError as e:
            raise StreamParseError(f"Malformed event: {line[:80]}") from e


@dataclass
class TweetAccumulator:
    """Client-side state built from a relay stream."""

    tweets: list[TweetRecord] = field(default_factory=list)
    status: str = ""
    error: str | None = None
    completed_count: int | None = None

    @property
    def finished(self) -> bool:
        return self.completed_count is not None or self.error is not None

    def apply(self, event: StreamEvent) -> None:
        if isinstance(event, ProgressEvent):
            self.status = event.message
        elif isinstance(event, TweetEvent):
            self.tweets.append(event.tweet)
        elif isinstance(event, CompleteEvent):
            self.completed_count = event.count
            self.status = f"Completed! Fetched {event.count} tweets"
        elif isinstance(event, ErrorEvent):
            self.error = event.message
