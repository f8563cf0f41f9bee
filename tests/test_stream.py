"""Unit tests for SSE decoding and accumulation."""

import json

import pytest

from xrelay.core.relay import encode_event
from xrelay.core.stream import SSEDecoder, TweetAccumulator
from xrelay.exceptions import StreamParseError
from xrelay.models.events import CompleteEvent, ErrorEvent, ProgressEvent, TweetEvent


def frames(*events) -> str:
    return "".join(encode_event(e) for e in events)


class TestSSEDecoder:
    """Line buffering across chunk boundaries."""

    def test_whole_frames(self):
        decoder = SSEDecoder()
        events = decoder.feed(frames(ProgressEvent(message="start"), CompleteEvent(count=0)))
        assert events == [ProgressEvent(message="start"), CompleteEvent(count=0)]

    def test_frame_split_across_chunks(self):
        text = frames(TweetEvent(tweet={"id": "1", "text": "hello"}), CompleteEvent(count=1))
        decoder = SSEDecoder()

        first = decoder.feed(text[:15])
        second = decoder.feed(text[15:40])
        third = decoder.feed(text[40:])

        assert first == []
        assert second + third == [
            TweetEvent(tweet={"id": "1", "text": "hello"}),
            CompleteEvent(count=1),
        ]

    def test_one_character_at_a_time(self):
        text = frames(ProgressEvent(message="a"), TweetEvent(tweet={"id": "2"}), CompleteEvent(count=1))
        decoder = SSEDecoder()

        events = []
        for ch in text:
            events.extend(decoder.feed(ch))

        assert [e.type for e in events] == ["progress", "tweet", "complete"]

    def test_non_data_lines_ignored(self):
        decoder = SSEDecoder()
        events = decoder.feed(": keep-alive\n\nevent: ping\ndata: {\"type\": \"complete\", \"count\": 3}\n\n")
        assert events == [CompleteEvent(count=3)]

    def test_crlf_line_endings(self):
        decoder = SSEDecoder()
        events = decoder.feed('data: {"type": "error", "message": "x"}\r\n\r\n')
        assert events == [ErrorEvent(message="x")]

    def test_flush_parses_unterminated_line(self):
        decoder = SSEDecoder()
        assert decoder.feed('data: {"type": "complete", "count": 2}') == []
        assert decoder.flush() == [CompleteEvent(count=2)]
        assert decoder.flush() == []

    def test_malformed_payload_raises(self):
        decoder = SSEDecoder()
        with pytest.raises(StreamParseError):
            decoder.feed("data: {not json}\n")

    def test_unknown_event_type_raises(self):
        decoder = SSEDecoder()
        with pytest.raises(StreamParseError):
            decoder.feed(f"data: {json.dumps({'type': 'mystery'})}\n")


class TestTweetAccumulator:
    """Event dispatch."""

    def test_applies_events_in_order(self):
        acc = TweetAccumulator()

        acc.apply(ProgressEvent(message="Fetching tweets for @nasa..."))
        assert acc.status == "Fetching tweets for @nasa..."

        acc.apply(TweetEvent(tweet={"id": "1"}))
        acc.apply(TweetEvent(tweet={"id": "2"}))
        acc.apply(ProgressEvent(message="Fetched 2 tweets..."))
        acc.apply(CompleteEvent(count=2))

        assert [t["id"] for t in acc.tweets] == ["1", "2"]
        assert acc.status == "Completed! Fetched 2 tweets"
        assert acc.completed_count == 2
        assert acc.error is None
        assert acc.finished

    def test_error_keeps_partial_results(self):
        acc = TweetAccumulator()
        acc.apply(TweetEvent(tweet={"id": "1"}))
        acc.apply(ErrorEvent(message="Rate limited"))

        assert acc.error == "Rate limited"
        assert len(acc.tweets) == 1
        assert acc.finished
        assert acc.completed_count is None
