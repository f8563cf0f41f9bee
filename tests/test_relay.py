"""Unit tests for the streaming relay - scripted source, no internet."""

import asyncio
import json

import pytest

from conftest import FakeTweetSource, make_tweets
from xrelay.config import RelayConfig, SearchMode
from xrelay.core.relay import TweetRelay, encode_event
from xrelay.models.cookie import Cookie
from xrelay.models.events import CompleteEvent, ErrorEvent, ProgressEvent, TweetEvent
from xrelay.models.request import FetchRequest, SearchRequest, SessionRequest


async def collect(events) -> list:
    return [event async for event in events]


def fetch_request(cookies, max_tweets=None, username="nasa") -> FetchRequest:
    return FetchRequest(username=username, cookies=cookies, max_tweets=max_tweets)


def types_of(events) -> list[str]:
    return [e.type for e in events]


class TestRelayOrdering:
    """Event ordering for well-formed requests."""

    @pytest.mark.asyncio
    async def test_progress_precedes_tweets_and_one_terminal(self, config, cookies):
        source = FakeTweetSource(make_tweets(5))
        relay = TweetRelay(config, lambda: source)

        events = await collect(relay.stream_tweets(fetch_request(cookies, 50)))

        assert isinstance(events[0], ProgressEvent)
        assert events[0].message == "Fetching tweets for @nasa..."
        assert types_of(events[1:-1]) == ["tweet"] * 5
        assert isinstance(events[-1], CompleteEvent)
        terminals = [e for e in events if isinstance(e, (CompleteEvent, ErrorEvent))]
        assert len(terminals) == 1

    @pytest.mark.asyncio
    async def test_tweets_relayed_verbatim_in_order(self, config, cookies):
        tweets = make_tweets(3, photos=True)
        relay = TweetRelay(config, lambda: FakeTweetSource(tweets))

        events = await collect(relay.stream_tweets(fetch_request(cookies, 10)))

        assert [e.tweet for e in events if isinstance(e, TweetEvent)] == tweets


class TestRelayLimits:
    """Maximum count enforcement."""

    @pytest.mark.asyncio
    async def test_stops_at_max_when_upstream_has_more(self, config, cookies):
        source = FakeTweetSource(make_tweets(50))
        relay = TweetRelay(config, lambda: source)

        events = await collect(relay.stream_tweets(fetch_request(cookies, 7)))

        assert types_of(events).count("tweet") == 7
        assert events[-1] == CompleteEvent(count=7)
        assert source.yielded == 7

    @pytest.mark.asyncio
    async def test_short_upstream_reports_actual_count(self, config, cookies):
        relay = TweetRelay(config, lambda: FakeTweetSource(make_tweets(4)))

        events = await collect(relay.stream_tweets(fetch_request(cookies, 100)))

        assert types_of(events).count("tweet") == 4
        assert events[-1] == CompleteEvent(count=4)

    @pytest.mark.asyncio
    async def test_empty_upstream_completes_with_zero(self, config, cookies):
        relay = TweetRelay(config, lambda: FakeTweetSource([]))

        events = await collect(relay.stream_tweets(fetch_request(cookies, 10)))

        assert types_of(events) == ["progress", "complete"]
        assert events[-1].count == 0

    @pytest.mark.asyncio
    async def test_default_limit_passed_to_source(self, config, cookies):
        source = FakeTweetSource(make_tweets(1))
        relay = TweetRelay(config, lambda: source)

        await collect(relay.stream_tweets(fetch_request(cookies)))

        assert source.requested == [("tweets", "nasa", 200)]

    def test_resolve_limit_clamps_to_cap(self):
        relay = TweetRelay(RelayConfig(max_tweets_cap=500), lambda: FakeTweetSource())
        assert relay.resolve_limit(10_000) == 500
        assert relay.resolve_limit(20) == 20


class TestRelayProgress:
    """Periodic progress markers."""

    @pytest.mark.asyncio
    async def test_progress_every_interval(self, cookies):
        config = RelayConfig(progress_interval=10)
        relay = TweetRelay(config, lambda: FakeTweetSource(make_tweets(25)))

        events = await collect(relay.stream_tweets(fetch_request(cookies, 100)))

        progress = [e.message for e in events if isinstance(e, ProgressEvent)]
        assert progress == [
            "Fetching tweets for @nasa...",
            "Fetched 10 tweets...",
            "Fetched 20 tweets...",
        ]
        # Marker follows the tenth tweet
        assert events[10].type == "tweet"
        assert events[11] == ProgressEvent(message="Fetched 10 tweets...")

    @pytest.mark.asyncio
    async def test_progress_interval_configurable(self, cookies):
        config = RelayConfig(progress_interval=100)
        relay = TweetRelay(config, lambda: FakeTweetSource(make_tweets(150)))

        events = await collect(relay.stream_tweets(fetch_request(cookies, 200)))

        progress = [e for e in events if isinstance(e, ProgressEvent)]
        assert len(progress) == 2
        assert progress[1].message == "Fetched 100 tweets..."


class TestRelayErrors:
    """Failures become a single error event."""

    @pytest.mark.asyncio
    async def test_upstream_failure_after_k_tweets(self, config, cookies):
        source = FakeTweetSource(make_tweets(10), fail_after=3)
        relay = TweetRelay(config, lambda: source)

        events = await collect(relay.stream_tweets(fetch_request(cookies, 100)))

        assert types_of(events) == ["progress", "tweet", "tweet", "tweet", "error"]
        assert events[-1] == ErrorEvent(message="Upstream connection reset")
        assert not any(isinstance(e, CompleteEvent) for e in events)
        assert source.closed is True

    @pytest.mark.asyncio
    async def test_cookie_install_failure(self, config, cookies):
        source = FakeTweetSource(make_tweets(5), reject_cookies=True)
        relay = TweetRelay(config, lambda: source)

        events = await collect(relay.stream_tweets(fetch_request(cookies)))

        assert events == [ErrorEvent(message="Invalid cookies")]
        assert source.requested == []
        assert source.closed is True

    @pytest.mark.asyncio
    async def test_blank_exception_message_falls_back(self, config, cookies):
        class Exploding(FakeTweetSource):
            async def install_credentials(self, cookies):
                raise RuntimeError()

        relay = TweetRelay(config, lambda: Exploding())

        events = await collect(relay.stream_tweets(fetch_request(cookies)))

        assert events == [ErrorEvent(message="Failed to fetch tweets")]

    @pytest.mark.asyncio
    async def test_source_factory_failure(self, config, cookies):
        def factory():
            raise RuntimeError("client init failed")

        relay = TweetRelay(config, factory)

        events = await collect(relay.stream_tweets(fetch_request(cookies)))

        assert events == [ErrorEvent(message="client init failed")]


class TestRelayLifecycle:
    """Resources released on every exit path."""

    @pytest.mark.asyncio
    async def test_source_closed_after_completion(self, config, cookies):
        source = FakeTweetSource(make_tweets(2))
        relay = TweetRelay(config, lambda: source)

        await collect(relay.stream_tweets(fetch_request(cookies)))

        assert source.closed is True

    @pytest.mark.asyncio
    async def test_fresh_source_per_stream(self, config, cookies):
        created = []

        def factory():
            created.append(FakeTweetSource(make_tweets(1)))
            return created[-1]

        relay = TweetRelay(config, factory)
        await collect(relay.stream_tweets(fetch_request(cookies)))
        await collect(relay.stream_tweets(fetch_request(cookies)))

        assert len(created) == 2
        assert created[0] is not created[1]

    @pytest.mark.asyncio
    async def test_disconnect_stops_iteration(self, config, cookies):
        source = FakeTweetSource(make_tweets(100))
        relay = TweetRelay(config, lambda: source)
        polls = 0

        async def is_disconnected() -> bool:
            nonlocal polls
            polls += 1
            return polls >= 3

        events = await collect(
            relay.stream_tweets(fetch_request(cookies, 100), is_disconnected)
        )

        assert types_of(events) == ["progress", "tweet", "tweet", "tweet"]
        assert source.yielded == 3
        assert source.closed is True

    @pytest.mark.asyncio
    async def test_consumer_closing_stream_closes_source(self, config, cookies):
        source = FakeTweetSource(make_tweets(100))
        relay = TweetRelay(config, lambda: source)

        stream = relay.stream_tweets(fetch_request(cookies, 100))
        await stream.__anext__()
        await stream.__anext__()
        await stream.aclose()

        assert source.closed is True
        assert source.yielded == 1

    @pytest.mark.asyncio
    async def test_cancellation_closes_source(self, config, cookies):
        source = FakeTweetSource(make_tweets(5))
        started = asyncio.Event()

        class Hanging(FakeTweetSource):
            def iterate_tweets(self, username, max_tweets):
                async def never():
                    started.set()
                    await asyncio.sleep(3600)
                    yield {}
                return never()

            async def close(self):
                source.closed = True

        relay = TweetRelay(config, lambda: Hanging())
        task = asyncio.create_task(collect(relay.stream_tweets(fetch_request(cookies))))
        await started.wait()
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task
        assert source.closed is True


class TestRelayVariants:
    """Liked and search streams share the relay loop."""

    @pytest.mark.asyncio
    async def test_liked_stream(self, config, cookies):
        source = FakeTweetSource(make_tweets(2))
        relay = TweetRelay(config, lambda: source)

        events = await collect(relay.stream_liked(fetch_request(cookies, 5)))

        assert events[0].message == "Fetching liked tweets for @nasa..."
        assert source.requested == [("liked", "nasa", 5)]
        assert events[-1] == CompleteEvent(count=2)

    @pytest.mark.asyncio
    async def test_search_stream(self, config, cookies):
        source = FakeTweetSource(make_tweets(2))
        relay = TweetRelay(config, lambda: source)
        request = SearchRequest(query="cats filter:media", cookies=cookies, mode=SearchMode.TOP)

        events = await collect(relay.stream_search(request))

        assert events[0].message == 'Searching tweets for "cats filter:media"...'
        assert source.requested == [("search", "cats filter:media", 200, SearchMode.TOP)]

    @pytest.mark.asyncio
    async def test_cookie_objects_serialized_before_install(self, config):
        source = FakeTweetSource()
        relay = TweetRelay(config, lambda: source)
        request = FetchRequest(
            username="nasa",
            cookies=[Cookie(name="ct0", value="v", domain=".x.com", secure=True), "raw=1"],
        )

        await collect(relay.stream_tweets(request))

        assert source.installed == ["ct0=v; Domain=.twitter.com; Secure", "raw=1"]


class TestVerifySession:
    """Login state checks."""

    @pytest.mark.asyncio
    async def test_logged_in(self, config, cookies):
        source = FakeTweetSource(logged_in=True)
        relay = TweetRelay(config, lambda: source)

        assert await relay.verify_session(SessionRequest(cookies=cookies)) is True
        assert source.closed is True

    @pytest.mark.asyncio
    async def test_rejected_cookies_report_logged_out(self, config, cookies):
        relay = TweetRelay(config, lambda: FakeTweetSource(reject_cookies=True))

        assert await relay.verify_session(SessionRequest(cookies=cookies)) is False

    @pytest.mark.asyncio
    async def test_source_factory_failure_reports_logged_out(self, config, cookies):
        def factory():
            raise RuntimeError("bad proxy")

        relay = TweetRelay(config, factory)

        assert await relay.verify_session(SessionRequest(cookies=cookies)) is False


class TestEncodeEvent:
    """SSE framing."""

    def test_frame_format(self):
        frame = encode_event(ProgressEvent(message="hi"))
        assert frame.startswith("data: ")
        assert frame.endswith("\n\n")
        assert json.loads(frame[len("data: "):]) == {"type": "progress", "message": "hi"}

    def test_tweet_frame_is_flat(self):
        frame = encode_event(TweetEvent(tweet={"id": "1", "text": "x"}))
        assert json.loads(frame[6:]) == {"type": "tweet", "tweet": {"id": "1", "text": "x"}}
