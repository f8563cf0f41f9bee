"""Streaming relay - drives a TweetSource and emits stream events."""

from contextlib import aclosing
from typing import AsyncIterator, Awaitable, Callable

from xrelay.config import RelayConfig
from xrelay.core.cookies import serialize_cookies
from xrelay.core.source import SourceFactory, TweetSource
from xrelay.core.twikit_source import TwikitSource
from xrelay.logging import get_logger
from xrelay.models.events import (
    CompleteEvent,
    ErrorEvent,
    ProgressEvent,
    StreamEvent,
    TweetEvent,
    TweetRecord,
)
from xrelay.models.request import FetchRequest, SearchRequest, SessionRequest

DEFAULT_ERROR_MESSAGE = "Failed to fetch tweets"

DisconnectCheck = Callable[[], Awaitable[bool]]
OpenItems = Callable[[TweetSource, int], AsyncIterator[TweetRecord]]


def encode_event(event: StreamEvent) -> str:
    """Render one event as an SSE data frame."""
    return f"data: {event.model_dump_json()}\n\n"


class TweetRelay:
    """
    Relays tweets from a fresh scraper session as stream events.

    A stream is one progress event, then tweet events (with a progress
    event every ``progress_interval`` tweets), then exactly one complete
    or error event. Nothing is retained after the stream ends.

    Example:
        relay = TweetRelay()
        async for event in relay.stream_tweets(request):
            print(encode_event(event))
    """

    def __init__(
        self,
        config: RelayConfig | None = None,
        source_factory: SourceFactory | None = None,
    ):
        self.config = config or RelayConfig()
        self._source_factory = source_factory or (lambda: TwikitSource(self.config))
        self._log = get_logger("relay")

    def resolve_limit(self, max_tweets: int | None) -> int:
        """Requested maximum, or the default, clamped to the configured cap."""
        requested = max_tweets if max_tweets is not None else self.config.default_max_tweets
        return max(1, min(requested, self.config.max_tweets_cap))

    def stream_tweets(
        self,
        request: FetchRequest,
        is_disconnected: DisconnectCheck | None = None,
    ) -> AsyncIterator[StreamEvent]:
        """Stream a user's timeline."""
        return self._relay(
            request,
            f"Fetching tweets for @{request.username}...",
            lambda source, limit: source.iterate_tweets(request.username, limit),
            self.resolve_limit(request.max_tweets),
            is_disconnected,
        )

    def stream_liked(
        self,
        request: FetchRequest,
        is_disconnected: DisconnectCheck | None = None,
    ) -> AsyncIterator[StreamEvent]:
        """Stream tweets a user has liked."""
        return self._relay(
            request,
            f"Fetching liked tweets for @{request.username}...",
            lambda source, limit: source.iterate_liked(request.username, limit),
            self.resolve_limit(request.max_tweets),
            is_disconnected,
        )

    def stream_search(
        self,
        request: SearchRequest,
        is_disconnected: DisconnectCheck | None = None,
    ) -> AsyncIterator[StreamEvent]:
        """Stream search results for a query."""
        return self._relay(
            request,
            f'Searching tweets for "{request.query}"...',
            lambda source, limit: source.search(request.query, limit, request.mode),
            self.resolve_limit(request.max_tweets),
            is_disconnected,
        )

    async def verify_session(self, request: SessionRequest) -> bool:
        """Install cookies into a fresh session and check it is logged in."""
        try:
            async with self._source_factory() as source:
                await source.install_credentials(self._cookie_strings(request))
                return await source.is_logged_in()
        except Exception as e:
            self._log.info("session_rejected", error=str(e))
            return False

    def _cookie_strings(self, request: SessionRequest) -> list[str]:
        return serialize_cookies(request.cookies, self.config.legacy_cookie_domain)

    async def _relay(
        self,
        request: SessionRequest,
        start_message: str,
        open_items: OpenItems,
        limit: int,
        is_disconnected: DisconnectCheck | None,
    ) -> AsyncIterator[StreamEvent]:
        count = 0
        interval = max(1, self.config.progress_interval)
        self._log.info("relay_start", target=start_message, limit=limit)

        try:
            async with self._source_factory() as source:
                await source.install_credentials(self._cookie_strings(request))
                yield ProgressEvent(message=start_message)

                async with aclosing(open_items(source, limit)) as items:
                    async for tweet in items:
                        count += 1
                        yield TweetEvent(tweet=tweet)

                        if count % interval == 0:
                            yield ProgressEvent(message=f"Fetched {count} tweets...")

                        if count >= limit:
                            break

                        if is_disconnected is not None and await is_disconnected():
                            self._log.info("client_disconnected", count=count)
                            return

        except Exception as e:
            self._log.error("relay_failed", count=count, error=str(e), exc_info=True)
            yield ErrorEvent(message=str(e) or DEFAULT_ERROR_MESSAGE)
            return

        self._log.info("relay_complete", count=count)
        yield CompleteEvent(count=count)
