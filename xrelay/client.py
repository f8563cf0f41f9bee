"""Async client for the relay's streaming endpoints."""

from typing import Any, Callable

import httpx

from xrelay.config import RelayConfig, SearchMode
from xrelay.core.stream import SSEDecoder, TweetAccumulator
from xrelay.exceptions import RelayRequestError, StreamParseError
from xrelay.logging import get_logger
from xrelay.models.events import StreamEvent

GENERIC_ERROR_MESSAGE = "Failed to fetch tweets"

EventCallback = Callable[[StreamEvent, TweetAccumulator], None]


class RelayClient:
    """
    Consumes relay streams and accumulates tweets.

    Network and stream failures never raise out of the fetch methods;
    they set ``accumulator.error`` and leave partial results in place.

    Example:
        async with RelayClient() as client:
            acc = await client.fetch_tweets("nasa", cookies, max_tweets=50)
            print(len(acc.tweets), acc.status)
    """

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        config: RelayConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.config = config or RelayConfig()
        self.base_url = (base_url or self.config.relay_url).rstrip("/")
        # Reads stay open for as long as the relay keeps streaming.
        self._timeout = httpx.Timeout(
            timeout or self.config.request_timeout_seconds,
            read=None,
        )
        self._transport = transport
        self._http: httpx.AsyncClient | None = None
        self._log = get_logger("client")

    async def __aenter__(self) -> "RelayClient":
        self._http = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self._timeout,
            transport=self._transport,
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._http:
            await self._http.aclose()
            self._http = None

    async def fetch_tweets(
        self,
        username: str,
        cookies: list[str],
        max_tweets: int | None = None,
        on_event: EventCallback | None = None,
    ) -> TweetAccumulator:
        """Stream a user's timeline into an accumulator."""
        body = {"username": username, "cookies": cookies, "maxTweets": max_tweets}
        return await self._stream("/api/fetch-tweets", body, on_event)

    async def fetch_liked(
        self,
        username: str,
        cookies: list[str],
        max_tweets: int | None = None,
        on_event: EventCallback | None = None,
    ) -> TweetAccumulator:
        """Stream a user's liked tweets into an accumulator."""
        body = {"username": username, "cookies": cookies, "maxTweets": max_tweets}
        return await self._stream("/api/fetch-liked", body, on_event)

    async def search(
        self,
        query: str,
        cookies: list[str],
        max_tweets: int | None = None,
        mode: SearchMode = SearchMode.LATEST,
        on_event: EventCallback | None = None,
    ) -> TweetAccumulator:
        """Stream search results into an accumulator."""
        body = {
            "query": query,
            "cookies": cookies,
            "maxTweets": max_tweets,
            "mode": SearchMode(mode).value,
        }
        return await self._stream("/api/search-tweets", body, on_event)

    async def verify_session(self, cookies: list[str]) -> bool:
        """
        Ask the relay whether the cookies form a logged-in session.

        Raises:
            RelayRequestError: If the relay rejects the request
        """
        response = await self._client().post("/api/session", json={"cookies": cookies})
        if response.is_error:
            raise RelayRequestError(_error_message(response), response.status_code)
        return bool(response.json().get("loggedIn"))

    def _client(self) -> httpx.AsyncClient:
        if self._http is None:
            raise RuntimeError("RelayClient must be used as an async context manager")
        return self._http

    async def _stream(
        self,
        path: str,
        body: dict[str, Any],
        on_event: EventCallback | None,
    ) -> TweetAccumulator:
        accumulator = TweetAccumulator()
        decoder = SSEDecoder()
        payload = {k: v for k, v in body.items() if v is not None}

        def dispatch(events: list[StreamEvent]) -> None:
            for event in events:
                accumulator.apply(event)
                if on_event:
                    on_event(event, accumulator)

        try:
            async with self._client().stream("POST", path, json=payload) as response:
                if response.is_error:
                    await response.aread()
                    accumulator.error = _error_message(response)
                    self._log.warning(
                        "request_rejected",
                        path=path,
                        status=response.status_code,
                        error=accumulator.error,
                    )
                    return accumulator

                async for text in response.aiter_text():
                    dispatch(decoder.feed(text))
                dispatch(decoder.flush())

        except (httpx.HTTPError, StreamParseError) as e:
            self._log.error("stream_failed", path=path, error=str(e))
            accumulator.error = GENERIC_ERROR_MESSAGE

        return accumulator


def _error_message(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return GENERIC_ERROR_MESSAGE
    if isinstance(data, dict) and data.get("error"):
        return str(data["error"])
    return GENERIC_ERROR_MESSAGE
