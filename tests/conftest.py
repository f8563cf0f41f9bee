"""Shared fixtures - a scripted TweetSource stands in for twikit."""

import pytest
import structlog

from xrelay.config import RelayConfig, SearchMode
from xrelay.core.source import TweetSource
from xrelay.exceptions import CredentialsError, UpstreamError


def make_tweets(count: int, photos: bool = False) -> list[dict]:
    """Build tweet records shaped like the twikit adapter's output."""
    tweets = []
    for i in range(count):
        tweet = {"id": str(i), "text": f"tweet {i}", "createdAt": "2024-01-01T00:00:00+00:00"}
        if photos:
            tweet["photos"] = [{"id": f"p{i}", "url": f"https://example/img{i}?format=jpg&name=small"}]
        tweets.append(tweet)
    return tweets


class FakeTweetSource(TweetSource):
    """
    Yields scripted records and records how it was used.

    Args:
        tweets: Records to yield
        fail_after: Raise UpstreamError after yielding this many records
        reject_cookies: Raise CredentialsError from install_credentials
        logged_in: Value for is_logged_in
    """

    def __init__(
        self,
        tweets: list[dict] | None = None,
        fail_after: int | None = None,
        reject_cookies: bool = False,
        logged_in: bool = True,
    ):
        self.tweets = tweets or []
        self.fail_after = fail_after
        self.reject_cookies = reject_cookies
        self.logged_in = logged_in
        self.installed: list[str] | None = None
        self.requested: list[tuple] = []
        self.yielded = 0
        self.closed = False

    async def install_credentials(self, cookies: list[str]) -> None:
        if self.reject_cookies:
            raise CredentialsError("Invalid cookies")
        self.installed = cookies

    async def _iterate(self, max_tweets: int):
        for tweet in self.tweets:
            if self.fail_after is not None and self.yielded >= self.fail_after:
                raise UpstreamError("Upstream connection reset")
            self.yielded += 1
            yield tweet
        if self.fail_after is not None and self.yielded >= self.fail_after:
            raise UpstreamError("Upstream connection reset")

    def iterate_tweets(self, username: str, max_tweets: int):
        self.requested.append(("tweets", username, max_tweets))
        return self._iterate(max_tweets)

    def iterate_liked(self, username: str, max_tweets: int):
        self.requested.append(("liked", username, max_tweets))
        return self._iterate(max_tweets)

    def search(self, query: str, max_tweets: int, mode: SearchMode = SearchMode.LATEST):
        self.requested.append(("search", query, max_tweets, mode))
        return self._iterate(max_tweets)

    async def is_logged_in(self) -> bool:
        return self.logged_in

    async def close(self) -> None:
        self.closed = True


COOKIES = ["auth_token=abc; Domain=.twitter.com; Path=/; Secure; HttpOnly", "ct0=xyz"]


@pytest.fixture
def config() -> RelayConfig:
    return RelayConfig(progress_interval=10, default_max_tweets=200, max_tweets_cap=10000)


@pytest.fixture
def cookies() -> list[str]:
    return list(COOKIES)


@pytest.fixture(autouse=True)
def _reset_structlog():
    """Drop logging config bound to a per-test captured stderr."""
    yield
    structlog.reset_defaults()
