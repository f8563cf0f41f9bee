"""Abstract interface to the external scraping library."""

from abc import ABC, abstractmethod
from typing import AsyncIterator, Callable

from xrelay.config import SearchMode
from xrelay.models.events import TweetRecord


class TweetSource(ABC):
    """
    Narrow view of a scraper session.

    Iterators returned here are lazy, finite and non-restartable. Records
    are opaque dicts; the relay never inspects them.
    """

    @abstractmethod
    async def install_credentials(self, cookies: list[str]) -> None:
        """
        Install session cookies.

        Args:
            cookies: Serialized cookie strings

        Raises:
            CredentialsError: If no usable cookie was supplied
        """
        ...

    @abstractmethod
    def iterate_tweets(self, username: str, max_tweets: int) -> AsyncIterator[TweetRecord]:
        """Yield up to max_tweets tweets from a user's timeline."""
        ...

    @abstractmethod
    def iterate_liked(self, username: str, max_tweets: int) -> AsyncIterator[TweetRecord]:
        """Yield up to max_tweets tweets the user has liked."""
        ...

    @abstractmethod
    def search(
        self,
        query: str,
        max_tweets: int,
        mode: SearchMode = SearchMode.LATEST,
    ) -> AsyncIterator[TweetRecord]:
        """Yield up to max_tweets tweets matching query."""
        ...

    @abstractmethod
    async def is_logged_in(self) -> bool:
        """Check whether the installed cookies form a live session."""
        ...

    @abstractmethod
    async def close(self) -> None:
        """Release network resources."""
        ...

    async def __aenter__(self) -> "TweetSource":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()


SourceFactory = Callable[[], TweetSource]
