"""TweetSource backed by the twikit client."""

from contextlib import aclosing
from datetime import datetime
from typing import Any, AsyncIterator, Awaitable, Callable

from twikit import Client
from twikit.errors import TwitterException

from xrelay.config import RelayConfig, SearchMode
from xrelay.core.cookies import cookie_pairs
from xrelay.core.source import TweetSource
from xrelay.exceptions import CredentialsError, UpstreamError
from xrelay.logging import get_logger
from xrelay.models.events import TweetRecord

TWITTER_DATE_FORMAT = "%a %b %d %H:%M:%S %z %Y"


def _parse_created_at(raw: Any) -> datetime | None:
    if isinstance(raw, datetime):
        return raw
    if isinstance(raw, str) and raw:
        try:
            return datetime.strptime(raw, TWITTER_DATE_FORMAT)
        except ValueError:
            return None
    return None


def _media_entities(tweet: Any) -> list[dict]:
    """Raw media entities from the tweet's legacy payload."""
    data = getattr(tweet, "_data", None) or {}
    legacy = data.get("legacy") or {}
    entities = legacy.get("extended_entities") or legacy.get("entities") or {}
    return entities.get("media") or []


def _best_variant(media: dict) -> str | None:
    """Highest-bitrate MP4 variant of a video entity."""
    variants = (media.get("video_info") or {}).get("variants") or []
    mp4 = [v for v in variants if v.get("content_type") == "video/mp4" and v.get("url")]
    if not mp4:
        return None
    return max(mp4, key=lambda v: v.get("bitrate") or 0)["url"]


def tweet_to_record(tweet: Any) -> TweetRecord:
    """
    Flatten a twikit Tweet into a JSON-safe record.

    Keys follow the camelCase shape browser clients expect (id, text,
    username, createdAt, photos[].url, videos[].url ...).
    """
    user = getattr(tweet, "user", None)
    username = getattr(user, "screen_name", None) if user else None
    tweet_id = str(getattr(tweet, "id", "") or "")
    created = _parse_created_at(getattr(tweet, "created_at", None))

    photos = []
    videos = []
    for media in _media_entities(tweet):
        media_id = media.get("id_str")
        if media.get("type") == "photo":
            photos.append({"id": media_id, "url": media.get("media_url_https")})
        elif media.get("type") in ("video", "animated_gif"):
            videos.append({
                "id": media_id,
                "preview": media.get("media_url_https"),
                "url": _best_variant(media),
            })

    return {
        "id": tweet_id,
        "text": getattr(tweet, "full_text", None) or getattr(tweet, "text", "") or "",
        "username": username,
        "name": getattr(user, "name", None) if user else None,
        "userId": str(getattr(user, "id", "")) if user else None,
        "createdAt": created.isoformat() if created else None,
        "timestamp": int(created.timestamp()) if created else None,
        "permanentUrl": f"https://x.com/{username}/status/{tweet_id}" if username else None,
        "likes": getattr(tweet, "favorite_count", None),
        "retweets": getattr(tweet, "retweet_count", None),
        "replies": getattr(tweet, "reply_count", None),
        "views": getattr(tweet, "view_count", None),
        "hashtags": list(getattr(tweet, "hashtags", None) or []),
        "photos": photos,
        "videos": videos,
        "isReply": bool(getattr(tweet, "in_reply_to", None)),
        "isQuote": bool(getattr(tweet, "is_quote_status", False)),
        "isRetweet": getattr(tweet, "retweeted_tweet", None) is not None,
        "conversationId": getattr(tweet, "conversation_id", None),
    }


class TwikitSource(TweetSource):
    """
    Scraper session over a fresh twikit Client.

    Example:
        async with TwikitSource(config) as source:
            await source.install_credentials(cookies)
            async for record in source.iterate_tweets("nasa", 50):
                print(record["text"])
    """

    def __init__(self, config: RelayConfig | None = None, client: Client | None = None):
        self.config = config or RelayConfig()
        self._client = client or Client(
            language=self.config.language,
            proxy=self.config.proxy_url,
        )
        self._log = get_logger("twikit_source")

    async def install_credentials(self, cookies: list[str]) -> None:
        pairs = cookie_pairs(cookies)
        if not pairs:
            raise CredentialsError("No usable cookies supplied")
        self._client.set_cookies(pairs)
        self._log.debug("cookies_installed", names=sorted(pairs))

    async def _user_id(self, username: str) -> str:
        try:
            user = await self._client.get_user_by_screen_name(username)
        except TwitterException as e:
            raise UpstreamError(f"Could not resolve @{username}: {e}") from e
        return user.id

    async def _paginate(
        self,
        first_page: Callable[[], Awaitable[Any]],
        limit: int,
    ) -> AsyncIterator[TweetRecord]:
        yielded = 0
        try:
            page = await first_page()
            while page is not None and len(page) > 0:
                for tweet in page:
                    yield tweet_to_record(tweet)
                    yielded += 1
                    if yielded >= limit:
                        return
                if not getattr(page, "next_cursor", None):
                    return
                page = await page.next()
        except TwitterException as e:
            raise UpstreamError(str(e) or "Upstream request failed") from e

    async def iterate_tweets(self, username: str, max_tweets: int) -> AsyncIterator[TweetRecord]:
        user_id = await self._user_id(username)
        pages = self._paginate(
            lambda: self._client.get_user_tweets(user_id, "Tweets", count=self.config.page_size),
            max_tweets,
        )
        async with aclosing(pages):
            async for record in pages:
                yield record

    async def iterate_liked(self, username: str, max_tweets: int) -> AsyncIterator[TweetRecord]:
        user_id = await self._user_id(username)
        pages = self._paginate(
            lambda: self._client.get_user_tweets(user_id, "Likes", count=self.config.page_size),
            max_tweets,
        )
        async with aclosing(pages):
            async for record in pages:
                yield record

    async def search(
        self,
        query: str,
        max_tweets: int,
        mode: SearchMode = SearchMode.LATEST,
    ) -> AsyncIterator[TweetRecord]:
        product = SearchMode(mode).value
        pages = self._paginate(
            lambda: self._client.search_tweet(query, product, count=self.config.page_size),
            max_tweets,
        )
        async with aclosing(pages):
            async for record in pages:
                yield record

    async def is_logged_in(self) -> bool:
        """Ask the upstream for the session's own account."""
        try:
            await self._client.user()
        except Exception as e:
            self._log.info("session_check_failed", error=str(e))
            return False
        return True

    async def close(self) -> None:
        await self._client.http.aclose()
