"""Image and video extraction from tweet records."""

from typing import Iterable

from xrelay.models.events import TweetRecord
from xrelay.models.media import MediaImage, MediaItem, MediaVideo

LARGE_IMAGE_QUERY = "format=jpg&name=large"


def strip_query(url: str) -> str:
    """Drop everything from the first '?'."""
    return url.split("?", 1)[0]


def high_res_image_url(url: str) -> str:
    """
    Normalize a photo URL to its large variant.

    Examples:
        ".../img?format=jpg&name=small" -> ".../img?format=jpg&name=large"
        ".../img.jpg" -> ".../img.jpg?format=jpg&name=large"
    """
    return f"{strip_query(url)}?{LARGE_IMAGE_QUERY}"


def image_variant(url: str, size: str) -> str:
    """
    Point a photo URL at a named size such as "large" or "orig".

    Query-less CDN URLs get a `name` parameter; URLs already carrying
    `&name=small` have it swapped.
    """
    if "?" not in url:
        return f"{url}?name={size}"
    return url.replace("&name=small", f"&name={size}")


def photo_urls(record: TweetRecord) -> list[str]:
    """Photo URLs present on a record, in order."""
    photos = record.get("photos")
    if not isinstance(photos, list):
        return []
    return [p["url"] for p in photos if isinstance(p, dict) and p.get("url")]


def extract_image_urls(tweets: Iterable[TweetRecord]) -> list[str]:
    """High-resolution URLs for every photo across tweets, preserving order."""
    return [high_res_image_url(url) for tweet in tweets for url in photo_urls(tweet)]


def to_media_item(record: TweetRecord) -> MediaItem | None:
    """
    Build a media view of a tweet record.

    Returns:
        MediaItem, or None when the tweet has no images or videos
    """
    images = [
        MediaImage(
            url=image_variant(url, "large"),
            url_original=image_variant(url, "orig"),
        )
        for url in photo_urls(record)
    ]

    videos = []
    for video in record.get("videos") or []:
        if isinstance(video, dict) and video.get("url"):
            videos.append(MediaVideo(
                url=strip_query(video["url"]),
                thumbnail_url=video.get("preview"),
            ))

    if not images and not videos:
        return None

    tweet_id = record.get("id")
    return MediaItem(
        tweet_id=str(tweet_id) if tweet_id is not None else None,
        tweet_url=record.get("permanentUrl"),
        username=record.get("username"),
        text=record.get("text"),
        timestamp=record.get("timestamp"),
        likes=record.get("likes"),
        retweets=record.get("retweets"),
        images=images,
        videos=videos,
    )


def collect_media(tweets: Iterable[TweetRecord]) -> list[MediaItem]:
    """Media items for tweets that carry at least one image or video."""
    items = (to_media_item(tweet) for tweet in tweets)
    return [item for item in items if item is not None]
