"""Media view over tweet records."""

from pydantic import BaseModel


class MediaImage(BaseModel):
    url: str
    url_original: str


class MediaVideo(BaseModel):
    url: str
    thumbnail_url: str | None = None


class MediaItem(BaseModel):
    """Images and videos attached to one tweet."""

    tweet_id: str | None = None
    tweet_url: str | None = None
    username: str | None = None
    text: str | None = None
    timestamp: int | None = None
    likes: int | None = None
    retweets: int | None = None
    images: list[MediaImage] = []
    videos: list[MediaVideo] = []
