"""Pydantic models for xrelay."""

from xrelay.models.cookie import Cookie
from xrelay.models.events import (
    CompleteEvent,
    ErrorEvent,
    ProgressEvent,
    StreamEvent,
    TweetEvent,
    TweetRecord,
)
from xrelay.models.media import MediaImage, MediaItem, MediaVideo
from xrelay.models.request import FetchRequest, SearchRequest, SessionRequest

__all__ = [
    "Cookie",
    "FetchRequest",
    "SearchRequest",
    "SessionRequest",
    "StreamEvent",
    "ProgressEvent",
    "TweetEvent",
    "CompleteEvent",
    "ErrorEvent",
    "TweetRecord",
    "MediaItem",
    "MediaImage",
    "MediaVideo",
]
