"""xrelay - stream X/Twitter scraper results over server-sent events."""

from xrelay.config import RelayConfig
from xrelay.models.cookie import Cookie
from xrelay.models.request import FetchRequest, SearchRequest, SessionRequest
from xrelay.core.cookies import parse_cookie_json, serialize_cookie, serialize_cookies
from xrelay.core.relay import TweetRelay, encode_event
from xrelay.core.source import TweetSource
from xrelay.core.stream import SSEDecoder, TweetAccumulator
from xrelay.core.exporter import save_tweets, save_image_urls, save_media

__version__ = "0.1.0"

__all__ = [
    # Main interface
    "TweetRelay",
    "TweetSource",
    "RelayConfig",
    # Models
    "Cookie",
    "FetchRequest",
    "SearchRequest",
    "SessionRequest",
    # Cookie adapter
    "parse_cookie_json",
    "serialize_cookie",
    "serialize_cookies",
    # Stream consumption
    "SSEDecoder",
    "TweetAccumulator",
    "encode_event",
    # Export utilities
    "save_tweets",
    "save_image_urls",
    "save_media",
    "__version__",
]
