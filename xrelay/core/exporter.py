"""Export utilities for accumulated tweets."""

import json
from pathlib import Path
from typing import Any, Iterable

from xrelay.core.media import collect_media, extract_image_urls
from xrelay.exceptions import ExportFormatError
from xrelay.models.events import TweetRecord


def to_json(data: Any, indent: int = 2) -> str:
    """
    Serialize tweets, URLs or media dicts to a JSON string.

    Args:
        data: JSON-compatible value
        indent: JSON indentation level

    Returns:
        JSON string
    """
    return json.dumps(data, indent=indent, ensure_ascii=False)


def tweets_filename(username: str) -> str:
    return f"{username}_tweets.json"


def images_filename(username: str) -> str:
    return f"{username}_images.json"


def media_filename(username: str) -> str:
    return f"{username}_media.json"


def save_json(data: Any, filepath: str | Path, indent: int = 2) -> Path:
    """
    Write a JSON document, creating parent directories.

    Returns:
        Path to saved file
    """
    path = Path(filepath)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(to_json(data, indent), encoding="utf-8")
    return path


def save_tweets(tweets: Iterable[TweetRecord], output_dir: str | Path, username: str) -> Path:
    """Save the full tweet list as ``<username>_tweets.json``."""
    return save_json(list(tweets), Path(output_dir) / tweets_filename(username))


def save_image_urls(tweets: Iterable[TweetRecord], output_dir: str | Path, username: str) -> Path:
    """Save high-resolution photo URLs as ``<username>_images.json``."""
    return save_json(extract_image_urls(tweets), Path(output_dir) / images_filename(username))


def save_media(tweets: Iterable[TweetRecord], output_dir: str | Path, username: str) -> Path:
    """Save media items (tweets with images or videos) as ``<username>_media.json``."""
    items = [item.model_dump(mode="json") for item in collect_media(tweets)]
    return save_json(items, Path(output_dir) / media_filename(username))


def load_tweets(filepath: str | Path) -> list[TweetRecord]:
    """
    Load a tweet export written by save_tweets.

    Raises:
        ExportFormatError: If the file is not a JSON array of objects
        OSError: If the file cannot be read
    """
    path = Path(filepath)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ExportFormatError(f"{path.name} is not valid JSON: {e.msg}") from e

    if not isinstance(data, list):
        raise ExportFormatError(f"{path.name}: expected an array of tweets")
    for index, tweet in enumerate(data):
        if not isinstance(tweet, dict):
            raise ExportFormatError(f"{path.name}: invalid tweet at index {index}")
    return data
