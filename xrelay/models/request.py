"""Request bodies accepted by the relay endpoints."""

from pydantic import BaseModel, Field, field_validator

from xrelay.config import SearchMode
from xrelay.models.cookie import Cookie


class SessionRequest(BaseModel):
    """Cookies for a single scraper session."""

    cookies: list[str | Cookie] = Field(..., min_length=1)

    model_config = {"populate_by_name": True}


class FetchRequest(SessionRequest):
    """Request body for timeline and liked-tweet streams."""

    username: str = Field(..., description="Twitter username, with or without @")
    max_tweets: int | None = Field(
        default=None,
        ge=1,
        alias="maxTweets",
        description="Maximum tweets to relay; server default when omitted",
    )

    @field_validator("username")
    @classmethod
    def _normalize_username(cls, value: str) -> str:
        username = value.strip().lstrip("@")
        if not username:
            raise ValueError("username must not be empty")
        return username


class SearchRequest(SessionRequest):
    """Request body for search streams."""

    query: str = Field(..., description="Search query, e.g. 'cats filter:media'")
    max_tweets: int | None = Field(default=None, ge=1, alias="maxTweets")
    mode: SearchMode = SearchMode.LATEST

    @field_validator("query")
    @classmethod
    def _require_query(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("query must not be empty")
        return value.strip()
