"""Browser cookie model."""

from pydantic import AliasChoices, BaseModel, Field


class Cookie(BaseModel):
    """A cookie as exported from a browser session (cookies.json)."""

    name: str = Field(validation_alias=AliasChoices("name", "key"))
    value: str
    domain: str | None = None
    path: str | None = None
    secure: bool = False
    http_only: bool = Field(
        default=False,
        validation_alias=AliasChoices("httpOnly", "http_only"),
    )

    model_config = {"extra": "ignore"}
