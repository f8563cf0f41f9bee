"""Server-sent event payloads.

Every payload is a flat JSON object tagged by ``type``. A stream carries
any number of ``progress`` and ``tweet`` events followed by exactly one
``complete`` or ``error`` event.
"""

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter

TweetRecord = dict[str, Any]


class ProgressEvent(BaseModel):
    type: Literal["progress"] = "progress"
    message: str


class TweetEvent(BaseModel):
    type: Literal["tweet"] = "tweet"
    tweet: TweetRecord


class CompleteEvent(BaseModel):
    type: Literal["complete"] = "complete"
    count: int


class ErrorEvent(BaseModel):
    type: Literal["error"] = "error"
    message: str


StreamEvent = Annotated[
    Union[ProgressEvent, TweetEvent, CompleteEvent, ErrorEvent],
    Field(discriminator="type"),
]

stream_event_adapter: TypeAdapter[StreamEvent] = TypeAdapter(StreamEvent)
