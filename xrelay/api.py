"""FastAPI server relaying scraper results as server-sent events."""

from contextlib import asynccontextmanager
from datetime import datetime
from functools import lru_cache
from typing import AsyncIterator

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel, Field

from xrelay import __version__
from xrelay.config import RelayConfig
from xrelay.core.relay import TweetRelay, encode_event
from xrelay.logging import configure_logging, get_logger
from xrelay.models.events import StreamEvent
from xrelay.models.request import FetchRequest, SearchRequest, SessionRequest

INVALID_REQUEST_MESSAGE = "Invalid request parameters"

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}

log = get_logger("api")


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
    timestamp: str


class SessionResponse(BaseModel):
    """Login state for a set of cookies."""

    logged_in: bool = Field(..., serialization_alias="loggedIn")


class ConfigResponse(BaseModel):
    """Relay defaults applied to stream requests."""

    default_max_tweets: int = Field(
        ...,
        description="Tweets relayed when a request omits maxTweets.",
        json_schema_extra={"example": 200},
    )
    max_tweets_cap: int = Field(
        ...,
        description="Upper bound applied to any requested maxTweets.",
        json_schema_extra={"example": 10000},
    )
    progress_interval: int = Field(
        ...,
        description="A progress event is emitted after every N relayed tweets.",
        json_schema_extra={"example": 10},
    )
    legacy_cookie_domain: bool = Field(
        ...,
        description="Rewrite x.com cookie domains to twitter.com before installing them.",
        json_schema_extra={"example": True},
    )


@lru_cache
def get_config() -> RelayConfig:
    return RelayConfig()


def get_relay(config: RelayConfig = Depends(get_config)) -> TweetRelay:
    """Fresh relay per request; each stream builds its own scraper session."""
    return TweetRelay(config)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Configure logging once the server starts."""
    configure_logging(get_config())
    log.info("relay_server_started", version=__version__)
    yield


app = FastAPI(
    title="xrelay API",
    description="Streams X/Twitter scraper results as server-sent events",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_config().cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    """Reject malformed bodies before any stream is opened."""
    log.info("request_rejected", path=request.url.path, errors=len(exc.errors()))
    return JSONResponse(status_code=400, content={"error": INVALID_REQUEST_MESSAGE})


def _event_stream(events: AsyncIterator[StreamEvent]) -> StreamingResponse:
    async def body():
        async for event in events:
            yield encode_event(event)

    return StreamingResponse(body(), media_type="text/event-stream", headers=SSE_HEADERS)


@app.get("/health", response_model=HealthResponse, tags=["System"])
async def health_check():
    """Check API health status."""
    return HealthResponse(
        status="healthy",
        version=__version__,
        timestamp=datetime.now().isoformat(),
    )


@app.get("/api/config", response_model=ConfigResponse, tags=["System"])
async def get_default_config(config: RelayConfig = Depends(get_config)):
    """
    Get relay defaults.

    **Defaults can be changed via environment variables** with the `XRELAY_` prefix:
    - `XRELAY_DEFAULT_MAX_TWEETS=100`
    - `XRELAY_PROGRESS_INTERVAL=100`
    """
    return ConfigResponse(
        default_max_tweets=config.default_max_tweets,
        max_tweets_cap=config.max_tweets_cap,
        progress_interval=config.progress_interval,
        legacy_cookie_domain=config.legacy_cookie_domain,
    )


@app.post("/api/fetch-tweets", tags=["Streaming"])
async def fetch_tweets(
    payload: FetchRequest,
    request: Request,
    relay: TweetRelay = Depends(get_relay),
):
    """
    Stream a user's timeline as server-sent events.

    Each `data:` frame is one JSON event: `progress`, `tweet`, and finally
    `complete` or `error`.
    """
    return _event_stream(relay.stream_tweets(payload, request.is_disconnected))


@app.post("/api/fetch-liked", tags=["Streaming"])
async def fetch_liked(
    payload: FetchRequest,
    request: Request,
    relay: TweetRelay = Depends(get_relay),
):
    """Stream tweets liked by a user as server-sent events."""
    return _event_stream(relay.stream_liked(payload, request.is_disconnected))


@app.post("/api/search-tweets", tags=["Streaming"])
async def search_tweets(
    payload: SearchRequest,
    request: Request,
    relay: TweetRelay = Depends(get_relay),
):
    """Stream search results as server-sent events."""
    return _event_stream(relay.stream_search(payload, request.is_disconnected))


@app.post(
    "/api/session",
    response_model=SessionResponse,
    response_model_by_alias=True,
    tags=["Session"],
)
async def verify_session(
    payload: SessionRequest,
    relay: TweetRelay = Depends(get_relay),
):
    """Check whether the supplied cookies belong to a logged-in session."""
    return SessionResponse(logged_in=await relay.verify_session(payload))


if __name__ == "__main__":
    import uvicorn

    config = get_config()
    uvicorn.run(app, host=config.host, port=config.port)
