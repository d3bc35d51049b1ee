"""
FastAPI server exposing the aggregator to a host application.

Provides:
- Health check endpoint
- Latest news endpoint
- Feed management endpoints
- Cache, status and configuration endpoints
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import Response
from pydantic import BaseModel
from starlette.concurrency import run_in_threadpool

from . import __version__
from .config import get_settings
from .logging_conf import get_logger, setup_logging
from .scheduler import RefreshScheduler
from .service import NewsService

logger = get_logger(__name__)

VERSION = __version__


# Pydantic models for API
class HealthResponse(BaseModel):
    status: str
    timestamp: str
    version: str = VERSION


class FeedRequest(BaseModel):
    url: str


class FeedActiveRequest(BaseModel):
    url: str
    active: bool


class CacheTTLRequest(BaseModel):
    seconds: int


class ResultResponse(BaseModel):
    success: bool
    message: str


class RefreshResponse(BaseModel):
    feeds_refreshed: int


def _json(body: str) -> Response:
    # Service methods already return serialized JSON
    return Response(content=body, media_type="application/json")


def create_app(
    service: Optional[NewsService] = None,
    with_scheduler: Optional[bool] = None,
) -> FastAPI:
    """
    Build the FastAPI app.

    Args:
        service: Pre-built service (tests); one is created from settings if None
        with_scheduler: Override ``settings.enable_scheduler``

    Returns:
        Configured FastAPI application
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        settings = get_settings()

        setup_logging(
            level=settings.log_level,
            json_output=settings.log_json,
        )

        logger.info("server_starting")

        news = service or NewsService(settings=settings)
        news.initialize()
        app.state.news = news

        scheduler = None
        enable = settings.enable_scheduler if with_scheduler is None else with_scheduler
        if enable:
            scheduler = RefreshScheduler(news, interval_seconds=settings.refresh_interval_seconds)
            scheduler.start()
            logger.info("scheduler_enabled")
        app.state.scheduler = scheduler

        yield

        if scheduler:
            scheduler.stop()
        if service is None:
            news.close()

        logger.info("server_stopped")

    app = FastAPI(
        title="Newsdesk",
        description="RSS/Atom aggregation with a response cache",
        version=VERSION,
        lifespan=lifespan,
    )

    def _service(request: Request) -> NewsService:
        return request.app.state.news

    @app.get("/health", response_model=HealthResponse)
    async def health_check():
        """Health check endpoint."""
        return HealthResponse(
            status="ok",
            timestamp=datetime.now(timezone.utc).isoformat(),
        )

    # Handlers that may hit the network are sync so FastAPI runs them
    # in its threadpool instead of blocking the event loop

    @app.get("/news")
    def latest_news(request: Request, force_refresh: bool = False):
        """Latest deduplicated articles across active feeds."""
        return _json(_service(request).get_latest_news(force_refresh=force_refresh))

    @app.get("/feeds")
    def list_feeds(request: Request):
        """All configured feeds with their health metadata."""
        return _json(_service(request).get_feeds())

    @app.post("/feeds", response_model=ResultResponse)
    def add_feed(request: Request, body: FeedRequest):
        """Add a feed (validated with a live fetch)."""
        if not _service(request).add_feed(body.url):
            raise HTTPException(status_code=400, detail=f"Could not add feed {body.url}")
        return ResultResponse(success=True, message=f"Feed added: {body.url}")

    @app.delete("/feeds", response_model=ResultResponse)
    def remove_feed(request: Request, url: str):
        """Remove a feed and its cache entry."""
        if not _service(request).remove_feed(url):
            raise HTTPException(status_code=404, detail="Feed not found")
        return ResultResponse(success=True, message=f"Feed removed: {url}")

    @app.patch("/feeds/active", response_model=ResultResponse)
    def set_feed_active(request: Request, body: FeedActiveRequest):
        """Enable or disable a feed."""
        if not _service(request).set_feed_active(body.url, body.active):
            raise HTTPException(status_code=404, detail="Feed not found")
        state = "enabled" if body.active else "disabled"
        return ResultResponse(success=True, message=f"Feed {state}: {body.url}")

    @app.post("/refresh", response_model=RefreshResponse)
    def refresh(request: Request):
        """Force-refresh every active feed."""
        return RefreshResponse(feeds_refreshed=_service(request).refresh_all_feeds())

    @app.get("/status")
    def status(request: Request):
        """Service status and configuration."""
        return _json(_service(request).get_status())

    @app.post("/cache/clear", response_model=ResultResponse)
    def clear_cache(request: Request):
        """Drop every cached feed."""
        _service(request).clear_cache()
        return ResultResponse(success=True, message="Cache cleared")

    @app.put("/cache/ttl", response_model=ResultResponse)
    def set_cache_ttl(request: Request, body: CacheTTLRequest):
        """Change the TTL for entries stored from now on."""
        news = _service(request)
        news.set_cache_ttl(body.seconds)
        return ResultResponse(success=True, message=f"Cache TTL set to {news.cache_ttl_seconds}s")

    @app.post("/config", response_model=ResultResponse)
    async def apply_config(request: Request):
        """Apply a raw configuration blob (feeds, cache_ttl, max_articles_per_feed)."""
        blob = await request.body()
        news = _service(request)
        # add_feed performs network I/O; keep it off the event loop
        if not await run_in_threadpool(news.apply_config, blob):
            raise HTTPException(status_code=400, detail="Invalid configuration")
        return ResultResponse(success=True, message="Configuration applied")

    return app


def run_server(
    host: str = "0.0.0.0",
    port: Optional[int] = None,
    with_scheduler: bool = False,
):
    """
    Run the FastAPI server.

    Args:
        host: Host to bind to
        port: Port to bind to (defaults to settings.port)
        with_scheduler: Whether to enable the periodic refresher
    """
    import uvicorn

    settings = get_settings()
    port = port or settings.port

    logger.info("starting_server", host=host, port=port)

    uvicorn.run(
        create_app(with_scheduler=with_scheduler or None),
        host=host,
        port=port,
        log_level="info",
    )


app = create_app()
