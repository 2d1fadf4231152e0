"""FastMCP server exposing the cached CoinCap asset snapshot."""

from __future__ import annotations

from typing import Any

import httpx
import structlog
import uvicorn
from fastmcp import FastMCP
from pydantic import BaseModel, ConfigDict, Field
from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

from coincap_live.client import CoinCapClient
from coincap_live.config import Config
from coincap_live.scheduler import RefreshScheduler
from coincap_live.state import Snapshot, SnapshotStore

logger = structlog.get_logger(__name__)


class LivePayload(BaseModel):
    """Body of ``GET /api/live``."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    limit_reached: bool = Field(alias='limitReached')
    data: list[Any]

    @classmethod
    def from_snapshot(cls, snapshot: Snapshot) -> LivePayload:
        return cls(limit_reached=snapshot.limit_reached, data=list(snapshot.assets))


class HealthPayload(BaseModel):
    """Body of ``GET /health``."""

    model_config = ConfigDict(populate_by_name=True)

    status: str
    calls: int
    max_requests: int = Field(alias='maxRequests')
    last_updated: str | None = Field(default=None, alias='lastUpdated')
    last_latency_ms: float | None = Field(default=None, alias='lastLatencyMs')
    last_error: str | None = Field(default=None, alias='lastError')

    @classmethod
    def from_snapshot(cls, snapshot: Snapshot) -> HealthPayload:
        return cls(
            status='frozen' if snapshot.limit_reached else 'ok',
            calls=snapshot.calls,
            max_requests=snapshot.max_requests,
            last_updated=snapshot.updated_at.isoformat() if snapshot.updated_at else None,
            last_latency_ms=snapshot.last_latency_ms,
            last_error=snapshot.last_error,
        )


def create_server(
    config: Config | None = None,
    *,
    store: SnapshotStore | None = None,
) -> FastMCP:
    """Create the FastMCP server that serves the cached asset snapshot.

    Registers the ``GET /api/live`` and ``GET /health`` HTTP routes and a
    read-only ``coincap_live_assets`` MCP tool. None of them ever calls the
    upstream API; they only read ``store``.

    Args:
        config: Configuration instance. If None, will be created from environment.
        store: Snapshot store shared with the refresh scheduler. A fresh one
            sized from ``config.max_requests`` is created if None.

    Returns:
        Configured FastMCP server instance.
    """

    config = config or Config.from_env()
    store = store or SnapshotStore(config.max_requests)

    mcp = FastMCP(name='coincap')

    @mcp.custom_route('/api/live', methods=['GET'])
    async def live(_: Request) -> JSONResponse:
        payload = LivePayload.from_snapshot(store.snapshot())
        return JSONResponse(payload.model_dump(by_alias=True))

    @mcp.custom_route('/health', methods=['GET'])
    async def health(_: Request) -> JSONResponse:
        payload = HealthPayload.from_snapshot(store.snapshot())
        return JSONResponse(payload.model_dump(by_alias=True))

    @mcp.tool(
        name='coincap_live_assets',
        description=(
            'Return the most recently cached CoinCap asset list. The cache is refreshed '
            'in the background; limitReached is true once the upstream call budget is '
            'spent and the data will no longer change.'
        ),
        annotations={'readOnlyHint': True, 'idempotentHint': True},
    )
    async def coincap_live_assets() -> dict[str, Any]:
        return LivePayload.from_snapshot(store.snapshot()).model_dump(by_alias=True)

    return mcp


def create_app(server: FastMCP, config: Config) -> Starlette:
    """Build the ASGI application with CORS enabled for the configured origins."""
    middleware = [
        Middleware(
            CORSMiddleware,
            allow_origins=list(config.cors_origins),
            allow_methods=['GET'],
            allow_headers=['*'],
        )
    ]
    return server.http_app(middleware=middleware)


async def serve(
    config: Config | None = None,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> None:
    """Run the refresh scheduler and the HTTP server until shutdown.

    The first refresh starts immediately, alongside the listener.
    """

    config = config or Config.from_env()
    if not config.api_key:
        logger.warning(
            'missing_api_key',
            detail='COIN_CAP_API_KEY is not set; upstream calls will fail and spend the budget',
        )

    store = SnapshotStore(config.max_requests)
    async with CoinCapClient(config, transport=transport) as client:
        scheduler = RefreshScheduler(client, store, interval=config.refresh_interval)
        app = create_app(create_server(config, store=store), config)
        server = uvicorn.Server(
            uvicorn.Config(app, host=config.host, port=config.port, log_level=config.log_level)
        )

        scheduler.start()
        logger.info(
            'server_starting',
            url=f'http://{config.host}:{config.port}',
            refresh_interval=config.refresh_interval,
            max_requests=config.max_requests,
        )
        try:
            await server.serve()
        finally:
            await scheduler.stop()
