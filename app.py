import asyncio
import time
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from backend import RedisBackend, listen_for_commands
from constants import CORS_ORIGINS, LOG_FILE, LOG_LEVEL, REDIS_INGRESS_ENABLED
from logging_config import get_logger, setup_logging
from registry import ConnectionRegistry
from relay import ChannelRelay
from routers.broadcast import broadcast_router
from routers.rooms import rooms_router
from routers.socket import socket_router
from schemas.rooms import HealthResponse
from transport import WebSocketTransport

# Setup logging
setup_logging(log_level=LOG_LEVEL, log_file=LOG_FILE)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start the Redis command listener when a backend is configured."""
    redis_backend: Optional[RedisBackend] = app.state.redis_backend
    if redis_backend is None and app.state.redis_ingress:
        redis_backend = RedisBackend.from_url()
        app.state.redis_backend = redis_backend

    listener: Optional[asyncio.Task] = None
    if redis_backend is not None:
        listener = asyncio.create_task(listen_for_commands(app.state.relay, redis_backend), name="redis-command-listener")

    logger.info("Relay started")
    try:
        yield
    finally:
        if listener is not None:
            listener.cancel()
            try:
                await listener
            except asyncio.CancelledError:
                pass
        if redis_backend is not None:
            redis_backend.close()
        logger.info("Relay stopped")


def create_app(
    relay: Optional[ChannelRelay] = None,
    transport: Optional[WebSocketTransport] = None,
    redis_backend: Optional[RedisBackend] = None,
    redis_ingress: bool = REDIS_INGRESS_ENABLED,
) -> FastAPI:
    """Build a relay application around its own relay instance.

    Tests and embedders pass their own ``relay``; the module-level ``app`` below
    is the uvicorn entry point.
    """
    transport = transport if transport is not None else WebSocketTransport()
    if relay is None:
        relay = ChannelRelay(ConnectionRegistry())
    relay.attach_transport(transport)

    app = FastAPI(title="Game room relay", lifespan=lifespan)
    app.state.relay = relay
    app.state.transport = transport
    app.state.redis_backend = redis_backend
    app.state.redis_ingress = redis_ingress
    app.state.started_at = time.monotonic()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(broadcast_router)
    app.include_router(rooms_router)
    app.include_router(socket_router)

    @app.get("/health", response_model=HealthResponse)
    async def health():
        return HealthResponse(
            status="ok",
            clients=relay.registry.snapshot(),
            rooms=relay.channel_count(),
            uptime=round(time.monotonic() - app.state.started_at, 3),
            timestamp=datetime.now().isoformat(),
        )

    logger.info("FastAPI application initialized")
    return app


app = create_app()
