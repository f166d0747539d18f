"""Chat Relay Application.

This is the main entry point for the chat relay service. Clients connect over
WebSocket to a named conversation, exchange messages, typing indicators and
read receipts, and receive the recent history on join.

Modules:
    - chat: WebSocket endpoint, protocol dispatch, connection registry,
      conversation store and broadcast
    - status: Read-only /health report
    - auth: Token check for incoming connections (accepts all tokens)
"""
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from relay.chat.router import router as chat_router
from relay.chat.service import ChatRelay
from relay.config import RelayConfig, get_config
from relay.status import router as status_router

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup/shutdown events."""
    # Startup
    config: RelayConfig = app.state.config

    # Apply configured log level to root logger so that
    # `logging.level: "debug"` in relay.settings.yaml activates DEBUG output.
    configured_level = getattr(logging, config.logging.level.upper(), None)
    if isinstance(configured_level, int):
        logging.getLogger().setLevel(configured_level)
        logger.info("Root logger level set to %s", config.logging.level.upper())
    else:
        logger.warning("Unknown log level %r, keeping INFO", config.logging.level)

    port = config.server.port
    logger.info(f"WebSocket server running on port {port}")
    logger.info(f"WebSocket URL: ws://localhost:{port}/ws/chat/<conversation_id>?token=<token>")
    logger.info(f"Health check: http://localhost:{port}/health")

    yield  # Application runs here

    # Shutdown: peers are not notified, the server just stops.
    relay: ChatRelay = app.state.relay
    logger.info(
        "Shutting down with %d open connections in %d conversations",
        len(relay.registry),
        len(relay.store),
    )
    logger.info("Application shutdown complete")


def create_app(config: Optional[RelayConfig] = None) -> FastAPI:
    """Build the FastAPI application with its own ChatRelay state.

    Args:
        config: Settings to use. Defaults to the process-wide config.
    """
    config = config or get_config()

    app = FastAPI(
        title="Chat Relay",
        description="Real-time WebSocket chat relay with bounded in-memory history",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.config = config
    app.state.relay = ChatRelay(welcome_message=config.chat.welcome_message)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.server.allowed_origins,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type"],
    )

    app.include_router(chat_router)
    app.include_router(status_router)
    return app


app = create_app()
