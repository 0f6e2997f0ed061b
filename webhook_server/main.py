# webhook_server/main.py
"""
Webhook Server - Main Application

Runs an external program for every request whose path matches a configured
hook, piping the request body into the program's stdin.
"""

import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI

from .config import ConfigError, ServerConfig, load_config
from .dispatch import DispatchService
from .http import DispatchEndpoint
from .listener import resolve_listener
from .logging import configure_logging, get_logger
from .settings import settings

logger = get_logger(__name__)


def create_app(config: ServerConfig) -> FastAPI:
    """
    Build the ASGI application for a validated config.

    The hook table is built here, once, before any connection is accepted.
    Every path belongs to the hooks, so FastAPI's docs routes are disabled.
    """
    service = DispatchService(config.build_registry(), timeout=config.timeout)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        logger.info(
            "server_starting",
            hooks=service.registry.paths(),
            timeout=service.timeout,
        )
        yield
        await service.shutdown()
        logger.info("server_stopped")

    app = FastAPI(
        title="Webhook Server",
        version="0.1.0",
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.dispatch_service = service
    app.add_route("/{path:path}", DispatchEndpoint(service), include_in_schema=False)
    return app


def run():
    """Run the server (entry point for CLI)."""
    import uvicorn

    configure_logging(
        level=settings.log_level,
        json_output=settings.log_json,
        log_file=settings.log_file,
        access_log=settings.access_log,
    )

    try:
        config = load_config(settings.config_path)
        listener = resolve_listener(config)
    except ConfigError as e:
        logger.critical("server_config_invalid", error=str(e))
        sys.exit(1)

    app = create_app(config)
    logger.info("server_listening", listener=listener.describe())

    uvicorn.run(
        app,
        log_config=None,
        access_log=settings.access_log,
        **listener.uvicorn_options(),
    )


if __name__ == "__main__":
    run()
