"""Main application entry point for the whisper STT service."""

import asyncio
import sys
from contextlib import asynccontextmanager
from functools import partial
from pathlib import Path
from typing import Optional

import uvicorn
from fastapi import FastAPI

from . import __version__
from .api import health, metrics, stt
from .api.errors import register_error_handlers
from .api.middleware import AccessLogMiddleware, CORSMiddleware
from .config.loader import load_config
from .config.settings import ModelConfig, Settings
from .core.lifecycle import ServiceLifecycle
from .core.transcriber import ENGINE_THREADS, Transcriber
from .engine.base import ModelLoader
from .utils.logging import get_logger, setup_logging

logger = get_logger(__name__)

# Exit code uvicorn uses when application startup fails
STARTUP_FAILURE = 3


def default_model_loader(config: ModelConfig) -> ModelLoader:
    """Loader for the faster-whisper engine configured from settings."""
    from .engine import faster_whisper

    return partial(
        faster_whisper.load_model,
        device=config.device,
        compute_type=config.compute_type,
        cpu_threads=ENGINE_THREADS,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Load the model before serving; release it after the listener stops."""
    lifecycle: ServiceLifecycle = app.state.lifecycle
    loop = asyncio.get_event_loop()

    # Startup
    logger.info("Starting whisper STT service", extra={"version": __version__})

    # A load failure propagates and uvicorn exits without opening its listener
    await loop.run_in_executor(None, lifecycle.load)
    metrics.model_load_time.labels(model=lifecycle.model_name).set(lifecycle.load_time or 0.0)

    logger.info("Application startup complete")

    yield

    # Shutdown
    logger.info("Shutting down whisper STT service")
    lifecycle.begin_drain()
    idle = await loop.run_in_executor(None, lifecycle.wait_idle)
    if not idle:
        logger.warning(
            "Grace period elapsed with requests in flight",
            extra={"in_flight": lifecycle.in_flight},
        )
    lifecycle.close()


def create_app(
    settings: Optional[Settings] = None,
    model_loader: Optional[ModelLoader] = None,
    config_path: Optional[Path] = None,
) -> FastAPI:
    """Create FastAPI application instance.

    Args:
        settings: Settings to use instead of loading them
        model_loader: Engine loader; defaults to faster-whisper
        config_path: Optional path to configuration file

    Returns:
        Configured FastAPI application
    """
    if settings is None:
        settings = load_config(config_path)

    setup_logging(settings)

    if model_loader is None:
        model_loader = default_model_loader(settings.model)

    app = FastAPI(
        title=settings.app_name,
        version=__version__,
        docs_url="/docs" if settings.environment != "production" else None,
        redoc_url="/redoc" if settings.environment != "production" else None,
        lifespan=lifespan
    )

    lifecycle = ServiceLifecycle(
        settings.model,
        model_loader,
        grace_period=settings.api.shutdown_grace_period,
    )
    app.state.settings = settings
    app.state.lifecycle = lifecycle
    app.state.transcriber = Transcriber(lifecycle)

    register_error_handlers(app)

    # Last added runs first: access logging wraps CORS
    app.middleware("http")(CORSMiddleware())
    app.middleware("http")(AccessLogMiddleware())

    app.include_router(health.router, tags=["health"])
    app.include_router(metrics.router, tags=["monitoring"])
    app.include_router(stt.router, tags=["stt"])

    return app


class DrainingServer(uvicorn.Server):
    """uvicorn server that marks the lifecycle as draining on stop signals."""

    def __init__(self, config: uvicorn.Config, lifecycle: ServiceLifecycle):
        super().__init__(config)
        self.lifecycle = lifecycle

    def handle_exit(self, sig, frame) -> None:
        logger.info(f"Received signal {sig}")
        self.lifecycle.begin_drain()
        super().handle_exit(sig, frame)


def main():
    """Main entry point for running the application."""
    settings = load_config()
    app = create_app(settings)

    config = uvicorn.Config(
        app,
        host=settings.api.host,
        port=settings.api.port,
        timeout_keep_alive=settings.api.keepalive_timeout,
        timeout_graceful_shutdown=int(settings.api.shutdown_grace_period),
        access_log=False,
        log_config=None  # We handle logging ourselves
    )
    server = DrainingServer(config, app.state.lifecycle)

    logger.info(
        "Starting HTTP server",
        extra={
            "port": settings.api.port,
            "model": settings.model.name,
            "max_file_size": settings.api.max_file_size,
        },
    )
    server.run()

    if not server.started:
        sys.exit(STARTUP_FAILURE)


if __name__ == "__main__":
    main()
