"""
FastAPI application running the bundled plugins in front of its routes.
"""

from contextlib import asynccontextmanager

from fastapi import APIRouter, FastAPI

from .config import Settings, get_settings
from .lib.logging_utils import get_logger, setup_logging
from .lib.middleware import install_plugin_middleware
from .lib.plugins import PluginSystem
from .plugins import create_rate_limiter_plugin, create_security_plugin


logger = get_logger(__name__)


def build_plugin_system(settings: Settings) -> PluginSystem:
    """
    Create the plugin system with the bundled plugins enabled in the settings.

    Args:
        settings: Application settings

    Returns:
        PluginSystem with the configured plugins registered
    """
    plugin_system = PluginSystem(strict=settings.strict_constraints)

    if settings.rate_limit_enabled:
        plugin_system.register(
            create_rate_limiter_plugin(
                max_requests=settings.rate_limit_max_requests,
                window_seconds=settings.rate_limit_window,
            )
        )

    if settings.security_headers_enabled:
        if settings.rate_limit_enabled:
            plugin_system.register(create_security_plugin(), after="rateLimiter")
        else:
            plugin_system.register(create_security_plugin(after=None))

    return plugin_system


def create_app(settings: Settings | None = None, plugin_system: PluginSystem | None = None) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        settings: Settings to use (default: cached settings from the environment)
        plugin_system: Plugin system to install (default: built from the settings)

    Returns:
        FastAPI application
    """
    if settings is None:
        settings = get_settings()
    if plugin_system is None:
        plugin_system = build_plugin_system(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application startup and shutdown lifecycle"""
        setup_logging(settings.log_level, settings.log_categories)
        logger.info("Starting plugin system API")
        logger.info(f"Plugin order: {[p.id for p in plugin_system.get_execution_order()]}")
        logger.info(f"Server ready at http://{settings.HOST}:{settings.PORT}")

        yield

        logger.info("Shutting down plugin system API")

    app = FastAPI(
        title="Plugin System API",
        description="FastAPI application with an ordered plugin pipeline",
        version="1.0.0",
        lifespan=lifespan
    )
    app.state.plugin_system = plugin_system

    # Sorts the plugins; ordering errors abort app construction
    install_plugin_middleware(app, plugin_system)

    api_router = APIRouter(prefix="/api")

    @api_router.get("/health")
    async def health():
        return {"status": "ok"}

    @api_router.get("/plugins")
    async def plugins():
        return {"order": [p.id for p in plugin_system.get_execution_order()]}

    app.include_router(api_router)
    return app


app = create_app()
