# app/main.py
import structlog
from fastapi import FastAPI

from app.api.routes import health, stats
from app.core.config import get_settings
from app.core.logging import RequestLoggingMiddleware, configure_logging
from app.db.session import dispose_engine, init_db_for_startup

logger = structlog.get_logger(__name__)


def create_app() -> FastAPI:
    """
    Application factory for the Meeting Stats service.
    """
    settings = get_settings()
    configure_logging()

    app = FastAPI(
        title=settings.APP_NAME,
        description=(
            "Read-only statistics over booked meetings: per-period KPIs,\n"
            "per-person booker/seller performance, daily trends and\n"
            "personal vs. team comparisons, under role-based visibility rules."
        ),
        version="0.1.0",
    )

    app.add_middleware(RequestLoggingMiddleware)

    # Routers
    app.include_router(health.router)
    app.include_router(stats.router)

    @app.on_event("startup")
    async def on_startup() -> None:  # pragma: no cover
        if settings.DB_AUTO_CREATE:
            await init_db_for_startup()
        logger.info("app.started", environment=settings.APP_ENV)

    @app.on_event("shutdown")
    async def on_shutdown() -> None:  # pragma: no cover
        await dispose_engine()

    return app


app = create_app()
