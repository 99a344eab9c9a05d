from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from lifelog.core.config import Settings, get_settings
from lifelog.core.db.pool import init_pool, close_pool
from lifelog.core.logger import setup_logger
from lifelog.server.api import router as api_router
from lifelog.server.api.event.service import EventService, set_event_service
from lifelog.server.envelope import install_exception_handlers
from lifelog.server.middleware import make_catch_exceptions_middleware

logger = setup_logger(__name__, include_location=True)


def create_app() -> FastAPI:
    """ASGI factory: settings from the environment, pool opened in the lifespan."""
    settings = get_settings(reload=True)
    return _create_app(settings)


def _create_app(settings: Settings, service: Optional[EventService] = None, manage_pool: bool = True) -> FastAPI:
    """
    Build the application.

    ``service`` replaces the pooled event service (tests pass one backed by a
    fake connection) and ``manage_pool=False`` skips opening the pool.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if manage_pool:
            await init_pool(
                settings.conn_string,
                min_size=settings.pool_min_size,
                max_size=settings.pool_max_size,
                timeout=settings.pool_timeout,
            )
        set_event_service(service or EventService(timeout=settings.operation_timeout_or_none))
        logger.success(f"{settings.app_name} {settings.app_version} started")
        try:
            yield
        finally:
            set_event_service(None)
            if manage_pool:
                await close_pool()
            logger.info(f"{settings.app_name} stopped")

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        debug=settings.debug,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.middleware('http')(make_catch_exceptions_middleware(settings.request_timeout))
    install_exception_handlers(app)

    app.include_router(api_router, prefix="/api")

    @app.get("/health", include_in_schema=False)
    async def health():
        return {"status": "ok"}

    return app
