"""Asset back office API: inventory, custody and ICT access."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.core.audit.router import router as audit_router
from src.core.auth.router import router as auth_router
from src.core.config import settings
from src.core.database import engine
from src.core.exceptions.handlers import register_exception_handlers
from src.core.logging_config import configure_logging
from src.modules.access.router import router as access_router
from src.modules.custody.router import router as custody_router
from src.modules.dashboard.router import router as dashboard_router
from src.modules.demob.router import router as demob_router
from src.modules.items.router import router as items_router
from src.modules.offboarding.router import router as offboarding_router
from src.modules.people.router import router as people_router
from src.modules.procurement.router import router as procurement_router
from src.modules.warehouses.router import router as warehouses_router

logger = logging.getLogger(__name__)

ROUTERS = (
    auth_router,
    audit_router,
    warehouses_router,
    items_router,
    people_router,
    procurement_router,
    custody_router,
    access_router,
    demob_router,
    offboarding_router,
    dashboard_router,
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Asset back office starting (env=%s, db=%s)", settings.app_env, settings.database_host)
    yield
    await engine.dispose()
    logger.info("Asset back office stopped")


def create_app() -> FastAPI:
    configure_logging(settings.log_level)

    app = FastAPI(
        title="Asset Back Office",
        description="Warehouses, item custody, ICT access grants and leaver demobilization",
        version="0.1.0",
        debug=settings.debug,
        lifespan=lifespan,
        docs_url=None if settings.is_production else "/docs",
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_exception_handlers(app)

    @app.get("/health", tags=["Health"])
    async def health():
        return {"status": "healthy", "env": settings.app_env}

    for router in ROUTERS:
        app.include_router(router, prefix=settings.api_prefix)

    return app


app = create_app()
