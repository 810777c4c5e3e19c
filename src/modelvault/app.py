"""FastAPI application factory for Modelvault."""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from modelvault.common.config import get_settings
from modelvault.common.logging import setup_logging
from modelvault.common.schemas import HealthResponse


def create_app() -> FastAPI:
    settings = get_settings()
    setup_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup
        from modelvault.deps import get_db
        db = get_db()
        await db.init()
        await db.create_all()
        yield
        # Shutdown
        await db.close()

    app = FastAPI(
        title=settings.api_title,
        version=settings.api_version,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health", response_model=HealthResponse)
    async def health():
        return HealthResponse(version=settings.api_version)

    # Mount routers
    from modelvault.uploads.router import router as upload_router
    from modelvault.ledger.router import router as ledger_router
    from modelvault.ledger.router import webhook_router

    prefix = settings.api_prefix
    app.include_router(upload_router, prefix=prefix, tags=["uploads"])
    app.include_router(ledger_router, prefix=prefix, tags=["ledger"])
    app.include_router(webhook_router, prefix=prefix, tags=["webhooks"])

    return app
