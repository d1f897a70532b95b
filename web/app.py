"""Application factory for the auth bridge."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from fintrack.auth.service import AuthService
from fintrack.utils.config import Settings, build_auth_service, load_settings
from fintrack.utils.exceptions import StorageError
from fintrack.utils.logger import get_logger

from .auth_routes import router as auth_router

logger = get_logger(__name__)


def create_app(
    settings: Optional[Settings] = None, auth_service: Optional[AuthService] = None
) -> FastAPI:
    """Build the FastAPI app. The saved session is restored on startup."""
    settings = settings or load_settings()
    service = auth_service or build_auth_service(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        result = await service.restore_session()
        logger.info("Auth bridge started", restored=result.success)
        yield

    app = FastAPI(title="FinTrack Auth", lifespan=lifespan)
    app.state.auth_service = service
    app.state.settings = settings
    app.include_router(auth_router)

    @app.get("/health")
    async def health():
        try:
            users = await service.user_store.count()
        except StorageError as e:
            return {"status": "degraded", "error": e.message}
        return {"status": "ok", "users": users, "auth_state": service.state.value}

    return app
