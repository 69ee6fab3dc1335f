from __future__ import annotations

import logging
import secrets
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Optional

from fastapi import APIRouter, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from sqlalchemy.engine import Engine

from .api.auth import router as auth_router
from .api.characters import router as characters_router
from .api.documents import router as documents_router
from .api.invitations import router as invitations_router
from .api.parties import router as parties_router
from .api.posts import router as posts_router
from .api.uploads import router as uploads_router
from .api.users import router as users_router
from .config import Settings, settings as default_settings
from .database import get_engine, init_db
from .errors import install_error_handlers
from .services.uploads import FileStore

logger = logging.getLogger(__name__)


def _check_secret(settings: Settings) -> Settings:
    """
    JWT_SECRET must be set in production. Elsewhere an ephemeral secret keeps
    local runs working (tokens die with the process).
    """
    if settings.jwt_secret:
        return settings
    if settings.is_prod:
        raise RuntimeError("JWT_SECRET is not set in environment (.env).")
    logger.warning("JWT_SECRET not set; using an ephemeral secret for this process")
    return settings.model_copy(update={"jwt_secret": secrets.token_urlsafe(48)})


def _meta_router(settings: Settings) -> APIRouter:
    router = APIRouter(tags=["meta"])
    prefix = settings.api_prefix

    @router.get("/")
    def root() -> Dict[str, Any]:
        return {
            "message": f"{settings.app_name} API",
            "version": settings.app_version,
            "endpoints": {
                "health": f"{prefix}/",
                "auth": {
                    "register": f"POST {prefix}/register",
                    "login": f"POST {prefix}/login",
                    "logout": f"POST {prefix}/logout (protected)",
                    "user": f"GET {prefix}/user (protected)",
                },
                "characters": f"{prefix}/characters (protected)",
                "parties": f"{prefix}/parties (protected)",
                "documents": f"GET {prefix}/documents",
            },
        }

    @router.get("/health")
    def health() -> Dict[str, Any]:
        return {"ok": True, "env": settings.env}

    if prefix:
        @router.get(prefix + "/")
        def api_status() -> Dict[str, str]:
            return {"status": "ok", "message": "API is running"}

    return router


def create_app(settings: Optional[Settings] = None, engine: Optional[Engine] = None) -> FastAPI:
    """
    Build the application.

    settings and engine are injected (tests pass their own); nothing here
    relies on process-wide state besides the default Settings().
    """
    settings = _check_secret(settings or default_settings)
    owns_engine = engine is None
    if engine is None:
        engine = get_engine(settings.resolved_database_url)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        # Creates tables for all registered models (non-destructive)
        init_db(engine)
        yield
        if owns_engine:
            engine.dispose()

    app = FastAPI(title="Kaosekai API", version=settings.app_version, lifespan=lifespan)

    app.state.settings = settings
    app.state.engine = engine
    upload_prefix = settings.upload_url_prefix or "/uploads"
    app.state.file_store = FileStore(settings.upload_root_path, upload_prefix)
    app.state.file_store.ensure_dirs()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "Accept"],
    )

    install_error_handlers(app, settings)

    app.include_router(_meta_router(settings))

    prefix = settings.api_prefix
    app.include_router(auth_router, prefix=prefix)
    app.include_router(users_router, prefix=prefix)
    app.include_router(invitations_router, prefix=prefix)
    app.include_router(characters_router, prefix=prefix)
    app.include_router(parties_router, prefix=prefix)
    app.include_router(posts_router, prefix=prefix)
    app.include_router(documents_router, prefix=prefix)
    app.include_router(uploads_router, prefix=prefix)

    # Uploaded covers, PDFs and images
    app.mount(
        upload_prefix,
        StaticFiles(directory=str(settings.upload_root_path)),
        name="uploads",
    )

    return app


def run() -> None:
    logging.basicConfig(level=getattr(logging, str(default_settings.log_level).upper(), logging.INFO))
    import uvicorn

    uvicorn.run(
        "kaosekai.main:create_app",
        factory=True,
        host=default_settings.host,
        port=int(default_settings.port),
        reload=bool(default_settings.reload),
    )
