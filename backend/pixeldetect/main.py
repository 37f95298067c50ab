from __future__ import annotations

import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api.analyses import router as analyses_router
from .api.auth import router as auth_router
from .core.config import settings
from .core.logging import setup_logging


def _cors_allow_origins() -> list[str]:
    """CORS origins for browser-based clients (e.g. Streamlit).

    Configure with `CORS_ALLOW_ORIGINS` as a comma-separated list.
    Defaults to local dev Streamlit origins.
    """
    env = os.getenv("CORS_ALLOW_ORIGINS", "").strip()
    if env:
        return [o.strip().rstrip("/") for o in env.split(",") if o.strip()]
    return [
        "http://localhost:8501",
        "http://127.0.0.1:8501",
    ]


def create_app() -> FastAPI:
    setup_logging(settings.log_level)
    app = FastAPI(title=settings.app_name)

    @app.get("/")
    def root() -> dict:
        return {"ok": True, "docs": "/docs", "health": "/healthz"}

    @app.get("/healthz")
    def healthz() -> dict:
        return {"ok": True, "analyzer": settings.analyzer_backend}

    app.add_middleware(
        CORSMiddleware,
        allow_origins=_cors_allow_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(auth_router)
    app.include_router(analyses_router)
    return app


app = create_app()
