"""FastAPI application hosting the interactive Fitbit authorization flow.

Endpoints:
- GET /: consent page with the "Authorize with Fitbit" link
- GET /callback: OAuth redirect target, stores the initial tokens
- GET /status: stored token status (JSON)
- GET /health: health check
"""
from __future__ import annotations

from fastapi import FastAPI

from aria.api.routers.auth import router as auth_router
from aria.core.config import get_settings

settings = get_settings()

app = FastAPI(title=settings.app_name)


@app.get("/health")
async def health() -> dict:
    """Return API health status."""

    return {"status": "ok"}


app.include_router(auth_router, prefix="", tags=["auth"])
