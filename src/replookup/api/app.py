"""FastAPI app factory for the reputation lookup API."""

import logging

from fastapi import FastAPI

from replookup.api.reports import router as reports_router
from replookup.settings import get_settings


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        Configured FastAPI instance.
    """
    settings = get_settings()
    logging.basicConfig(level=getattr(logging, settings.log_level.upper(), logging.INFO))

    app = FastAPI(title="Reputation Lookup API", version="0.1")
    app.include_router(reports_router)

    @app.get("/healthz", tags=["health"])
    def healthcheck():
        return {"status": "ok", "env": settings.env}

    return app


# For uvicorn, expose `app` at module level
app = create_app()

__all__ = ["app", "create_app"]
