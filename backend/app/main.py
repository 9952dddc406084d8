"""FastAPI application entry point."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from backend.app.api.routes.bans import router as bans_router
from backend.app.api.routes.categories import router as categories_router
from backend.app.api.routes.health import router as health_router
from backend.app.api.routes.moderation import router as moderation_router
from backend.app.api.routes.presets import router as presets_router
from backend.app.api.routes.votes import router as votes_router
from backend.app.core.errors import normalize_unknown_error, normalize_validation_error
from backend.app.core.logging import setup_logging
from backend.app.core.settings import settings
from backend.app.db.engine import init_db
from backend.app.db.migrations import run_migrations
from backend.app.models.presets import validate_categories
from backend.app.services.moderation_pipeline import build_moderation_pipeline

setup_logging(level=getattr(logging, settings.log_level.upper(), logging.INFO))
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    logger.info("app_start")
    logger.info("config_loaded: %s", settings.safe_dump())
    init_db()
    run_migrations()
    validate_categories()
    app.state.moderation_pipeline = build_moderation_pipeline(settings)
    logger.info("Preset Palettes API ready")
    yield
    logger.info("Preset Palettes API shutting down")


app = FastAPI(
    title="Preset Palettes API",
    version="0.1.0",
    description="Community dye palette submissions, voting and moderation.",
    lifespan=lifespan,
)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    _request: Request, exc: RequestValidationError,
) -> JSONResponse:
    """Flatten pydantic errors into ``"field: reason; ..."``."""
    messages = []
    for err in exc.errors():
        loc = [str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path")]
        field = ".".join(loc) or "request"
        messages.append(f"{field}: {err.get('msg', 'invalid value')}")
    error = normalize_validation_error(messages)
    return JSONResponse(
        status_code=error.http_status,
        content={"detail": error.user_message},
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler: log details, return safe generic message."""
    error = normalize_unknown_error(exc, operation=f"{request.method} {request.url.path}")
    return JSONResponse(
        status_code=error.http_status,
        content={"detail": error.user_message},
    )


app.include_router(health_router, tags=["health"])
app.include_router(categories_router, tags=["categories"])
app.include_router(presets_router, tags=["presets"])
app.include_router(votes_router, tags=["votes"])
app.include_router(moderation_router, tags=["moderation"])
app.include_router(bans_router, tags=["bans"])
