"""
Rapport - Relationship journal with AI insights
FastAPI Application Entry Point

Serve with an ASGI server, e.g.:

    uvicorn api.main:app --host 0.0.0.0 --port 8000

Host and port defaults live in config/settings.py (RAPPORT_HOST, RAPPORT_PORT).
"""
# Load environment variables from .env file first, before any imports
from dotenv import load_dotenv
load_dotenv()

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError

from api.routes import relationships, events, insights, messages
from api.services.errors import RapportError
from config.settings import settings

logger = logging.getLogger(__name__)

app = FastAPI(
    title="Rapport",
    description="Track relationships, log events, ingest messages, and generate AI insights",
    version="0.1.0",
)


@app.middleware("http")
async def catch_unexpected_errors(request: Request, call_next):
    """Last resort: log with traceback and answer 500 instead of crashing."""
    try:
        return await call_next(request)
    except Exception as exc:
        logger.exception(f"Unexpected error in {request.url.path}: {exc}")
        return JSONResponse(
            status_code=500,
            content={"error": str(exc) or "Unknown server error"}
        )


# CORS middleware so the browser dashboard can call the API.
# Must be added after the error catcher so it stays the outer layer.
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(relationships.router)
app.include_router(events.router)
app.include_router(insights.router)
app.include_router(messages.router)


def _validation_message(errors: list[dict]) -> str:
    """Describe the first top-level field error, e.g. 'person_name is required'."""
    for error in errors:
        loc = [str(part) for part in error.get("loc", ()) if part not in ("body", "query")]
        if len(loc) != 1:
            continue
        if error.get("type") in ("missing", "string_too_short", "too_short") or error.get("input") is None:
            return f"{loc[0]} is required"
        return f"{loc[0]} is invalid: {error.get('msg', '')}"
    return "Validation error"


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Convert validation errors to 400 with clear messages."""
    errors = exc.errors()

    # Sanitize errors for JSON serialization (convert bytes to string)
    sanitized_errors = []
    for error in errors:
        sanitized = dict(error)
        if "input" in sanitized and isinstance(sanitized["input"], bytes):
            sanitized["input"] = sanitized["input"].decode("utf-8", errors="replace")
        # ctx may hold exception instances
        sanitized.pop("ctx", None)
        sanitized_errors.append(sanitized)

    return JSONResponse(
        status_code=400,
        content={"error": _validation_message(errors), "detail": sanitized_errors}
    )


@app.exception_handler(RapportError)
async def rapport_exception_handler(request: Request, exc: RapportError):
    """Render service errors as {"error": ..., "raw"?: ...}."""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.get("/health")
async def health_check():
    """Health check endpoint that reports configuration of critical dependencies."""
    from api.services.record_store import get_record_store

    checks = {
        "completion_api_key_configured": settings.completion_configured,
    }
    try:
        checks["record_store"] = get_record_store().backend
    except RapportError as e:
        checks["record_store"] = f"error: {e.message}"

    all_healthy = checks["completion_api_key_configured"] and not checks["record_store"].startswith("error")

    return {
        "status": "healthy" if all_healthy else "degraded",
        "service": "rapport",
        "checks": checks,
    }
