"""
api/main.py -- FastAPI demo backend serving the CRM REST contract.

Lets the console run without the real CRM service: same endpoints, same
{data, message} success bodies, same 401 semantics, in-memory seed data.

Run with:  uvicorn asgi:app --reload
           API_URL=http://127.0.0.1:8000/v1 crm-console login

Middleware stack (outermost to innermost):
  1. CORSMiddleware     -- adds CORS headers for local browser origins
  2. SlowAPIMiddleware  -- enforces per-route rate limits from api.limiter

Every 4xx/5xx body has the shape {"success": false, "error": <code>,
"message": <text>} (api.models.ErrorBody), which the request gateway parses.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.limiter import limiter
from api.models import ErrorBody, HealthResponse
from api.routes.v1.analytics import router as analytics_router
from api.routes.v1.auth import router as auth_router
from api.routes.v1.orders import router as orders_router
from api.routes.v1.products import router as products_router
from api.routes.v1.users import router as users_router
from api.store import DemoStore

logger = logging.getLogger("crmconsole.api")

API_VERSION = "1.0.0"
API_PREFIX = "/v1"

# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Create the seeded store on startup; drop it on shutdown."""
    logger.info("CRM demo backend starting up")
    app.state.store = DemoStore()
    yield
    app.state.store = None
    logger.info("CRM demo backend shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="CRM Demo API",
    description="In-memory stand-in for the CRM admin REST API.",
    version=API_VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173", "http://127.0.0.1:5173"],
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE"],
    allow_headers=["Content-Type", "Authorization"],
    max_age=3600,
)

app.add_middleware(SlowAPIMiddleware)

# SlowAPI looks for app.state.limiter by convention.
app.state.limiter = limiter


# ---------------------------------------------------------------------------
# Request logging middleware
# ---------------------------------------------------------------------------


@app.middleware("http")
async def timed_access_log(request: Request, call_next):
    """One INFO line per request. Query strings are not logged."""
    started = time.perf_counter()
    response = await call_next(request)
    elapsed = (time.perf_counter() - started) * 1000
    logger.info("%s %s -> %d (%.1f ms)", request.method, request.url.path, response.status_code, elapsed)
    return response


# ---------------------------------------------------------------------------
# Router registration
# ---------------------------------------------------------------------------

app.include_router(auth_router, prefix=API_PREFIX, tags=["Auth"])
app.include_router(users_router, prefix=API_PREFIX, tags=["Users"])
app.include_router(orders_router, prefix=API_PREFIX, tags=["Orders"])
app.include_router(products_router, prefix=API_PREFIX, tags=["Products"])
app.include_router(analytics_router, prefix=API_PREFIX, tags=["Analytics"])


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same ErrorBody so the client parses every failure
# the same way regardless of status code.
# ---------------------------------------------------------------------------


def _error(status_code: int, error: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorBody(error=error, message=message).model_dump(),
    )


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """429 with Retry-After taken from the slowapi exception."""
    response = _error(429, "rate_limited", "Too many requests. Please wait and try again.")
    response.headers["Retry-After"] = str(int(getattr(exc, "retry_after", 60)))
    return response


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    first = exc.errors()[0] if exc.errors() else {}
    field = ".".join(str(part) for part in first.get("loc", ())[1:]) or "request"
    return _error(422, "validation_error", f"Invalid {field}: {first.get('msg', 'validation failed')}")


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Flatten detail={"code", "message"} dicts raised by route handlers into ErrorBody."""
    if isinstance(exc.detail, dict):
        error = str(exc.detail.get("code", f"http_{exc.status_code}"))
        message = str(exc.detail.get("message", ""))
    else:
        error = f"http_{exc.status_code}"
        message = str(exc.detail)
    response = _error(exc.status_code, error, message)
    if exc.headers:
        response.headers.update(exc.headers)
    return response


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Log the traceback server-side; the client only gets a generic 500."""
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return _error(500, "internal_error", "An unexpected error occurred.")


# ---------------------------------------------------------------------------
# Health endpoint (not rate limited)
# ---------------------------------------------------------------------------


@app.get(f"{API_PREFIX}/health", tags=["Health"])
async def health() -> HealthResponse:
    """Liveness probe; needs no token."""
    return HealthResponse(version=API_VERSION)
