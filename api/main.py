"""
api/main.py -- FastAPI application entry point for the SMU user API.

Run with:  python main.py serve
           uvicorn api.main:app --reload

Middleware stack (outermost to innermost):
  1. CORSMiddleware    -- adds CORS headers for allowed browser origins
  2. SlowAPIMiddleware -- enforces the global request limit from api.limiter

Lifespan builds the account store and the token service from Settings on
startup and closes the store on shutdown. Both live on app.state; route
handlers and auth dependencies read them from there.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.limiter import limiter
from api.models import Envelope, FieldError, HealthResponse
from api.routes.v1.users import router as users_router
from auth.errors import ApiError
from auth.store import AccountStore
from auth.tokens import TokenService
from core.config import get_settings

__version__ = "1.0.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("userapi.api")

_settings = get_settings()

# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application-level resources across the full server lifetime.

    Everything before yield runs on startup; everything after yield runs on
    shutdown. The token service is immutable once built, so the signing
    secret is fixed for the life of the process.
    """
    logger.info("User API starting up")
    app.state.account_store = AccountStore(
        db_url=_settings.database_url,
        bcrypt_rounds=_settings.bcrypt_rounds,
        email_domain=_settings.email_domain,
    )
    app.state.token_service = TokenService.from_settings(_settings)
    logger.info(
        "Auth initialized (accounts=%d, token_lifetime=%ds)",
        app.state.account_store.count(),
        app.state.token_service.expire_seconds,
    )

    yield

    app.state.account_store.close()
    logger.info("User API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="SMU User API",
    description="User registration, login, profile, and admin management.",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_settings.cors_origins,
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
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    ms = (time.perf_counter() - start) * 1000
    logger.info(
        "%s %s %d %.1fms %s",
        request.method,
        request.url.path,
        response.status_code,
        ms,
        request.client.host if request.client else "unknown",
    )
    return response


# ---------------------------------------------------------------------------
# Router registration
# ---------------------------------------------------------------------------

app.include_router(users_router, prefix="/api", tags=["Users"])


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same envelope as successful responses, with
# success=false, so clients parse every reply the same way.
# ---------------------------------------------------------------------------


def _error(status_code: int, message: str, errors: list[dict] | None = None) -> JSONResponse:
    envelope = Envelope(
        success=False,
        message=message,
        errors=[FieldError(**e) for e in errors] if errors else None,
    )
    return JSONResponse(status_code=status_code, content=envelope.dump())


@app.exception_handler(ApiError)
async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    """Render validation, auth, role, not-found, and conflict errors."""
    if exc.status_code >= 500:
        logger.error("%s on %s %s: %s", exc.code, request.method, request.url.path, exc.message)
    return _error(exc.status_code, exc.message, exc.errors)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 400 with per-field errors when the body is not valid JSON of the right shape."""
    errors = []
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part != "body"]
        errors.append({"field": ".".join(loc) or "body", "message": err.get("msg", "Invalid value")})
    return _error(400, "Invalid request body", errors)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Envelope for framework-raised HTTP errors (unknown routes, wrong methods)."""
    message = "Route not found" if exc.status_code == 404 else str(exc.detail)
    return _error(exc.status_code, message)


@app.exception_handler(RateLimitExceeded)
def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Return 429 when a rate limit is exceeded.

    Retry-After tells clients how many seconds to wait before retrying.
    Plain def: SlowAPIMiddleware calls this handler directly for the global
    limit, while route-level limits reach it through FastAPI.
    """
    retry_after = int(getattr(exc, "retry_after", 60))
    response = _error(429, "Too many requests, please try again later")
    response.headers["Retry-After"] = str(retry_after)
    return response


@app.exception_handler(SQLAlchemyError)
async def store_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    """Driver errors never reach the client verbatim."""
    logger.exception("Store failure on %s %s", request.method, request.url.path)
    message = str(exc) if _settings.debug else "An unexpected error occurred."
    return _error(500, message)


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

    The traceback goes to the log. The client sees the exception text only
    in DEBUG mode; production responses carry a generic message.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    message = str(exc) if _settings.debug else "An unexpected error occurred."
    return _error(500, message)


# ---------------------------------------------------------------------------
# Root and health
#
# Defined directly here (not in a router) so they are always reachable.
# Health is exempt from rate limiting -- load balancer probes must not be
# throttled.
# ---------------------------------------------------------------------------


@app.get("/", include_in_schema=False)
async def root() -> PlainTextResponse:
    return PlainTextResponse("API is running!")


@app.get("/api/health", tags=["Health"])
@limiter.exempt
def health(request: Request) -> HealthResponse:
    """Return API liveness, version, and database reachability."""
    try:
        request.app.state.account_store.ping()
        database = "ok"
    except SQLAlchemyError:
        logger.warning("Health check: database unreachable")
        database = "error"
    return HealthResponse(version=__version__, components={"app": "ok", "database": database})
