"""
api/main.py -- FastAPI application entry point.

Run with:  uvicorn asgi:app --reload
           python main.py serve

Middleware stack (outermost to innermost):
  1. TrustedHostMiddleware -- rejects requests with unexpected Host headers
  2. CORSMiddleware        -- CORS headers for the configured browser origins,
                              credentials allowed so the session cookie flows
  3. SlowAPIMiddleware     -- default limits for routes registered on the app;
                              /users routes carry their own decorators
  4. log_requests          -- one log line per request

Lifespan builds the auth services once per process and stores them on
app.state; the store is disposed on shutdown. The signing secret is read here
and injected into TokenService -- nothing below this module reads config for it.
"""

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.limiter import limiter
from api.models import HealthResponse, MessageResponse
from api.routes.v1.users import router as users_router
from auth.flow import AuthFlow
from auth.passwords import PasswordHasher
from auth.store import UserStore
from auth.tokens import TokenService
from auth.transport import SessionTransport
from core.config import Settings, get_settings
from core.logging_config import configure_logging

__version__ = "1.0.0"

logger = logging.getLogger("app.api")


# ---------------------------------------------------------------------------
# Service wiring
# ---------------------------------------------------------------------------


def build_services(app: FastAPI, settings: Settings, store: UserStore) -> None:
    """Attach the auth services to app.state.

    Shared by the real lifespan and the test lifespan so both wire the same
    objects the same way.
    """
    hasher = PasswordHasher(rounds=settings.bcrypt_rounds)
    tokens = TokenService(secret=settings.jwt_secret, expire_seconds=settings.token_expire_seconds)
    app.state.settings = settings
    app.state.store = store
    app.state.tokens = tokens
    app.state.transport = SessionTransport(secure=settings.is_production, max_age=settings.token_expire_seconds)
    app.state.flow = AuthFlow(store, hasher, tokens)
    # Warm the timing-equalization hash so the first failed login is not faster.
    _ = hasher.dummy_hash


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application-level resources across the full server lifetime.

    Everything before yield runs on startup; everything after yield runs on
    shutdown.
    """
    settings = get_settings()
    configure_logging(settings)
    logger.info("Auth API starting up", extra={"meta": {"environment": settings.environment}})

    store = UserStore(db_url=settings.database_url)
    build_services(app, settings, store)
    logger.info(
        "Auth initialized",
        extra={"meta": {"users": store.count_users(), "signing_configured": app.state.tokens.configured}},
    )

    yield

    store.close()
    logger.info("Auth API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Auth API",
    description="Register, login, profile and logout with cookie-based JWT sessions.",
    version=__version__,
    lifespan=lifespan,
)

_settings = get_settings()

# ---------------------------------------------------------------------------
# Middleware stack
#
# add_middleware() wraps the app, so the middleware added last runs first.
# Registered innermost-first below so requests meet TrustedHost -> CORS ->
# SlowAPI -> logging.
# ---------------------------------------------------------------------------


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    ms = (time.perf_counter() - start) * 1000
    logger.info(
        "%s %s %d %.1fms",
        request.method,
        request.url.path,
        response.status_code,
        ms,
        extra={"meta": {"ip": request.client.host if request.client else "unknown"}},
    )
    return response


app.add_middleware(SlowAPIMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["Content-Type", "Authorization", "X-API-Key"],
    max_age=3600,
)

app.add_middleware(TrustedHostMiddleware, allowed_hosts=_settings.allowed_hosts)

# SlowAPI looks for app.state.limiter by convention.
app.state.limiter = limiter

# ---------------------------------------------------------------------------
# Router registration
# ---------------------------------------------------------------------------

app.include_router(users_router, prefix="/api/v1", tags=["Users"])


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same {"message": ...} body so clients parse every
# error the same way.
# ---------------------------------------------------------------------------


def _message(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=MessageResponse(message=message).model_dump())


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Return 429 when a rate limit is exceeded, with Retry-After in seconds."""
    retry_after = int(getattr(exc, "retry_after", 60) or 60)
    logger.warning(
        "Rate limit exceeded",
        extra={"meta": {"ip": request.client.host if request.client else "unknown", "path": request.url.path}},
    )
    response = _message(429, "Too many requests, please try again later.")
    response.headers["Retry-After"] = str(retry_after)
    return response


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Body is not a JSON object (or not JSON at all). Field rules live in AuthFlow."""
    return _message(400, "Invalid request body.")


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    response = _message(exc.status_code, str(exc.detail))
    if exc.headers:
        response.headers.update(exc.headers)
    return response


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

    [A10] The exception goes to the server log only, never the response body.
    """
    logger.exception(
        "Unhandled exception on %s %s",
        request.method,
        request.url.path,
        extra={"meta": {"ip": request.client.host if request.client else "unknown"}},
    )
    return _message(500, "Internal server error.")


# ---------------------------------------------------------------------------
# Health endpoint
#
# Defined directly in main.py so it is reachable regardless of router state.
# Exempt from rate limits -- load balancer probes must not be throttled.
# ---------------------------------------------------------------------------


@app.get("/api/v1/health", response_model=HealthResponse, tags=["Health"])
@limiter.exempt
async def health(request: Request) -> HealthResponse:
    """Return liveness, version and database reachability."""
    db_ok = request.app.state.store.ping()
    return HealthResponse(version=__version__, database="ok" if db_ok else "error")
