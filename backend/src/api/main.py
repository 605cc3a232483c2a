"""FastAPI application entry point."""
import logging
import traceback
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from api.routers import attendance, auth, classes, courses, health, subjects
from core.config import get_settings
from core.rate_limit_config import RateLimitExceededError
from core.redis import RedisClient
from core.session_cache import SessionCache
from db.session import check_connection, create_engine, create_session_factory
from services.exceptions import ServiceError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Manage application lifespan - startup and shutdown."""
    app_settings = get_settings()

    # Startup: the database must be reachable, otherwise refuse to serve
    engine = create_engine(app_settings)
    try:
        await check_connection(engine)
    except (SQLAlchemyError, OSError) as e:
        logger.critical("database_unreachable", extra={"error": str(e)})
        await engine.dispose()
        raise SystemExit(1) from e
    app.state.engine = engine
    app.state.session_factory = create_session_factory(engine)

    # Startup: Connect to Redis (failures degrade to cache misses / open limiter)
    redis_client = RedisClient(
        url=app_settings.redis_url,
        enabled=app_settings.redis_enabled,
        pool_size=app_settings.redis_pool_size,
    )
    await redis_client.connect()
    app.state.redis_client = redis_client
    app.state.session_cache = SessionCache(redis_client)

    yield

    # Shutdown: Redis first, then the database pool
    await redis_client.close()
    await engine.dispose()


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint,
    ) -> Response:
        """Process request and add security headers to response."""
        response = await call_next(request)
        # HSTS: enforce HTTPS for 1 year, including subdomains
        response.headers["Strict-Transport-Security"] = (
            "max-age=31536000; includeSubDomains"
        )
        # Prevent MIME type sniffing
        response.headers["X-Content-Type-Options"] = "nosniff"
        # Prevent clickjacking - API shouldn't be framed
        response.headers["X-Frame-Options"] = "DENY"
        return response


class RateLimitHeadersMiddleware(BaseHTTPMiddleware):
    """Add rate limit headers to successful responses."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint,
    ) -> Response:
        """Process request and add rate limit headers to response."""
        response = await call_next(request)

        # Add headers if rate limit info was stored by dependency
        # Note: 429 responses are handled by exception handler, not middleware
        info = getattr(request.state, "rate_limit_info", None)
        if info:
            response.headers["X-RateLimit-Limit"] = str(info["limit"])
            response.headers["X-RateLimit-Remaining"] = str(info["remaining"])
            response.headers["X-RateLimit-Reset"] = str(info["reset"])

        return response


def error_body(message: str, exc: BaseException) -> dict:
    """JSON error body; includes the stack trace outside production."""
    body: dict = {"message": message}
    if not get_settings().is_production:
        body["stack"] = "".join(traceback.format_exception(exc))
    return body


def validation_message(exc: RequestValidationError) -> str:
    """Flatten the first request validation error into one readable sentence."""
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = str(first.get("msg", "Invalid value")).removeprefix("Value error, ")
    return f"{location}: {message}" if location else message


app_settings = get_settings()

app = FastAPI(
    title="Campus Attendance API",
    description="Student attendance management: programs, subjects, classes and attendance.",
    version="0.1.0",
    lifespan=lifespan,
)


@app.exception_handler(ServiceError)
async def service_exception_handler(_request: Request, exc: ServiceError) -> JSONResponse:
    """Map a service failure to its status code."""
    return JSONResponse(
        status_code=exc.kind.status_code,
        content=error_body(exc.message, exc),
    )


@app.exception_handler(RequestValidationError)
async def request_validation_exception_handler(
    _request: Request, exc: RequestValidationError,
) -> JSONResponse:
    """Malformed bodies, path ids and query values are client errors (400)."""
    return JSONResponse(status_code=400, content={"message": validation_message(exc)})


@app.exception_handler(RateLimitExceededError)
async def rate_limit_exception_handler(
    _request: Request, exc: RateLimitExceededError,
) -> JSONResponse:
    """Handle rate limit exceeded with proper headers."""
    return JSONResponse(
        status_code=429,
        content={"message": exc.message},
        headers={
            "Retry-After": str(exc.result.retry_after),
            "X-RateLimit-Limit": str(exc.result.limit),
            "X-RateLimit-Remaining": "0",
            "X-RateLimit-Reset": str(exc.result.reset),
        },
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Anything unexpected is a 500; the traceback is logged server-side."""
    logger.exception("unhandled_error", extra={"path": request.url.path})
    return JSONResponse(
        status_code=500,
        content=error_body("An unknown error occurred", exc),
    )


# Rate limit headers middleware (runs first, adds headers to successful responses)
app.add_middleware(RateLimitHeadersMiddleware)

# Security headers middleware (runs after CORS, adds headers to responses)
app.add_middleware(SecurityHeadersMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=app_settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(auth.router)
app.include_router(courses.router)
app.include_router(subjects.router)
app.include_router(classes.router)
app.include_router(attendance.router)
