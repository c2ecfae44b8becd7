"""VillaStay — FastAPI application entry point."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from villastay.api.v1.bookings import router as bookings_router
from villastay.api.v1.coupons import router as coupons_router
from villastay.api.v1.host_coupons import router as host_coupons_router
from villastay.api.v1.payments import router as payments_router
from villastay.config import settings
from villastay.errors import AppError
from villastay.schemas.common import ErrorResponse

# Configure root logger so all villastay.* loggers output to stderr (captured by Docker).
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan handler for startup and shutdown events."""
    # Startup: gateway and notifier are injected into the routers from app.state
    from villastay.database import async_session_factory
    from villastay.payments.gateway import get_razorpay_client
    from villastay.services.notifications import BookingNotifier

    app.state.payment_gateway = get_razorpay_client()
    app.state.notifier = BookingNotifier(async_session_factory)
    yield
    # Shutdown: dispose engine connections
    from villastay.database import engine

    await engine.dispose()


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Villa and farmhouse booking marketplace: availability, payments, coupons and refunds.",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------------------------------------------------------------------
# Error envelope
# ---------------------------------------------------------------------------


def _envelope(status_code: int, message: str, error=None, headers: dict | None = None) -> JSONResponse:
    body = ErrorResponse(message=message, error=error)
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"), headers=headers)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(
            "%s on %s %s: %s (%s)",
            type(exc).__name__,
            request.method,
            request.url.path,
            exc.message,
            exc.detail,
        )
    return _envelope(exc.status_code, exc.message, exc.detail)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    first = errors[0] if errors else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "Invalid request")
    return _envelope(
        status.HTTP_400_BAD_REQUEST,
        f"{location}: {message}" if location else message,
        [{"loc": list(e.get("loc", ())), "msg": e.get("msg")} for e in errors],
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return _envelope(exc.status_code, str(exc.detail), headers=getattr(exc, "headers", None))


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return _envelope(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error", str(exc))


# Routers
app.include_router(payments_router)
app.include_router(bookings_router)
app.include_router(coupons_router)
app.include_router(host_coupons_router)


@app.get("/health", tags=["health"])
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "healthy", "service": settings.app_name}
