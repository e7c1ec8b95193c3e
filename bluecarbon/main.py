"""
Blue Carbon Registry

FastAPI application entry point.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy import text
from starlette.exceptions import HTTPException as StarletteHTTPException

from bluecarbon.api.deps import ContentStoreDep, get_request_id
from bluecarbon.api.middleware.request_id import REQUEST_ID_HEADER, RequestIdMiddleware
from bluecarbon.api.v1 import router as api_v1_router
from bluecarbon.config import get_settings
from bluecarbon.database import async_session_maker, close_db, init_db
from bluecarbon.kernel.errors import RegistryError
from bluecarbon.logging_config import configure_logging, get_logger
from bluecarbon.schemas.common import ErrorResponse, HealthResponse

settings = get_settings()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Application lifespan handler.

    Runs startup and shutdown tasks.
    """
    # Configure logging first
    configure_logging(
        log_level=settings.log_level,
        environment=settings.environment,
        debug=settings.debug,
    )

    # Startup
    logger.info("Starting %s v%s", settings.project_name, settings.version)
    await init_db()
    logger.info("Database initialized")

    yield

    # Shutdown
    logger.info("Shutting down...")
    await close_db()
    logger.info("Database connections closed")


# Create FastAPI application
app = FastAPI(
    title=settings.project_name,
    description="""
    Blue Carbon Registry

    Registry core for coastal and marine carbon sequestration projects.

    ## Features

    - **Principals**: Registration, login and stateless bearer credentials
    - **Resources**: Project records moving from draft through review to tokenization
    - **Provenance**: Content-addressed documents attached at defined lifecycle points
    - **Public registry**: Verified and tokenized projects without credentials

    ## Invariants

    1. Status changes follow the lifecycle graph only; rejection is terminal
    2. Content references are append-only
    3. Concurrent writes to one resource resolve to exactly one winner
    4. Every mutation is written to the audit log before commit
    """,
    version=settings.version,
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)

app.add_middleware(RequestIdMiddleware)


def _headers(request: Request, extra: dict = None) -> dict:
    headers = dict(extra or {})
    req_id = get_request_id(request)
    if req_id:
        headers[REQUEST_ID_HEADER] = req_id
    return headers


@app.exception_handler(RegistryError)
async def registry_error_handler(request: Request, exc: RegistryError):
    """Translate domain errors into their HTTP status and machine code."""
    if exc.status_code >= 500:
        logger.error("%s: %s", exc.code, exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(detail=exc.detail, code=exc.code).model_dump(exclude_none=True),
        headers=_headers(request, exc.headers),
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Echo the request id on framework errors (404 routes, 405 etc.)."""
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(detail=str(exc.detail)).model_dump(exclude_none=True),
        headers=_headers(request, getattr(exc, "headers", None)),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError,
):
    """Handle request validation errors."""
    errors = []
    for error in exc.errors():
        field = ".".join(str(loc) for loc in error["loc"])
        errors.append({
            "field": field,
            "message": error["msg"],
            "type": error["type"],
        })
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": "Validation error", "code": "validation_error", "errors": errors},
        headers=_headers(request),
    )


@app.exception_handler(Exception)
async def general_exception_handler(
    request: Request,
    exc: Exception,
):
    """Handle unexpected exceptions."""
    logger.exception("Unhandled exception: %s", exc)
    req_id = get_request_id(request)
    if settings.debug:
        content = {
            "detail": str(exc),
            "type": type(exc).__name__,
            "request_id": req_id,
        }
    else:
        content = {"detail": "Internal server error", "request_id": req_id}
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=content,
        headers=_headers(request),
    )


# Health check endpoint
@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check(store: ContentStoreDep):
    """Check application, database and content store health."""
    database = "connected"
    try:
        async with async_session_maker() as session:
            await session.execute(text("SELECT 1"))
    except Exception as e:
        logger.warning("Health check database probe failed: %s", e)
        database = "unavailable"
    content_store = "connected" if await store.check_connection() else "unavailable"
    healthy = database == "connected" and content_store == "connected"
    return HealthResponse(
        status="ok" if healthy else "degraded",
        version=settings.version,
        database=database,
        content_store=content_store,
    )


# Root endpoint
@app.get("/", tags=["Root"])
async def root():
    """Root endpoint with API information."""
    return {
        "name": settings.project_name,
        "version": settings.version,
        "docs": "/docs" if settings.debug else "disabled",
        "api": {
            "v1": settings.api_v1_prefix,
        },
    }


# Mount API v1 routes
app.include_router(
    api_v1_router,
    prefix=settings.api_v1_prefix,
)


# Main entry point for development
if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "bluecarbon.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
    )
