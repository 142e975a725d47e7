"""FastAPI application entry point.

Storefront API - product catalog and inventory.
"""

from contextlib import asynccontextmanager
from collections.abc import AsyncGenerator
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from storefront.errors import CatalogError
from storefront.routes import api_router
from storefront.settings import get_settings
from storefront.stores.postgres import Database
from storefront.stores.redis import close_redis, init_redis

logger = logging.getLogger("uvicorn.error")

_HTTP_CODES = {
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    503: "SERVICE_UNAVAILABLE",
}


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Handles startup and shutdown events.
    """
    # Startup
    db = Database.from_settings()
    app.state.db = db
    try:
        await db.ping()
        logger.info("Postgres connected")
    except Exception:
        logger.exception("Postgres init failed")

    # Redis only backs the facet cache; the API works without it
    try:
        await init_redis()
    except Exception:
        logger.exception("Redis init failed")

    yield

    # Shutdown
    await close_redis()
    await db.dispose()


def _error(status_code: int, message: str, code: str, detail: object = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"message": message, "code": code, "detail": detail},
    )


def create_app() -> FastAPI:
    """Create and configure FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Product catalog and inventory API",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(CatalogError)
    async def catalog_error_handler(request: Request, exc: CatalogError) -> JSONResponse:
        """Domain errors carry their own status code and machine-readable code."""
        if exc.status_code >= 500:
            logger.error(f"[api] {request.method} {request.url.path} failed: {exc.message}")
        return _error(exc.status_code, exc.message, exc.code, exc.detail)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        fields = {
            ".".join(str(part) for part in err["loc"][1:]) or str(err["loc"][0]): err["msg"]
            for err in exc.errors()
        }
        return _error(422, "Request validation failed", "VALIDATION_ERROR", fields)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return _error(exc.status_code, str(exc.detail), _HTTP_CODES.get(exc.status_code, "HTTP_ERROR"))

    # Exception handler for structured error format
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Global exception handler returning structured error format."""
        logger.exception(f"[api] unhandled error on {request.method} {request.url.path}")
        return _error(
            500,
            str(exc) if settings.debug else "Internal server error",
            "INTERNAL_ERROR",
        )

    # Health check endpoint
    @app.get("/health", tags=["health"])
    async def health_check() -> dict[str, bool]:
        """Health check endpoint."""
        return {"ok": True}

    # Include API routes
    app.include_router(api_router)

    return app


# Application instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "storefront.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
