"""
FastAPI main application for the Book Review API.
"""

import time
from contextlib import asynccontextmanager
from datetime import datetime

import structlog
from fastapi import APIRouter, Depends, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from motor.motor_asyncio import AsyncIOMotorClient

from api import dependencies
from api.auth import RequestContext, require_admin
from api.config import config
from api.database import APIDatabaseService
from api.dependencies import get_db_service
from api.errors import APIError, handle_error
from api.responses import error_response, success
from api.routes import books, reviews, users
from utilities.logger import log_request, setup_logging

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    setup_logging(
        log_level=config.log_level,
        log_format=config.log_format,
        log_file=config.log_file,
        debug=config.debug
    )
    logger.info("Starting Book Review API", environment=config.environment)

    client = AsyncIOMotorClient(config.mongodb_uri)
    try:
        database = client[config.mongodb_database]

        # Test connection
        await database.command("ping")
        logger.info("Database connection established", database=config.mongodb_database)

        db_service = APIDatabaseService(database)
        await db_service.create_indexes()
        dependencies.db_service = db_service

    except Exception as e:
        logger.error("Failed to connect to database", error=str(e))
        client.close()
        raise

    yield

    logger.info("Shutting down Book Review API")
    dependencies.db_service = None
    client.close()


app = FastAPI(
    title=config.api_title,
    description="""
    REST API for a book-review platform.

    ## Features

    * **Accounts**: Signup, login, logout and profile updates
    * **Books**: Create, browse, filter, sort and search books
    * **Reviews**: One review per reader per book, editable for 30 days
    * **Pagination**: Every list is paginated (1-50 items per page)

    ## Authentication

    Login sets an httpOnly `access_token` cookie. Clients that cannot use
    cookies can send the same token in the Authorization header:

    ```
    Authorization: Bearer your_token_here
    ```

    ## Responses

    Every response is an envelope: `{result, statusCode, message, success}`.
    """,
    version=config.api_version,
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[config.allowed_origin],
    allow_credentials=True,
    allow_methods=config.cors_allow_methods,
    allow_headers=["*"],
)


@app.middleware("http")
async def access_log(request: Request, call_next):
    """Log method, path, status and duration for every request."""
    started = time.perf_counter()
    response = await call_next(request)
    log_request(
        logger,
        request.method,
        request.url.path,
        response.status_code,
        (time.perf_counter() - started) * 1000
    )
    return response


# Exception handlers
@app.exception_handler(APIError)
async def api_error_handler(request: Request, exc: APIError):
    """Errors raised by dependencies, before a route handler runs."""
    return handle_error(exc)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Malformed path or query parameters."""
    logger.warning("Request validation failed", path=request.url.path, errors=str(exc))
    return error_response(status.HTTP_400_BAD_REQUEST, "Invalid request parameters")


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Last resort for anything that escaped the route handlers."""
    logger.error("Unhandled exception", error=str(exc), path=request.url.path, exc_info=exc)
    return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Something went wrong!")


# Health check endpoint (no authentication required)
@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint."""
    db_status = "unavailable"
    if dependencies.db_service:
        health_info = await dependencies.db_service.health_check()
        db_status = health_info.get("status", "unknown")

    return success(
        {
            "status": "healthy" if db_status == "healthy" else "degraded",
            "timestamp": datetime.utcnow().isoformat(),
            "version": config.api_version,
            "database_status": db_status,
        },
        "Service status retrieved"
    )


v1_router = APIRouter(prefix="/v1")
v1_router.include_router(users.router)
v1_router.include_router(books.router)
v1_router.include_router(reviews.router)


@v1_router.get("/stats", tags=["Statistics"])
async def get_stats(
    context: RequestContext = Depends(require_admin),
    db: APIDatabaseService = Depends(get_db_service)
):
    """Collection counts; admin only."""
    try:
        stats = await db.get_stats()
        return success(stats, "Statistics retrieved successfully")

    except Exception as e:
        return handle_error(e)


app.include_router(v1_router)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "api.main:app",
        host=config.host,
        port=config.port,
        reload=config.debug,
        log_level=config.log_level.lower()
    )
