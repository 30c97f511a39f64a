"""
FastAPI main application for the Books API.
"""

import time
import uuid
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Annotated, Optional

import structlog
from fastapi import APIRouter, Depends, FastAPI, HTTPException, Path, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.config import APIConfig, config
from api.database import BookStorage
from api.errors import BookServiceError
from api.middleware import RequestTimeoutMiddleware
from api.models import BookCreate, BookResponse, BookUpdate, ErrorResponse, HealthResponse

logger = structlog.get_logger(__name__)

BOOK_ID_PATTERN = r"^[a-zA-Z0-9]+$"


def get_storage(request: Request) -> BookStorage:
    """Resolve the storage accessor attached to the running application."""
    storage = getattr(request.app.state, "storage", None)
    if storage is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Database service not available",
        )
    return storage


BookId = Annotated[str, Path(pattern=BOOK_ID_PATTERN, description="Book identifier (MongoDB ObjectId)")]

router = APIRouter(prefix="/books", tags=["Books"])


@router.get("/{book_id}", response_model=BookResponse)
async def read_book(book_id: BookId, storage: BookStorage = Depends(get_storage)):
    """Get a single book by ID."""
    return await storage.get_book(book_id)


@router.post("", response_model=BookResponse)
async def create_book(book: BookCreate, storage: BookStorage = Depends(get_storage)):
    """
    Create a book.

    Any ``id`` in the payload is ignored; the stored record, including its
    generated ID, is returned.
    """
    created = await storage.create_book(book)
    logger.info("Book created", book_id=created.id)
    return created


@router.put("/{book_id}", response_class=PlainTextResponse)
async def update_book(
    update: BookUpdate,
    book_id: BookId,
    storage: BookStorage = Depends(get_storage),
):
    """
    Merge-update a book.

    Only fields present in the payload are overwritten. Fields left out keep
    their stored values.
    """
    await storage.update_book(book_id, update)
    logger.info("Book updated", book_id=book_id)
    return PlainTextResponse("Update successful")


@router.delete("/{book_id}", response_class=PlainTextResponse)
async def delete_book(book_id: BookId, storage: BookStorage = Depends(get_storage)):
    """Delete a book."""
    await storage.delete_book(book_id)
    logger.info("Book deleted", book_id=book_id)
    return PlainTextResponse("Delete successful")


def _error_response(status_code: int, error: str, detail: Optional[str] = None, headers=None):
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=error, detail=detail, status_code=status_code).model_dump(),
        headers=headers,
    )


def create_app(settings: APIConfig = config, storage: Optional[BookStorage] = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        settings: Configuration to use
        storage: Pre-built storage accessor. When omitted, one is connected
            during startup and closed on shutdown.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan manager."""
        logger.info("Starting Books API", state="starting")
        owns_storage = app.state.storage is None
        if owns_storage:
            # Raising here aborts startup and uvicorn exits non-zero.
            app.state.storage = await BookStorage.connect(
                settings.mongodb_url,
                settings.mongodb_database,
                settings.mongodb_collection,
                server_selection_timeout_ms=settings.server_selection_timeout_ms,
            )
        logger.info("Books API ready", state="serving")

        yield

        if owns_storage:
            app.state.storage.close()
            app.state.storage = None
        logger.info("Books API stopped", state="stopped")

    app = FastAPI(
        title=settings.api_title,
        description=settings.api_description,
        version=settings.api_version,
        lifespan=lifespan,
    )
    app.state.storage = storage

    app.add_middleware(RequestTimeoutMiddleware, timeout=settings.request_timeout)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """Log every request with its outcome and duration."""
        request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
        start = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                "Request failed",
                request_id=request_id,
                method=request.method,
                path=request.url.path,
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                duration_ms=round((time.perf_counter() - start) * 1000, 2),
                error=str(e),
            )
            raise
        duration_ms = (time.perf_counter() - start) * 1000
        response.headers["X-Request-ID"] = request_id
        logger.info(
            "Request handled",
            request_id=request_id,
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            duration_ms=round(duration_ms, 2),
        )
        return response

    @app.exception_handler(BookServiceError)
    async def book_service_exception_handler(request: Request, exc: BookServiceError):
        """Map typed storage errors to their HTTP status."""
        if exc.status_code >= 500:
            logger.error("Book operation failed", path=request.url.path, error=exc.message, detail=exc.detail)
        return _error_response(exc.status_code, exc.message, exc.detail)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        """Handle HTTP exceptions."""
        return _error_response(exc.status_code, str(exc.detail), headers=getattr(exc, "headers", None))

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Reject malformed identifiers and bodies with 400."""
        messages = []
        for error in exc.errors():
            location = ".".join(str(part) for part in error.get("loc", ()))
            messages.append(f"{location}: {error.get('msg')}")
        return _error_response(status.HTTP_400_BAD_REQUEST, "Invalid request", "; ".join(messages))

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """Handle general exceptions."""
        logger.error("Unhandled exception", error=str(exc), path=request.url.path)
        return _error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "Internal server error",
            str(exc) if settings.debug else None,
        )

    @app.get("/health", response_model=HealthResponse, tags=["Health"])
    async def health_check(request: Request):
        """Health check endpoint."""
        db_status = "unavailable"
        storage = getattr(request.app.state, "storage", None)
        if storage is not None:
            health_info = await storage.health_check()
            db_status = health_info.get("status", "unknown")

        return HealthResponse(
            status="healthy" if db_status == "healthy" else "degraded",
            timestamp=datetime.utcnow(),
            version=settings.api_version,
            database_status=db_status,
        )

    app.include_router(router, prefix=settings.api_prefix)
    return app


app = create_app()
