import logging
import uuid
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from opentelemetry import metrics, trace
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor

from .config import get_settings
from .errors import BookStoreError
from .logs import setup_logging
from .models import (
    BookCreatedResponse,
    BookListResponse,
    BookQuery,
    BookResponse,
    BookUpdatedResponse,
    CreateBook,
    ErrorResponse,
    MessageResponse,
    UpdateBook,
)
from .otel import configure_otel
from .service import BookService, build_query, parse_book_id
from .storage import BookStorage, JsonFileStorage

settings = get_settings()
logger = logging.getLogger(__name__)


def get_storage() -> BookStorage:
    return JsonFileStorage(settings.books_file, raise_on_write_error=settings.raise_on_write_error)


def get_book_service(storage: BookStorage = Depends(get_storage)) -> BookService:
    return BookService(storage)


def path_book_id(book_id: str) -> int:
    return parse_book_id(book_id)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging(settings.log_level)
    if settings.otel_enabled:
        configure_otel()
    logger.info("app.startup", extra={"books_file": settings.books_file, "port": settings.port})
    yield
    logger.info("app.shutdown")


app = FastAPI(
    title=settings.app_name,
    version=settings.version,
    description="A small Books API persisted to a JSON file.",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
    responses={400: {"model": ErrorResponse}},
)

if settings.allowed_origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type"],
    )


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=ErrorResponse(message=message).model_dump())


@app.exception_handler(BookStoreError)
async def book_store_error_handler(request: Request, exc: BookStoreError) -> JSONResponse:
    return _error(exc.status_code, exc.message)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    first = errors[0] if errors else {}
    if first.get("type") == "json_invalid":
        return _error(status.HTTP_400_BAD_REQUEST, "Request body is not valid JSON.")
    location = ".".join(str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path"))
    if not location:
        return _error(status.HTTP_400_BAD_REQUEST, "Request body must be a JSON object.")
    return _error(status.HTTP_400_BAD_REQUEST, f"Invalid value for {location}: {first.get('msg', 'invalid')}.")


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("request.failed", extra={"path": request.url.path, "method": request.method})
    return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal Server Error.")


@app.get("/health", tags=["health"])
def health() -> dict:
    return {"status": "ok"}


@app.get("/books", response_model=BookListResponse, tags=["books"])
def list_books(
    query: BookQuery = Depends(build_query),
    service: BookService = Depends(get_book_service),
) -> BookListResponse:
    return BookListResponse(books=service.list(query))


@app.post(
    "/books",
    response_model=BookCreatedResponse,
    status_code=status.HTTP_201_CREATED,
    responses={409: {"model": ErrorResponse}},
    tags=["books"],
)
def create_book(
    payload: CreateBook | None = None,
    service: BookService = Depends(get_book_service),
) -> BookCreatedResponse:
    return BookCreatedResponse(book=service.create(payload or CreateBook()))


@app.get("/books/{book_id}", response_model=BookResponse, responses={404: {"model": ErrorResponse}}, tags=["books"])
def get_book(
    book_id: int = Depends(path_book_id),
    service: BookService = Depends(get_book_service),
) -> BookResponse:
    return BookResponse(book=service.get(book_id))


@app.put(
    "/books/{book_id}",
    response_model=BookUpdatedResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
    tags=["books"],
)
def update_book(
    book_id: int = Depends(path_book_id),
    payload: UpdateBook | None = None,
    service: BookService = Depends(get_book_service),
) -> BookUpdatedResponse:
    return BookUpdatedResponse(updated_book=service.update(book_id, payload or UpdateBook()))


@app.delete("/books/{book_id}", response_model=MessageResponse, responses={404: {"model": ErrorResponse}}, tags=["books"])
def delete_book(
    book_id: int = Depends(path_book_id),
    service: BookService = Depends(get_book_service),
) -> MessageResponse:
    service.delete(book_id)
    return MessageResponse(message=f"Book with ID {book_id} deleted successfully.")


request_logger = logging.getLogger("bookstore.requests")


@app.middleware("http")
async def request_logging_middleware(request, call_next):
    request_logger.info("request.start", extra={"path": request.url.path, "method": request.method})
    response = await call_next(request)
    request_logger.info(
        "request.end",
        extra={"path": request.url.path, "method": request.method, "status": response.status_code},
    )
    return response


@app.middleware("http")
async def request_id_middleware(request, call_next):
    request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


FastAPIInstrumentor.instrument_app(
    app,
    tracer_provider=trace.get_tracer_provider(),
    meter_provider=metrics.get_meter_provider(),
)
