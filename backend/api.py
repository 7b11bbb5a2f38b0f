"""FastAPI entrypoint for the transactions REST API."""

from __future__ import annotations

import logging
import traceback
from functools import lru_cache
from typing import Any

from fastapi import APIRouter, Body, FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.requests import Request
from fastapi.responses import JSONResponse

from backend.errors import AppError, DatabaseError
from backend.factory import build_transaction_service
from backend.services.transaction_service import TransactionService
from shared import config
from shared.models import ErrorCode, PaginatedTransactions, Transaction


logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_transaction_service() -> TransactionService:
    """Create and cache the transaction service once per process."""

    return build_transaction_service()


def _success(data: Any, *, status_code: int = 200, pagination: dict[str, int] | None = None) -> JSONResponse:
    content: dict[str, Any] = {"status": "success", "data": data}
    if pagination is not None:
        content["pagination"] = pagination
    return JSONResponse(status_code=status_code, content=content)


def _transaction_payload(transaction: Transaction) -> dict[str, Any]:
    return transaction.model_dump(mode="json")


def _page_response(page: PaginatedTransactions) -> JSONResponse:
    return _success(
        [_transaction_payload(item) for item in page.items],
        pagination=page.pagination.model_dump(by_alias=True),
    )


def _error_response(
    status_code: int,
    message: str,
    *,
    code: ErrorCode | None = None,
    details: Any = None,
    stack: str | None = None,
) -> JSONResponse:
    content: dict[str, Any] = {"status": "error", "message": message}
    if code is not None:
        content["code"] = code.value
    if details is not None:
        content["details"] = details
    if stack is not None:
        content["stack"] = stack
    return JSONResponse(status_code=status_code, content=content)


router = APIRouter(prefix="/api/transactions", tags=["transactions"])


@router.post("", include_in_schema=False)
@router.post("/")
def create_transaction(payload: Any = Body(default=None)) -> JSONResponse:
    """Create a transaction; the timestamp defaults to now when omitted."""

    transaction = get_transaction_service().create_transaction(payload)
    return _success(_transaction_payload(transaction), status_code=201)


@router.get("", include_in_schema=False)
@router.get("/")
def list_transactions(request: Request) -> JSONResponse:
    """List a filtered, sorted page of transactions with pagination metadata."""

    page = get_transaction_service().list_transactions(dict(request.query_params))
    return _page_response(page)


@router.get("/{transaction_id}")
def get_transaction(transaction_id: str) -> JSONResponse:
    transaction = get_transaction_service().get_transaction(transaction_id)
    return _success(_transaction_payload(transaction))


app = FastAPI(title="Transactions API")

ALLOW_ORIGINS = config.cors_allow_origins()


@app.middleware("http")
async def log_http_requests(request: Request, call_next):
    """Log incoming requests, HTTP status codes and unexpected errors."""

    logger.info("http_request_received method=%s path=%s", request.method, request.url.path)
    try:
        response = await call_next(request)
    except Exception:
        logger.exception(
            "http_request_failed method=%s path=%s",
            request.method,
            request.url.path,
        )
        raise

    logger.info(
        "http_response_sent method=%s path=%s status_code=%s",
        request.method,
        request.url.path,
        response.status_code,
    )
    return response


app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOW_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

logger.info("cors_allow_origins=%s", ALLOW_ORIGINS)


@app.exception_handler(AppError)
async def handle_app_error(request: Request, exc: AppError) -> JSONResponse:
    """Map domain errors to the JSON error envelope."""

    logger.warning(
        "app_error method=%s path=%s exception_type=%s status_code=%s message=%s",
        request.method,
        request.url.path,
        type(exc).__name__,
        exc.status_code,
        exc.message,
    )
    details = exc.details
    if isinstance(exc, DatabaseError) and not config.is_development():
        details = None
    return _error_response(exc.status_code, exc.message, code=exc.code, details=details)


@app.exception_handler(RequestValidationError)
async def handle_request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report unparseable request bodies with the validation envelope."""

    details = [
        {
            "field": ".".join(str(part) for part in error.get("loc", ())) or "body",
            "message": str(error.get("msg", "Invalid value")),
        }
        for error in exc.errors()
    ]
    return _error_response(400, "Validation error", code=ErrorCode.VALIDATION_ERROR, details=details)


@app.exception_handler(Exception)
async def handle_unexpected_exception(request: Request, exc: Exception) -> JSONResponse:
    """Return a JSON 500 response for unhandled exceptions."""

    logger.exception(
        "unhandled_exception method=%s path=%s exception_type=%s message=%s",
        request.method,
        request.url.path,
        type(exc).__name__,
        str(exc),
        exc_info=exc,
    )
    stack = None
    if config.is_development():
        stack = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    return _error_response(500, "Internal server error", stack=stack)


@app.get("/health")
def health() -> dict[str, str]:
    """Healthcheck endpoint."""

    return {"status": "ok"}


app.include_router(router)

