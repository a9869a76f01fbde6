"""Error rendering and request context for the Storefront API.

Every failure leaves the API as ``{"error": {"code": ..., "message": ...}}``
with the HTTP status of its category. Unexpected exceptions are logged with
their traceback and reported as a generic 500.
"""

import uuid

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from protean.exceptions import ObjectNotFoundError, ValidationError

from storefront.errors import StorefrontError
from storefront.utils.logging import add_context, clear_context

logger = structlog.get_logger(__name__)


def error_response(status_code: int, code: str, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": {"code": code, "message": message}})


def _first_message(messages) -> str:
    if isinstance(messages, dict):
        for field, errors in messages.items():
            detail = errors[0] if isinstance(errors, list | tuple) and errors else errors
            return f"{field}: {detail}"
    return str(messages)


async def handle_storefront_error(request: Request, exc: StorefrontError) -> JSONResponse:
    log = logger.error if exc.status_code >= 500 else logger.info
    log("Request failed", code=exc.code, status_code=exc.status_code, detail=exc.message)
    return error_response(exc.status_code, exc.code, exc.message)


async def handle_validation_error(request: Request, exc: ValidationError) -> JSONResponse:
    logger.info("Validation failed", errors=exc.messages)
    return error_response(400, "VALIDATION_ERROR", _first_message(exc.messages))


async def handle_request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    message = "Invalid request body"
    if errors:
        location = ".".join(str(part) for part in errors[0].get("loc", ()) if part != "body")
        message = f"{location}: {errors[0].get('msg')}" if location else errors[0].get("msg", message)
    return error_response(400, "VALIDATION_ERROR", message)


async def handle_not_found(request: Request, exc: ObjectNotFoundError) -> JSONResponse:
    return error_response(404, "NOT_FOUND", "Resource not found")


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error", path=request.url.path, method=request.method)
    return error_response(500, "INTERNAL_ERROR", "Something went wrong")


def register_error_handlers(app: FastAPI) -> None:
    """Attach the storefront error envelope to ``app``."""
    app.add_exception_handler(StorefrontError, handle_storefront_error)
    app.add_exception_handler(ValidationError, handle_validation_error)
    app.add_exception_handler(RequestValidationError, handle_request_validation_error)
    app.add_exception_handler(ObjectNotFoundError, handle_not_found)
    app.add_exception_handler(Exception, handle_unexpected_error)


async def request_context_middleware(request: Request, call_next):
    """Bind request id, method and path to every log line of the request."""
    request_id = request.headers.get("x-request-id") or uuid.uuid4().hex
    clear_context()
    add_context(request_id=request_id, method=request.method, path=request.url.path)
    try:
        response = await call_next(request)
    finally:
        clear_context()
    response.headers["X-Request-Id"] = request_id
    return response
