"""
Common decorators and helpers for API Gateway Lambda handlers.
"""

from __future__ import annotations

from collections.abc import Callable
from functools import wraps
from http import HTTPStatus
from typing import Any

from aws_lambda_powertools import Logger

from core.models.errors import (
    DuplicateImageError,
    FileSizeError,
    ForbiddenError,
    ImageServiceError,
    MetadataOperationFailedError,
    NotFoundError,
    StorageError,
    ValidationError,
)
from core.utils.response import ResponseBuilder

logger = Logger(service="api-gateway-handler", UTC=True)

JsonDict = dict[str, Any]

# Most specific first; the first isinstance match wins.
ERROR_STATUS_MAP: tuple[tuple[type[ImageServiceError], HTTPStatus], ...] = (
    (FileSizeError, HTTPStatus.REQUEST_ENTITY_TOO_LARGE),
    (ValidationError, HTTPStatus.BAD_REQUEST),
    (NotFoundError, HTTPStatus.NOT_FOUND),
    (ForbiddenError, HTTPStatus.FORBIDDEN),
    (StorageError, HTTPStatus.INTERNAL_SERVER_ERROR),
    (MetadataOperationFailedError, HTTPStatus.INTERNAL_SERVER_ERROR),
    (DuplicateImageError, HTTPStatus.INTERNAL_SERVER_ERROR),
)

# Messages that already read as user-facing text are returned unchanged.
CLIENT_MESSAGE_PREFIXES = ("Invalid", "Missing", "Required", "Must", "Cannot", "Unable to", "Image", "File")

# Fallback wording for built-in exceptions raised while parsing a request.
CLIENT_ERROR_MESSAGES: tuple[tuple[type[Exception], str], ...] = (
    ((UnicodeDecodeError, UnicodeEncodeError), "The request contains invalid characters or encoding."),
    (ValueError, "The provided data is invalid. Please check your input and try again."),
    ((KeyError, AttributeError), "A required field is missing. Please ensure all required fields are provided."),
    (TypeError, "The data format is incorrect. Please check the request format."),
)

UNEXPECTED_ERROR_MESSAGE = "We're experiencing technical difficulties. Please try again in a few moments."


def status_for_error(exc: ImageServiceError) -> HTTPStatus:
    """Map a domain error to the HTTP status returned to the client."""
    for error_type, status in ERROR_STATUS_MAP:
        if isinstance(exc, error_type):
            return status
    return HTTPStatus.INTERNAL_SERVER_ERROR


def error_response(
    exc: ImageServiceError,
    *,
    request_id: str | None = None,
    cors_origin: str | None = None,
) -> JsonDict:
    """Build the client-facing response for a domain error.

    Server-side failures keep their machine code but never expose details,
    which may carry storage paths.
    """
    status = status_for_error(exc)

    return ResponseBuilder.error(
        status=status,
        error=exc.error_code,
        message=exc.message,
        details=exc.details if status < HTTPStatus.INTERNAL_SERVER_ERROR else None,
        request_id=request_id,
        cors_origin=cors_origin,
    )


def request_summary(event: Any, context: Any) -> JsonDict:
    """Fields every handler logs when a request arrives."""
    return {
        "http_method": event.get("httpMethod"),
        "path": event.get("path"),
        "request_id": getattr(context, "aws_request_id", None),
        "function_name": getattr(context, "function_name", None),
    }


def client_message(exc: Exception) -> str:
    """Message for a built-in exception that escaped a handler as a 400."""
    text = str(exc)
    if text.startswith(CLIENT_MESSAGE_PREFIXES):
        return text

    for error_types, message in CLIENT_ERROR_MESSAGES:
        if isinstance(exc, error_types):
            return message

    return "We encountered an issue processing your request. Please try again."


def _log_failure(message: str, exc: Exception, *, handler_name: str, request_id: str | None, level: str) -> None:
    extra: JsonDict = {
        "handler": handler_name,
        "request_id": request_id,
        "error": str(exc),
        "error_type": type(exc).__name__,
    }
    if isinstance(exc, ImageServiceError):
        extra["error_code"] = exc.error_code
        extra["details"] = exc.details

    if level == "exception":
        logger.exception(message, extra=extra)
    elif level == "info":
        logger.info(message, extra=extra)
    else:
        logger.warning(message, extra=extra, exc_info=True)


def api_gateway_handler(
    func: Callable[..., JsonDict],
) -> Callable[..., JsonDict]:
    """
    Decorator for API Gateway Lambda handlers.

    Provides:
    - CORS preflight (OPTIONS) answered without calling the handler
    - Domain errors translated to their HTTP status and machine code
    - ValueError/KeyError/TypeError/AttributeError answered as 400
    - TimeoutError as 504, anything else as a generic 500
    """

    @wraps(func)
    def wrapper(
        event: Any,
        context: Any,
        *,
        cors_origin: str | None = None,
    ) -> JsonDict:
        if event.get("httpMethod") == "OPTIONS":
            return ResponseBuilder.no_content(cors_origin=cors_origin)

        request_id = getattr(context, "aws_request_id", None)
        log_context = {"handler_name": func.__name__, "request_id": request_id}

        try:
            return func(event, context)

        except ImageServiceError as exc:
            if status_for_error(exc) >= HTTPStatus.INTERNAL_SERVER_ERROR:
                _log_failure("Service error in handler", exc, level="exception", **log_context)
            else:
                _log_failure("Request rejected", exc, level="info", **log_context)
            return error_response(exc, request_id=request_id, cors_origin=cors_origin)

        except (ValueError, KeyError, TypeError, AttributeError) as exc:
            _log_failure("Validation error in handler", exc, level="warning", **log_context)
            return ResponseBuilder.bad_request(
                client_message(exc),
                request_id=request_id,
                cors_origin=cors_origin,
            )

        except TimeoutError as exc:
            _log_failure("Request timeout", exc, level="exception", **log_context)
            return ResponseBuilder.error(
                status=HTTPStatus.GATEWAY_TIMEOUT,
                message="The request took too long to process. Please try again.",
                request_id=request_id,
                cors_origin=cors_origin,
            )

        except Exception as exc:
            _log_failure("Unexpected error in handler", exc, level="exception", **log_context)
            return ResponseBuilder.internal_error(
                UNEXPECTED_ERROR_MESSAGE,
                request_id=request_id,
                cors_origin=cors_origin,
            )

    return wrapper
