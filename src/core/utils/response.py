"""
API Gateway proxy responses: JSON envelopes, error bodies and binary images.
"""

from __future__ import annotations

import base64
import json
from http import HTTPStatus
from typing import Any

from core.utils.constants import (
    CORS_HEADERS,
    CORS_METHODS,
    CORS_ORIGIN,
    DEFAULT_CONTENT_TYPE,
    EXPOSE_HEADERS,
)
from core.utils.time import utc_now_iso

JsonDict = dict[str, Any]


def cors_headers(origin: str | None = None) -> dict[str, str]:
    """CORS headers sent on every response, JSON or binary."""
    return {
        "Access-Control-Allow-Origin": origin or CORS_ORIGIN,
        "Access-Control-Allow-Headers": CORS_HEADERS,
        "Access-Control-Allow-Methods": CORS_METHODS,
        "Access-Control-Expose-Headers": EXPOSE_HEADERS,
    }


class ResponseBuilder:
    """Factory for API Gateway-compatible HTTP responses.

    JSON bodies are serialised here; ``request_id``, when given, is echoed
    into the body so clients can quote it in support requests.
    """

    @staticmethod
    def json(
        status: HTTPStatus,
        body: JsonDict | None = None,
        *,
        request_id: str | None = None,
        cors_origin: str | None = None,
    ) -> JsonDict:
        payload: JsonDict = dict(body or {})
        if request_id:
            payload["request_id"] = request_id

        return {
            "statusCode": status.value,
            "headers": {"Content-Type": DEFAULT_CONTENT_TYPE, **cors_headers(cors_origin)},
            "body": json.dumps(payload),
        }

    @staticmethod
    def ok(body: JsonDict, **kwargs: Any) -> JsonDict:
        return ResponseBuilder.json(HTTPStatus.OK, body, **kwargs)

    @staticmethod
    def created(body: JsonDict, **kwargs: Any) -> JsonDict:
        return ResponseBuilder.json(HTTPStatus.CREATED, body, **kwargs)

    @staticmethod
    def multi_status(body: JsonDict, **kwargs: Any) -> JsonDict:
        """207 for batch requests where some items failed."""
        return ResponseBuilder.json(HTTPStatus.MULTI_STATUS, body, **kwargs)

    @staticmethod
    def no_content(*, cors_origin: str | None = None) -> JsonDict:
        """Empty 204, used for CORS preflight."""
        return {
            "statusCode": HTTPStatus.NO_CONTENT.value,
            "headers": {"Content-Type": DEFAULT_CONTENT_TYPE, **cors_headers(cors_origin)},
            "body": "",
        }

    @staticmethod
    def error(
        *,
        status: HTTPStatus,
        message: str,
        error: str | None = None,
        details: JsonDict | list[Any] | None = None,
        request_id: str | None = None,
        cors_origin: str | None = None,
    ) -> JsonDict:
        """Error envelope: machine code, human message, timestamp, optional details.

        ``error`` defaults to the status name (``NOT_FOUND``, ``FORBIDDEN``...).
        """
        payload: JsonDict = {
            "error": error or status.name,
            "message": message,
            "timestamp": utc_now_iso(),
        }
        if details:
            payload["details"] = details

        return ResponseBuilder.json(
            status,
            payload,
            request_id=request_id,
            cors_origin=cors_origin,
        )

    @staticmethod
    def bad_request(message: str, **kwargs: Any) -> JsonDict:
        return ResponseBuilder.error(status=HTTPStatus.BAD_REQUEST, message=message, **kwargs)

    @staticmethod
    def forbidden(message: str = "Forbidden", **kwargs: Any) -> JsonDict:
        return ResponseBuilder.error(status=HTTPStatus.FORBIDDEN, message=message, **kwargs)

    @staticmethod
    def internal_error(message: str = "Internal server error", **kwargs: Any) -> JsonDict:
        return ResponseBuilder.error(
            status=HTTPStatus.INTERNAL_SERVER_ERROR,
            message=message,
            **kwargs,
        )

    @staticmethod
    def binary_response(
        content: bytes,
        *,
        content_type: str,
        headers: dict[str, str] | None = None,
        cors_origin: str | None = None,
    ) -> JsonDict:
        """200 carrying raw bytes; API Gateway decodes the base64 body.

        Headers supplied by the caller (ETag, Cache-Control,
        Content-Disposition) override the defaults.
        """
        return {
            "statusCode": HTTPStatus.OK.value,
            "headers": {
                "Content-Type": content_type,
                "Content-Length": str(len(content)),
                **cors_headers(cors_origin),
                **(headers or {}),
            },
            "body": base64.b64encode(content).decode("ascii"),
            "isBase64Encoded": True,
        }
