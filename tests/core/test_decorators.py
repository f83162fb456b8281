import json
from http import HTTPStatus
from types import SimpleNamespace
from typing import Any

import pytest

from core.models.errors import (
    DuplicateImageError,
    DynamoDBError,
    FileSizeError,
    FilterError,
    ForbiddenError,
    GuestUploadDisabledError,
    ImageServiceError,
    ImageUploadFailedError,
    MIMETypeError,
    NotFoundError,
    ValidationError,
)
from core.utils.decorators import api_gateway_handler, error_response, status_for_error

CONTEXT = SimpleNamespace(aws_request_id="req-123")


def _raising(exc: Exception):
    @api_gateway_handler
    def handler(event: dict[str, Any], context: Any) -> dict[str, Any]:
        raise exc

    return handler


@pytest.mark.parametrize(
    ("exc", "status"),
    [
        (FileSizeError(message="too big"), HTTPStatus.REQUEST_ENTITY_TOO_LARGE),
        (MIMETypeError(message="bad type"), HTTPStatus.BAD_REQUEST),
        (FilterError(message="bad filter"), HTTPStatus.BAD_REQUEST),
        (ValidationError(message="bad"), HTTPStatus.BAD_REQUEST),
        (NotFoundError(message="missing"), HTTPStatus.NOT_FOUND),
        (ForbiddenError(message="no"), HTTPStatus.FORBIDDEN),
        (GuestUploadDisabledError(), HTTPStatus.FORBIDDEN),
        (ImageUploadFailedError(message="disk"), HTTPStatus.INTERNAL_SERVER_ERROR),
        (DynamoDBError(message="db"), HTTPStatus.INTERNAL_SERVER_ERROR),
        (DuplicateImageError(message="dup"), HTTPStatus.INTERNAL_SERVER_ERROR),
        (ImageServiceError(message="other", error_code="X"), HTTPStatus.INTERNAL_SERVER_ERROR),
    ],
)
def test_status_for_error(exc: ImageServiceError, status: HTTPStatus) -> None:
    assert status_for_error(exc) == status


class TestErrorResponse:
    def test_client_errors_keep_details(self) -> None:
        response = error_response(NotFoundError(message="Image not found", details={"image_id": "x"}))

        body = json.loads(response["body"])
        assert response["statusCode"] == 404
        assert body["error"] == "NOT_FOUND"
        assert body["details"] == {"image_id": "x"}

    def test_server_errors_hide_details(self) -> None:
        response = error_response(
            ImageUploadFailedError(message="Unable to store", details={"storage_path": "2024/01/x.jpg"})
        )

        body = json.loads(response["body"])
        assert response["statusCode"] == 500
        assert body["error"] == "IMAGE_UPLOAD_FAILED"
        assert "details" not in body


class TestApiGatewayHandler:
    def test_passes_through_success(self) -> None:
        @api_gateway_handler
        def handler(event: dict[str, Any], context: Any) -> dict[str, Any]:
            return {"statusCode": 200, "body": "ok"}

        assert handler({}, CONTEXT) == {"statusCode": 200, "body": "ok"}

    def test_options_preflight(self) -> None:
        called: list[bool] = []

        @api_gateway_handler
        def handler(event: dict[str, Any], context: Any) -> dict[str, Any]:
            called.append(True)
            return {}

        response = handler({"httpMethod": "OPTIONS"}, CONTEXT)

        assert response["statusCode"] == 204
        assert "Access-Control-Allow-Methods" in response["headers"]
        assert called == []

    def test_domain_error_is_mapped(self) -> None:
        response = _raising(FileSizeError(message="File size exceeds 5.0 MB limit"))({}, CONTEXT)

        body = json.loads(response["body"])
        assert response["statusCode"] == 413
        assert body["error"] == "FILE_TOO_LARGE"
        assert body["request_id"] == "req-123"

    def test_value_error_is_bad_request(self) -> None:
        response = _raising(ValueError("Invalid limit"))({}, CONTEXT)

        assert response["statusCode"] == 400
        assert json.loads(response["body"])["message"] == "Invalid limit"

    def test_key_error_gets_friendly_message(self) -> None:
        response = _raising(KeyError("user_id"))({}, CONTEXT)

        assert response["statusCode"] == 400
        assert "required field" in json.loads(response["body"])["message"]

    def test_timeout(self) -> None:
        assert _raising(TimeoutError())({}, CONTEXT)["statusCode"] == 504

    def test_unexpected_error_hides_internals(self) -> None:
        response = _raising(RuntimeError("secret path /var/data"))({}, CONTEXT)

        body = json.loads(response["body"])
        assert response["statusCode"] == 500
        assert "secret" not in body["message"]
