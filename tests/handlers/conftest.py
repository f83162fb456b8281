import json
from collections.abc import Callable
from types import SimpleNamespace
from typing import Any

import pytest

from core.dependencies import ServiceDependencies
from core.models.image import ImagePublicView
from core.models.principal import Principal
from handlers.upload_image.service import UploadService

SERVICE_MODULES = (
    "handlers.upload_image.service",
    "handlers.get_image.service",
    "handlers.delete_image.service",
    "handlers.update_image.service",
    "handlers.list_images.service",
)


@pytest.fixture
def lambda_context():
    return SimpleNamespace(
        aws_request_id="test-request-id",
        function_name="test-function",
        memory_limit_in_mb=256,
        invoked_function_arn="arn:aws:lambda:us-east-1:000000000000:function:test",
        log_group_name="/aws/lambda/test-function",
        log_stream_name="2024/01/01/[$LATEST]test",
    )


@pytest.fixture
def handler_deps(monkeypatch, deps: ServiceDependencies) -> ServiceDependencies:
    """Route every service constructed without arguments to the test wiring."""
    for module in SERVICE_MODULES:
        monkeypatch.setattr(f"{module}.get_dependencies", lambda: deps)
    return deps


@pytest.fixture
def upload_service(deps: ServiceDependencies) -> UploadService:
    return UploadService(deps)


@pytest.fixture
def store_image(
    upload_service: UploadService,
    deps: ServiceDependencies,
    jpeg_bytes: bytes,
) -> Callable[..., ImagePublicView]:
    """Ingest an image through the real pipeline and return its public view."""

    def _store(
        principal: Principal,
        *,
        file_data: bytes | None = None,
        mime_type: str | None = "image/jpeg",
        image_name: str = "photo.jpg",
        tags: list[str] | None = None,
    ) -> ImagePublicView:
        return upload_service.upload_image(
            file_data=jpeg_bytes if file_data is None else file_data,
            mime_type=mime_type,
            image_name=image_name,
            principal=principal,
            profile=deps.config.authenticated_profile,
            tags=tags,
        )

    return _store


def authorizer(principal: Principal | None) -> dict[str, Any]:
    if principal is None:
        return {}
    return {"authorizer": {"user_id": principal.user_id, "role": principal.role}}


@pytest.fixture
def api_event() -> Callable[..., dict[str, Any]]:
    """Build an API Gateway proxy event."""

    def _event(
        *,
        method: str = "GET",
        path: str = "/",
        principal: Principal | None = None,
        path_params: dict[str, str] | None = None,
        query: dict[str, str] | None = None,
        body: Any = None,
    ) -> dict[str, Any]:
        return {
            "httpMethod": method,
            "path": path,
            "pathParameters": path_params,
            "queryStringParameters": query,
            "requestContext": authorizer(principal),
            "body": json.dumps(body) if body is not None and not isinstance(body, str) else body,
        }

    return _event
