"""
Lambda handler responsible for updating image visibility and tags.
"""

import json
from typing import Any

from aws_lambda_powertools import Logger, Metrics, Tracer
from aws_lambda_powertools.metrics import MetricUnit
from aws_lambda_powertools.utilities.typing import LambdaContext
from pydantic import ValidationError

from core.utils.decorators import api_gateway_handler, request_summary
from core.utils.response import ResponseBuilder
from core.utils.validators import (
    invalid_request_response,
    principal_from_event,
    validate_request,
)

from .models import UpdateImageRequest, UpdateImageResponse
from .service import UpdateService

logger = Logger(UTC=True)
tracer = Tracer()
metrics = Metrics()


@api_gateway_handler
@tracer.capture_lambda_handler
@metrics.log_metrics()
def handler(event: dict[str, Any], context: LambdaContext) -> dict[str, Any]:
    """
    Handle PATCH requests changing ``is_public`` and/or ``tags``.

    Args:
        event: API Gateway Lambda proxy event
        context: AWS Lambda execution context

    Returns:
        API Gateway-compatible HTTP response
    """
    logger.info("Received image update request", extra=request_summary(event, context))

    principal = principal_from_event(event)
    if principal is None:
        return ResponseBuilder.forbidden("Authentication required to update images")

    try:
        body = json.loads(event.get("body") or "{}")
    except json.JSONDecodeError:
        return ResponseBuilder.bad_request("Request body must be valid JSON")

    if not isinstance(body, dict):
        return ResponseBuilder.bad_request("Request body must be a JSON object")

    path_params = event.get("pathParameters") or {}

    try:
        request = validate_request(
            UpdateImageRequest,
            {**body, "image_id": path_params.get("image_id")},
        )
    except ValidationError as exc:
        return invalid_request_response(exc, "Invalid request payload")

    image = UpdateService().update_image(
        request.image_id,
        principal,
        is_public=request.is_public,
        tags=request.tags,
    )

    metrics.add_metric(name="ImagesUpdated", unit=MetricUnit.Count, value=1)

    response = UpdateImageResponse(image=image, message="Image updated successfully")
    return ResponseBuilder.ok(response.model_dump())
