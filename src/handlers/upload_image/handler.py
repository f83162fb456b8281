"""
Lambda handler responsible for image upload and metadata creation.
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

from .models import ImageUploadRequest, ImageUploadResponse
from .service import UploadService

logger = Logger(UTC=True)
tracer = Tracer()
metrics = Metrics()


@api_gateway_handler
@tracer.capture_lambda_handler
@metrics.log_metrics()
def handler(event: dict[str, Any], context: LambdaContext) -> dict[str, Any]:
    """
    Handle image upload requests.

    The handler validates the JSON payload, picks the upload profile from the
    caller identity (authenticated or guest), decodes the base64 image and
    hands it to the ingestion pipeline.

    Expected API Gateway event structure:
    {
        "body": "{\"file\": \"<base64>\", \"image_name\": \"cat.png\", ...}",
        "requestContext": {"authorizer": {"user_id": "...", "role": "..."}}
    }

    Args:
        event: API Gateway Lambda proxy event containing the upload payload
        context: AWS Lambda execution context

    Returns:
        API Gateway-compatible HTTP response containing the created image
    """
    logger.info("Received image upload request", extra=request_summary(event, context))

    try:
        body = json.loads(event.get("body") or "{}")
    except json.JSONDecodeError:
        logger.warning("Invalid JSON body received")
        return ResponseBuilder.bad_request(message="Invalid JSON body")

    if not isinstance(body, dict):
        return ResponseBuilder.bad_request(message="Invalid JSON body")

    try:
        request = validate_request(ImageUploadRequest, body)
    except ValidationError as exc:
        return invalid_request_response(exc, "Invalid request params")

    service = UploadService()
    principal, profile = service.resolve_uploader(principal_from_event(event))

    image = service.upload_image(
        file_data=service.decode_file(request.file),
        mime_type=request.mime_type,
        image_name=request.image_name,
        principal=principal,
        profile=profile,
        tags=request.tags,
    )

    metrics.add_metric(name="ImagesUploaded", unit=MetricUnit.Count, value=1)
    metrics.add_metric(name="UploadedBytes", unit=MetricUnit.Bytes, value=image.file_size)

    response = ImageUploadResponse(image=image, message="Image uploaded successfully")
    return ResponseBuilder.created(response.model_dump())
