"""
Lambda handler responsible for multi-file image upload.
"""

import json
from typing import Any

from aws_lambda_powertools import Logger, Metrics, Tracer
from aws_lambda_powertools.metrics import MetricUnit
from aws_lambda_powertools.utilities.typing import LambdaContext
from pydantic import ValidationError

from core.models.errors import ForbiddenError
from core.utils.decorators import api_gateway_handler, request_summary
from core.utils.response import ResponseBuilder
from core.utils.validators import (
    invalid_request_response,
    principal_from_event,
    validate_request,
)
from handlers.upload_image.models import BatchUploadRequest, BatchUploadResponse, UploadFile
from handlers.upload_image.service import UploadService

logger = Logger(UTC=True)
tracer = Tracer()
metrics = Metrics()


@api_gateway_handler
@tracer.capture_lambda_handler
@metrics.log_metrics()
def handler(event: dict[str, Any], context: LambdaContext) -> dict[str, Any]:
    """
    Handle batch upload requests: ``{"files": [{file, image_name, ...}, ...]}``.

    Each file is ingested on its own. Responds 201 when every file was
    stored and 207 with per-file results otherwise. Authenticated callers only.

    Args:
        event: API Gateway Lambda proxy event
        context: AWS Lambda execution context

    Returns:
        API Gateway-compatible HTTP response
    """
    logger.info("Received batch upload request", extra=request_summary(event, context))

    principal = principal_from_event(event)
    if principal is None:
        raise ForbiddenError(message="Batch upload requires an authenticated user")

    try:
        body = json.loads(event.get("body") or "{}")
    except json.JSONDecodeError:
        logger.warning("Invalid JSON body received")
        return ResponseBuilder.bad_request(message="Invalid JSON body")

    files = body.get("files") if isinstance(body, dict) else None
    if isinstance(files, list):
        UploadService.check_batch_size(len(files))

    try:
        request = validate_request(BatchUploadRequest, body if isinstance(body, dict) else {})
    except ValidationError as exc:
        return invalid_request_response(exc, "Invalid request params")

    service = UploadService()
    _, profile = service.resolve_uploader(principal)

    results = service.upload_images(
        files=[
            UploadFile(
                file_data=service.decode_file(item.file),
                image_name=item.image_name,
                mime_type=item.mime_type,
                tags=item.tags,
            )
            for item in request.files
        ],
        principal=principal,
        profile=profile,
    )

    uploaded = sum(1 for result in results if result.success)
    metrics.add_metric(name="ImagesUploaded", unit=MetricUnit.Count, value=uploaded)

    response = BatchUploadResponse(
        results=results,
        uploaded_count=uploaded,
        failed_count=len(results) - uploaded,
    )

    if uploaded == len(results):
        return ResponseBuilder.created(response.model_dump())
    return ResponseBuilder.multi_status(response.model_dump())
