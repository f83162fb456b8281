"""
Lambda handler responsible for deleting an image resource.
"""

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

from .models import DeleteImageRequest, DeleteImageResponse
from .service import DeleteService

logger = Logger(UTC=True)
tracer = Tracer()
metrics = Metrics()


@api_gateway_handler
@tracer.capture_lambda_handler
@metrics.log_metrics()
def handler(event: dict[str, Any], context: LambdaContext) -> dict[str, Any]:
    """
    DELETE /image/{image_id}: owner or admin only.

    The response reports whether the backing file was removed as well;
    a missing file does not fail the request.
    """
    logger.info("Received image delete request", extra=request_summary(event, context))

    principal = principal_from_event(event)
    if principal is None:
        return ResponseBuilder.forbidden("Authentication required to delete images")

    image_id = (event.get("pathParameters") or {}).get("image_id")

    try:
        request = validate_request(DeleteImageRequest, {"image_id": image_id})
    except ValidationError as exc:
        return invalid_request_response(exc, "Invalid request payload")

    receipt = DeleteService().delete_image(request.image_id, principal)

    metrics.add_metric(name="ImagesDeleted", unit=MetricUnit.Count, value=1)

    return ResponseBuilder.ok(
        DeleteImageResponse(
            **receipt.model_dump(exclude={"owner_id"}),
            message="Image deleted successfully",
        ).model_dump()
    )
