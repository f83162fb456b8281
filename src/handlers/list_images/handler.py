"""
Lambda handler responsible for listing images and per-user statistics.
"""

from typing import Any

from aws_lambda_powertools import Logger, Metrics, Tracer
from aws_lambda_powertools.utilities.typing import LambdaContext
from pydantic import ValidationError

from core.utils.decorators import api_gateway_handler, request_summary
from core.utils.response import ResponseBuilder
from core.utils.validators import (
    invalid_request_response,
    principal_from_event,
    query_flag,
    validate_request,
)

from .models import ListImagesRequest
from .service import ListService

logger = Logger(UTC=True)
tracer = Tracer()
metrics = Metrics()


@api_gateway_handler
@tracer.capture_lambda_handler
@metrics.log_metrics()
def handler(event: dict[str, Any], context: LambdaContext) -> dict[str, Any]:
    """
    Handle requests to list a user's images or the public gallery.

    Supports:
    - Filtering by creation date (YYYY-MM-DD, inclusive)
    - Offset-based pagination
    - ``stats=1|true`` for aggregate counts instead of a page (owner or admin)

    Private images are only listed for their owner or an admin. Without a
    ``user_id`` the public images of every owner are listed.

    Args:
        event: API Gateway Lambda proxy event
        context: AWS Lambda execution context

    Returns:
        API Gateway-compatible HTTP response
    """
    logger.info(
        "Received image list request",
        extra={**request_summary(event, context), "query_params": event.get("queryStringParameters")},
    )

    path_params = event.get("pathParameters") or {}
    params: dict[str, Any] = dict(event.get("queryStringParameters") or {})
    if path_params.get("user_id"):
        params["user_id"] = path_params["user_id"]
    params["stats"] = query_flag(params.get("stats"))

    try:
        request = validate_request(ListImagesRequest, params)
    except ValidationError as exc:
        return invalid_request_response(exc, "Invalid request params")

    service = ListService()
    principal = principal_from_event(event)

    if request.stats:
        if request.user_id is None:
            return ResponseBuilder.bad_request("user_id is required for statistics")
        if principal is None or not principal.can_manage(request.user_id):
            return ResponseBuilder.forbidden("Statistics are only available to the owner")
        return ResponseBuilder.ok(service.user_stats(request.user_id).model_dump())

    response = service.list_images(
        owner_id=request.user_id,
        requester=principal,
        start_date=request.start_date,
        end_date=request.end_date,
        offset=request.offset,
        limit=request.limit,
    )

    return ResponseBuilder.ok(response.model_dump())
