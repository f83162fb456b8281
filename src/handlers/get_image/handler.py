"""
Lambda handler responsible for image retrieval and download.
"""

from typing import Any

from aws_lambda_powertools import Logger, Metrics, Tracer
from aws_lambda_powertools.metrics import MetricUnit
from aws_lambda_powertools.utilities.typing import LambdaContext
from pydantic import ValidationError

from core.utils.decorators import api_gateway_handler, request_summary
from core.utils.response import ResponseBuilder
from core.utils.validators import invalid_request_response, query_flag, validate_request

from .models import GetImageRequest
from .service import GetService

logger = Logger(UTC=True)
tracer = Tracer()
metrics = Metrics()


@api_gateway_handler
@tracer.capture_lambda_handler
@metrics.log_metrics()
def handler(event: dict[str, Any], context: LambdaContext) -> dict[str, Any]:
    """
    Handle image view or download requests.

    Query parameters:
        - w / h: optional target box in pixels (fit inside, never enlarge)
        - q: optional JPEG/WebP quality (1-100)
        - download=1|true: attachment with the original file name
        - info=1|true: public metadata as JSON instead of bytes
        - raw=1|true: original bytes, no transform, no usage recorded

    Args:
        event: API Gateway event payload.
        context: AWS Lambda runtime context.

    Returns:
        API Gateway-compatible response dictionary; image bytes are base64
        encoded with ``isBase64Encoded`` set.
    """
    logger.info(
        "Received image view/download request",
        extra={**request_summary(event, context), "query_params": event.get("queryStringParameters")},
    )

    path_params = event.get("pathParameters") or {}
    query_params = event.get("queryStringParameters") or {}

    params = {
        "image_id": path_params.get("image_id"),
        "width": query_params.get("w") or None,
        "height": query_params.get("h") or None,
        "quality": query_params.get("q") or None,
        "download": query_flag(query_params.get("download")),
        "info": query_flag(query_params.get("info")),
        "raw": query_flag(query_params.get("raw")),
    }

    try:
        request = validate_request(GetImageRequest, params)
    except ValidationError as exc:
        return invalid_request_response(exc, "Invalid request params")

    service = GetService()

    if request.info:
        return ResponseBuilder.ok(service.get_image_info(request.image_id).model_dump())

    if request.raw:
        result = service.deliver_raw(request.image_id)
        return ResponseBuilder.binary_response(
            result.content,
            content_type=result.content_type,
            headers=result.headers,
        )

    result = service.deliver(
        request.image_id,
        width=request.width,
        height=request.height,
        quality=request.quality,
        mode=request.mode,
    )

    metrics.add_metric(
        name="ImagesDownloaded" if request.download else "ImagesViewed",
        unit=MetricUnit.Count,
        value=1,
    )
    if result.transformed:
        metrics.add_metric(name="ImagesTransformed", unit=MetricUnit.Count, value=1)

    return ResponseBuilder.binary_response(
        result.content,
        content_type=result.content_type,
        headers=result.headers,
    )
