"""Request validation and principal extraction utilities."""

from typing import Any, TypeVar

from aws_lambda_powertools import Logger
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from core.models.errors import ForbiddenError
from core.models.principal import Principal
from core.utils.constants import MAX_TAGS, ROLE_USER, TAG_MAX_LENGTH
from core.utils.response import ResponseBuilder

ModelT = TypeVar("ModelT", bound=BaseModel)

logger = Logger(UTC=True)


def sanitize_validation_errors(errors: list[dict[str, Any]]) -> list[dict[str, str]]:
    """Sanitize Pydantic validation errors for API responses.

    Removes sensitive/internal fields like:
    - url
    - ctx
    - input
    - internal exception details
    """
    sanitized: list[dict[str, str]] = []

    for err in errors:
        field = ".".join(str(x) for x in err.get("loc", [])) or "body"
        raw_msg = err.get("msg", "Invalid value")

        # Remove noisy prefixes
        msg = raw_msg.replace("Value error,", "").strip()

        # Friendly rewrites for common cases
        msg_lower = msg.lower()
        if "base64" in msg_lower:
            msg = "File must be a valid Base64-encoded string"
        elif "field required" in msg_lower:
            msg = "This field is required"
        elif msg_lower.startswith("input should be a valid"):
            msg = "Invalid value type"

        sanitized.append(
            {
                "field": field,
                "message": msg,
            }
        )

    return sanitized


def normalize_tags(value: Any) -> list[str] | None:
    """
    Normalize and validate tags.

    Accepts:
    - comma-separated string
    - list of strings

    Returns:
    - de-duplicated list[str] in first-seen order, or None

    Raises:
        ValueError: If the shape is wrong or limits are exceeded
    """
    if value is None:
        return None

    if isinstance(value, str):
        raw_tags = [t.strip() for t in value.split(",")]
    elif isinstance(value, list):
        raw_tags = [str(t).strip() for t in value]
    else:
        raise ValueError("Tags must be a string or list of strings")

    tags: list[str] = list(dict.fromkeys(t for t in raw_tags if t))

    if len(tags) > MAX_TAGS:
        raise ValueError(f"Maximum {MAX_TAGS} tags allowed")

    too_long = [t for t in tags if len(t) > TAG_MAX_LENGTH]
    if too_long:
        raise ValueError(f"Tags must be at most {TAG_MAX_LENGTH} characters")

    return tags


def validate_request(model: type[ModelT], data: dict[str, Any]) -> ModelT:
    """Validate request data against a Pydantic model.

    Args:
        model: Pydantic model class
        data: Input data to validate

    Returns:
        The validated model instance

    Raises:
        pydantic.ValidationError: If the payload does not match the model
    """
    return model.model_validate(data)


def principal_from_event(event: dict[str, Any]) -> Principal | None:
    """Read the caller identity placed on the event by the API Gateway authorizer.

    Accepts ``user_id`` or ``principalId`` for the identifier and an optional
    ``role``. Returns None only when the request carries no identity.

    Raises:
        ForbiddenError: If an identity is present but not a valid user id
    """
    authorizer = (event.get("requestContext") or {}).get("authorizer") or {}
    if not isinstance(authorizer, dict):
        return None

    # HTTP API lambda authorizers nest the context one level down
    context = authorizer.get("lambda") if isinstance(authorizer.get("lambda"), dict) else authorizer

    user_id = context.get("user_id") or context.get("principalId")
    if not user_id:
        return None

    try:
        return Principal(user_id=str(user_id), role=str(context.get("role") or ROLE_USER))
    except PydanticValidationError as exc:
        logger.warning("Rejected malformed authorizer identity", extra={"has_user_id": True})
        raise ForbiddenError(message="Invalid caller identity") from exc


def invalid_request_response(
    exc: PydanticValidationError,
    message: str = "Invalid request params",
) -> dict[str, Any]:
    """Log and answer a request whose parameters failed model validation."""
    errors = sanitize_validation_errors(exc.errors())
    logger.warning("Request validation failed", extra={"errors": errors})
    return ResponseBuilder.bad_request(message, details={"errors": errors})


def query_flag(value: str | None) -> bool:
    """Interpret a boolean query parameter (``1``/``true``/``yes``/``on``)."""
    return (value or "").strip().lower() in {"1", "true", "yes", "on"}
