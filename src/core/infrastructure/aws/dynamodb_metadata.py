"""DynamoDB-backed implementation of ImageMetadataRepository."""

from collections.abc import Iterator
from contextlib import contextmanager
from decimal import Decimal
from typing import Any

from aws_lambda_powertools import Logger
from boto3.dynamodb.conditions import Key
from botocore.exceptions import ClientError

from core.infrastructure.adapters.dynamodb_adapter import DynamoDBAdapter, DynamoDBAdapterProtocol
from core.models.errors import (
    DuplicateImageError,
    DynamoDBError,
    FilterError,
    ImageServiceError,
    NotFoundError,
)
from core.repositories.metadata_repository import ImageMetadataRepository
from core.utils.constants import (
    COUNTER_DOWNLOAD,
    COUNTER_VIEW,
    ERROR_CODE_COUNTER_UPDATE_FAILED,
    ERROR_CODE_METADATA_CREATE_FAILED,
    ERROR_CODE_METADATA_DELETE_FAILED,
    ERROR_CODE_METADATA_FETCH_FAILED,
    ERROR_CODE_METADATA_LIST_FAILED,
    ERROR_CODE_METADATA_SCAN_FAILED,
    ERROR_CODE_METADATA_UPDATE_FAILED,
    MAX_LIMIT,
)

Metadata = dict[str, Any]

logger = Logger(UTC=True)

USER_CREATED_INDEX = "user-created-index"
COUNTER_FIELDS = frozenset({COUNTER_VIEW, COUNTER_DOWNLOAD})
MUTABLE_FIELDS = frozenset({"is_public", "tags", "updated_at"})
CONDITIONAL_CHECK_FAILED = "ConditionalCheckFailedException"
RECORD_EXISTS = "attribute_exists(image_id)"


def _from_dynamodb(value: Any) -> Any:
    """Convert boto3 Decimals back to plain ints/floats, recursively."""
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    if isinstance(value, dict):
        return {k: _from_dynamodb(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_from_dynamodb(v) for v in value]
    return value


@contextmanager
def _dynamodb_errors(
    operation: str,
    *,
    message: str,
    error_code: str,
    details: dict[str, Any],
    on_condition_failed: type[ImageServiceError] | None = None,
    condition_message: str = "Image not found",
) -> Iterator[None]:
    """Translate boto3 failures inside the block into domain errors.

    A failed condition expression becomes ``on_condition_failed`` when one is
    given; every other failure becomes a DynamoDBError carrying
    ``error_code``. Domain errors raised inside the block pass through.
    """
    try:
        yield
    except ImageServiceError:
        raise
    except ClientError as exc:
        code = exc.response.get("Error", {}).get("Code")
        if on_condition_failed is not None and code == CONDITIONAL_CHECK_FAILED:
            raise on_condition_failed(message=condition_message, details=details) from exc

        logger.error(
            f"DynamoDB {operation} failed",
            extra={**details, "aws_error_code": code},
        )
        raise DynamoDBError(message=message, error_code=error_code, details=details) from exc
    except Exception as exc:
        logger.exception(f"Unexpected error during DynamoDB {operation}", extra=details)
        raise DynamoDBError(message=message, error_code=error_code, details=details) from exc


def _require_text(metadata: Metadata, field: str) -> str:
    value = metadata.get(field)
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"metadata must contain non-empty '{field}' (string)")
    return value


class DynamoDBMetadata(ImageMetadataRepository):
    """Metadata table keyed by ``image_id`` with a ``user-created-index`` GSI.

    Reads are strongly consistent. Counters use ADD expressions and every
    write to an existing record is guarded by ``attribute_exists`` so a late
    write never recreates a deleted image.
    """

    def __init__(self, adapter: DynamoDBAdapterProtocol | None = None) -> None:
        self._db: DynamoDBAdapterProtocol = adapter or DynamoDBAdapter()

    def create_metadata(self, *, metadata: Metadata) -> None:
        image_id = _require_text(metadata, "image_id")
        user_id = _require_text(metadata, "user_id")
        _require_text(metadata, "storage_path")

        with _dynamodb_errors(
            "put_item",
            message="Unable to save image metadata at this time",
            error_code=ERROR_CODE_METADATA_CREATE_FAILED,
            details={"image_id": image_id},
            on_condition_failed=DuplicateImageError,
            condition_message="Image identifier already in use",
        ):
            self._db.put_item(
                item=metadata,
                condition_expression="attribute_not_exists(image_id)",
            )

        logger.info("Metadata created", extra={"image_id": image_id, "user_id": user_id})

    def image_exists(self, *, image_id: str) -> bool:
        return self.fetch_metadata(image_id=image_id) is not None

    def fetch_metadata(self, *, image_id: str) -> Metadata | None:
        logger.debug("Fetching metadata", extra={"image_id": image_id})

        with _dynamodb_errors(
            "get_item",
            message="Unable to retrieve image metadata",
            error_code=ERROR_CODE_METADATA_FETCH_FAILED,
            details={"image_id": image_id},
        ):
            item = self._db.get_item(key={"image_id": image_id}, consistent_read=True).get("Item")

        if item is None:
            return None

        if not isinstance(item, dict):
            raise DynamoDBError(
                message="Invalid image metadata format",
                error_code=ERROR_CODE_METADATA_FETCH_FAILED,
                details={"image_id": image_id},
            )

        return _from_dynamodb(item)

    def update_metadata(self, *, image_id: str, changes: Metadata) -> Metadata:
        illegal = set(changes) - MUTABLE_FIELDS
        if illegal:
            raise ValueError(f"Fields cannot be updated: {', '.join(sorted(illegal))}")

        if not changes:
            raise ValueError("No changes supplied")

        fields = list(changes)
        with _dynamodb_errors(
            "update_item",
            message="Unable to update image metadata",
            error_code=ERROR_CODE_METADATA_UPDATE_FAILED,
            details={"image_id": image_id},
            on_condition_failed=NotFoundError,
        ):
            response = self._db.update_item(
                key={"image_id": image_id},
                UpdateExpression="SET " + ", ".join(f"#f{i} = :v{i}" for i in range(len(fields))),
                ConditionExpression=RECORD_EXISTS,
                ExpressionAttributeNames={f"#f{i}": field for i, field in enumerate(fields)},
                ExpressionAttributeValues={f":v{i}": changes[field] for i, field in enumerate(fields)},
                ReturnValues="ALL_NEW",
            )

        logger.info("Metadata updated", extra={"image_id": image_id, "fields": sorted(fields)})
        return _from_dynamodb(response.get("Attributes", {}))

    def remove_metadata(self, *, image_id: str) -> Metadata | None:
        with _dynamodb_errors(
            "delete_item",
            message="Unable to delete image metadata",
            error_code=ERROR_CODE_METADATA_DELETE_FAILED,
            details={"image_id": image_id},
        ):
            removed = self._db.delete_item(key={"image_id": image_id}, return_old=True).get("Attributes")

        logger.info(
            "Metadata removed",
            extra={"image_id": image_id, "existed": removed is not None},
        )
        return _from_dynamodb(removed) if removed else None

    def increment_counter(self, *, image_id: str, field: str, amount: int = 1) -> int:
        if field not in COUNTER_FIELDS:
            raise ValueError(f"'{field}' is not a usage counter")

        with _dynamodb_errors(
            "counter update",
            message="Unable to update usage counter",
            error_code=ERROR_CODE_COUNTER_UPDATE_FAILED,
            details={"image_id": image_id, "field": field},
            on_condition_failed=NotFoundError,
        ):
            response = self._db.update_item(
                key={"image_id": image_id},
                UpdateExpression="ADD #counter :amount",
                ConditionExpression=RECORD_EXISTS,
                ExpressionAttributeNames={"#counter": field},
                ExpressionAttributeValues={":amount": amount},
                ReturnValues="UPDATED_NEW",
            )

        value = int(_from_dynamodb(response.get("Attributes", {}).get(field, 0)))
        logger.debug(
            "Counter incremented",
            extra={"image_id": image_id, "field": field, "value": value},
        )
        return value

    def list_user_images(
        self,
        *,
        user_id: str,
        limit: int | None = None,
        start_date: str | None = None,
        end_date: str | None = None,
    ) -> list[Metadata]:
        """Query the ``user-created-index`` newest first.

        ``created_at`` is ISO-8601 UTC, so the date range is a plain string
        range on the sort key. The query follows ``LastEvaluatedKey`` until
        ``limit`` records are collected or the partition is exhausted.
        """
        if limit is not None and not 1 <= limit <= MAX_LIMIT:
            raise FilterError(
                message=f"Limit must be between 1 and {MAX_LIMIT}",
                details={"limit": limit},
            )

        if start_date and end_date and start_date > end_date:
            raise FilterError(
                message="Start date must be before end date",
                details={"start_date": start_date, "end_date": end_date},
            )

        key_condition = Key("user_id").eq(user_id)
        if start_date and end_date:
            key_condition &= Key("created_at").between(start_date, end_date)
        elif start_date:
            key_condition &= Key("created_at").gte(start_date)
        elif end_date:
            key_condition &= Key("created_at").lte(end_date)

        query_kwargs: dict[str, Any] = {
            "IndexName": USER_CREATED_INDEX,
            "KeyConditionExpression": key_condition,
            "ScanIndexForward": False,
        }
        if limit is not None:
            query_kwargs["Limit"] = limit

        items: list[Metadata] = []
        with _dynamodb_errors(
            "query",
            message="Unable to list images for this user",
            error_code=ERROR_CODE_METADATA_LIST_FAILED,
            details={"user_id": user_id},
        ):
            while limit is None or len(items) < limit:
                response = self._db.query(**query_kwargs)
                items.extend(_from_dynamodb(item) for item in response.get("Items", []))

                if not response.get("LastEvaluatedKey"):
                    break
                query_kwargs["ExclusiveStartKey"] = response["LastEvaluatedKey"]

        if limit is not None:
            items = items[:limit]

        logger.debug("User images listed", extra={"user_id": user_id, "count": len(items)})
        return items

    def scan_metadata(self) -> Iterator[Metadata]:
        """Iterate over every record page by page; used by the orphan sweep."""
        scan_kwargs: dict[str, Any] = {}

        while True:
            with _dynamodb_errors(
                "scan",
                message="Unable to scan image metadata",
                error_code=ERROR_CODE_METADATA_SCAN_FAILED,
                details={},
            ):
                response = self._db.scan(**scan_kwargs)

            for item in response.get("Items", []):
                yield _from_dynamodb(item)

            if not response.get("LastEvaluatedKey"):
                return
            scan_kwargs["ExclusiveStartKey"] = response["LastEvaluatedKey"]
