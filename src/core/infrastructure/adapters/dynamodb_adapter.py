"""Thin DynamoDB adapter wrapping boto3 table operations."""

import os
from typing import Any, Protocol, cast

import boto3

from core.utils.constants import (
    ENV_AWS_ENDPOINT_URL,
    ENV_AWS_REGION,
    ENV_IMAGE_METADATA_TABLE_NAME,
)


class DynamoDBTable(Protocol):
    """Minimal DynamoDB Table protocol."""

    def put_item(self, *, Item: dict[str, Any], **kwargs: Any) -> dict[str, Any]: ...
    def get_item(self, *, Key: dict[str, Any], **kwargs: Any) -> dict[str, Any]: ...
    def update_item(self, *, Key: dict[str, Any], **kwargs: Any) -> dict[str, Any]: ...
    def delete_item(self, *, Key: dict[str, Any], **kwargs: Any) -> dict[str, Any]: ...
    def query(self, **kwargs: Any) -> dict[str, Any]: ...
    def scan(self, **kwargs: Any) -> dict[str, Any]: ...


class DynamoDBAdapterProtocol(Protocol):
    """Operations the metadata and audit repositories rely on."""

    def put_item(
        self,
        *,
        item: dict[str, Any],
        condition_expression: str | None = None,
    ) -> dict[str, Any]: ...

    def get_item(self, *, key: dict[str, Any], consistent_read: bool = False) -> dict[str, Any]: ...

    def update_item(self, *, key: dict[str, Any], **kwargs: Any) -> dict[str, Any]: ...

    def delete_item(self, *, key: dict[str, Any], return_old: bool = False) -> dict[str, Any]: ...

    def query(self, **kwargs: Any) -> dict[str, Any]: ...

    def scan(self, **kwargs: Any) -> dict[str, Any]: ...


class DynamoDBAdapter:
    """One DynamoDB table behind snake_case keyword arguments.

    Purely mechanical: boto3 exceptions propagate unchanged and the
    repositories built on top translate them into domain errors. Honours
    AWS_ENDPOINT_URL so local runs can point at DynamoDB Local.
    """

    def __init__(self, table_name: str | None = None) -> None:
        """Initialize DynamoDB table, defaulting to the metadata table from environment."""
        table_name = table_name or os.getenv(ENV_IMAGE_METADATA_TABLE_NAME)
        if not table_name:
            raise RuntimeError(
                f"{ENV_IMAGE_METADATA_TABLE_NAME} environment variable is not set"
            )

        dynamodb = boto3.resource(
            "dynamodb",
            endpoint_url=os.getenv(ENV_AWS_ENDPOINT_URL),
            region_name=os.getenv(ENV_AWS_REGION),
        )

        self.table_name = table_name
        self.table: DynamoDBTable = cast(
            DynamoDBTable,
            dynamodb.Table(table_name),
        )

    def put_item(
        self,
        *,
        item: dict[str, Any],
        condition_expression: str | None = None,
    ) -> dict[str, Any]:
        """Put an item, optionally guarded by a condition expression."""
        kwargs: dict[str, Any] = {"Item": item}

        if condition_expression:
            kwargs["ConditionExpression"] = condition_expression

        return self.table.put_item(**kwargs)

    def get_item(self, *, key: dict[str, Any], consistent_read: bool = False) -> dict[str, Any]:
        """Get one item; pass consistent_read for read-after-write."""
        return self.table.get_item(Key=key, ConsistentRead=consistent_read)

    def update_item(self, *, key: dict[str, Any], **kwargs: Any) -> dict[str, Any]:
        """Update item attributes in place (UpdateExpression passthrough)."""
        return self.table.update_item(Key=key, **kwargs)

    def delete_item(self, *, key: dict[str, Any], return_old: bool = False) -> dict[str, Any]:
        """Delete by key; with return_old the removed item comes back in Attributes."""
        if return_old:
            return self.table.delete_item(Key=key, ReturnValues="ALL_OLD")
        return self.table.delete_item(Key=key)

    def query(self, **kwargs: Any) -> dict[str, Any]:
        return self.table.query(**kwargs)

    def scan(self, **kwargs: Any) -> dict[str, Any]:
        """Execute one page of a DynamoDB scan."""
        return self.table.scan(**kwargs)
