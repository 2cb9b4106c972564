"""Shared plumbing for DynamoDB-backed repositories.

Expected misses (item not found) are reported as ``None``; every other
DynamoDB failure, service-side or transport, is translated into a
``StorageError`` so the services can tell a rejected conditional write from
an outage.
"""

import logging
from collections.abc import Callable
from typing import Any

from botocore.exceptions import BotoCoreError, ClientError
from mypy_boto3_dynamodb.service_resource import DynamoDBServiceResource, Table

from restaurant_order_service.exceptions import ConditionalWriteError, StorageError

logger = logging.getLogger(__name__)

CONDITIONAL_CHECK_FAILED = "ConditionalCheckFailedException"


def translate_client_error(error: ClientError, operation: str) -> StorageError:
    """Convert a botocore ClientError into a storage error.

    Args:
        error: The error raised by boto3
        operation: Name of the repository operation, for context

    Returns:
        StorageError: ConditionalWriteError for rejected conditions, StorageError otherwise
    """
    code = error.response.get("Error", {}).get("Code", "")
    if code == CONDITIONAL_CHECK_FAILED:
        return ConditionalWriteError(operation, code)
    logger.error(f"DynamoDB {operation} failed: {error}")
    return StorageError(operation, code or str(error))


class DynamoDBRepository:
    """Base class holding the DynamoDB table handle."""

    def __init__(self, dynamodb_resource: DynamoDBServiceResource, table_name: str) -> None:
        """Initialize repository.

        Args:
            dynamodb_resource: Boto3 DynamoDB resource
            table_name: Name of the DynamoDB table
        """
        self.dynamodb = dynamodb_resource
        self.table_name = table_name
        self.table: Table = dynamodb_resource.Table(table_name)

    def _call(self, operation: str, func: Callable[..., Any], **kwargs: Any) -> Any:
        try:
            return func(**kwargs)
        except ClientError as e:
            raise translate_client_error(e, operation) from e
        except BotoCoreError as e:
            logger.error(f"DynamoDB {operation} failed: {e}")
            raise StorageError(operation, type(e).__name__) from e

    def _query_all(self, operation: str, table: Table | None = None, **kwargs: Any) -> list[dict]:
        """Run a query and follow pagination.

        Args:
            operation: Name of the repository operation, for context
            table: Table to query (defaults to this repository's table)
            **kwargs: Arguments passed to Table.query

        Returns:
            list: All items across pages
        """
        target = table if table is not None else self.table
        items: list[dict] = []
        while True:
            response = self._call(operation, target.query, **kwargs)
            items.extend(response.get("Items", []))
            last_key = response.get("LastEvaluatedKey")
            if not last_key:
                return items
            kwargs["ExclusiveStartKey"] = last_key


def build_filter(
    filters: dict[str, Any],
) -> tuple[str | None, dict[str, str], dict[str, Any]]:
    """Build a FilterExpression from equality filters, skipping None values.

    Args:
        filters: Attribute name to required value

    Returns:
        tuple: (expression or None, attribute names, attribute values)
    """
    clauses = []
    names: dict[str, str] = {}
    values: dict[str, Any] = {}
    for attribute, value in filters.items():
        if value is None:
            continue
        names[f"#{attribute}"] = attribute
        values[f":{attribute}"] = value.value if hasattr(value, "value") else value
        clauses.append(f"#{attribute} = :{attribute}")
    return (" AND ".join(clauses) or None, names, values)
