"""DynamoDB repository for dining tables."""

from collections.abc import Iterable

from restaurant_order_service.models.table_models import DiningTable, TableStatus
from restaurant_order_service.repositories.dynamodb_repository import DynamoDBRepository


class TableRepository(DynamoDBRepository):
    """Repository for dining table records.

    Manages tables in DynamoDB with table_id as partition key. Status writes
    are conditional updates so the precondition is evaluated against the
    status stored at write time.
    """

    def get_table(self, table_id: str) -> DiningTable | None:
        """Retrieve a table by ID.

        Args:
            table_id: Table identifier

        Returns:
            DiningTable if found, None otherwise
        """
        response = self._call(
            "get_table", self.table.get_item, Key={"table_id": table_id}, ConsistentRead=True
        )

        if "Item" not in response:
            return None

        return DiningTable.from_dynamodb_item(response["Item"])

    def create_table(self, table: DiningTable) -> DiningTable:
        """Persist a new table.

        Args:
            table: Table to create

        Returns:
            DiningTable: The stored table

        Raises:
            ConditionalWriteError: If a table with this ID already exists
        """
        self._call(
            "create_table",
            self.table.put_item,
            Item=table.to_dynamodb_item(),
            ConditionExpression="attribute_not_exists(table_id)",
        )
        return table

    def save_table(self, table: DiningTable) -> DiningTable:
        """Update an existing table.

        Args:
            table: Table with updated fields

        Returns:
            DiningTable: The stored table
        """
        self._call(
            "save_table",
            self.table.put_item,
            Item=table.to_dynamodb_item(),
            ConditionExpression="attribute_exists(table_id)",
        )
        return table

    def update_status(
        self,
        table_id: str,
        status: TableStatus,
        expected_statuses: Iterable[TableStatus] | None = None,
    ) -> DiningTable:
        """Set a table's status, optionally only from given current statuses.

        Args:
            table_id: Table identifier
            status: New status
            expected_statuses: Statuses the stored table must be in for the write to apply

        Returns:
            DiningTable: The table as stored after the update

        Raises:
            ConditionalWriteError: If the table is missing or not in an expected status
        """
        condition = "attribute_exists(table_id)"
        values: dict = {":status": status.value}

        if expected_statuses:
            placeholders = []
            for index, expected in enumerate(expected_statuses):
                placeholder = f":expected{index}"
                values[placeholder] = expected.value
                placeholders.append(placeholder)
            condition += f" AND #status IN ({', '.join(placeholders)})"

        response = self._call(
            "update_table_status",
            self.table.update_item,
            Key={"table_id": table_id},
            UpdateExpression="SET #status = :status",
            ConditionExpression=condition,
            ExpressionAttributeNames={"#status": "status"},
            ExpressionAttributeValues=values,
            ReturnValues="ALL_NEW",
        )
        return DiningTable.from_dynamodb_item(response["Attributes"])

    def list_tables(self, restaurant_id: str, include_inactive: bool = False) -> list[DiningTable]:
        """List tables for a restaurant ordered by table number.

        Uses a Global Secondary Index on restaurant_id.

        Args:
            restaurant_id: Restaurant identifier
            include_inactive: Whether to include soft-deactivated tables

        Returns:
            list: Tables (empty list if none found)
        """
        items = self._query_all(
            "list_tables",
            IndexName="restaurant_id-index",
            KeyConditionExpression="restaurant_id = :rid",
            ExpressionAttributeValues={":rid": restaurant_id},
        )
        tables = [DiningTable.from_dynamodb_item(item) for item in items]
        if not include_inactive:
            tables = [t for t in tables if t.is_active]
        return sorted(tables, key=lambda t: t.table_number)

    def delete_table(self, table_id: str) -> None:
        """Delete a table record.

        Args:
            table_id: Table identifier
        """
        self._call("delete_table", self.table.delete_item, Key={"table_id": table_id})
