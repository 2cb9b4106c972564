"""DynamoDB repositories for orders and order line items."""

import logging

from mypy_boto3_dynamodb.service_resource import DynamoDBServiceResource, Table

from restaurant_order_service.exceptions import StorageError
from restaurant_order_service.models.order_models import (
    Order,
    OrderItem,
    OrderStatus,
    OrderType,
)
from restaurant_order_service.repositories.dynamodb_repository import (
    DynamoDBRepository,
    build_filter,
)

logger = logging.getLogger(__name__)


def order_number_sort_key(order_number: str) -> tuple[int, str]:
    """Sort key ranking order numbers of one prefix by sequence, so 10000 beats 9999."""
    return len(order_number), order_number


class OrderRepository(DynamoDBRepository):
    """Repository for order records.

    Orders live in one table keyed by order_id. A second table keyed by
    (restaurant_id, order_number) holds one claim per issued order number; the
    conditional put on that table is the uniqueness constraint for order
    numbers, and its sort key serves the per-day prefix query behind the
    next sequence number.
    """

    def __init__(
        self,
        dynamodb_resource: DynamoDBServiceResource,
        table_name: str,
        order_numbers_table_name: str,
    ) -> None:
        """Initialize repository.

        Args:
            dynamodb_resource: Boto3 DynamoDB resource
            table_name: Name of the orders table
            order_numbers_table_name: Name of the order number claims table
        """
        super().__init__(dynamodb_resource, table_name)
        self.order_numbers_table_name = order_numbers_table_name
        self.order_numbers_table: Table = dynamodb_resource.Table(order_numbers_table_name)

    def get_order(self, order_id: str) -> Order | None:
        """Retrieve an order by ID.

        Args:
            order_id: Order identifier

        Returns:
            Order if found, None otherwise
        """
        response = self._call(
            "get_order", self.table.get_item, Key={"order_id": order_id}, ConsistentRead=True
        )

        if "Item" not in response:
            return None

        return Order.from_dynamodb_item(response["Item"])

    def find_highest_order_number(self, restaurant_id: str, prefix: str) -> str | None:
        """Find the highest order number issued for a restaurant under a prefix.

        Args:
            restaurant_id: Restaurant identifier
            prefix: Order number prefix, e.g. "ORD-20250115-"

        Returns:
            The highest matching order number, or None if none was issued
        """
        items = self._query_all(
            "find_highest_order_number",
            table=self.order_numbers_table,
            KeyConditionExpression="restaurant_id = :rid AND begins_with(order_number, :prefix)",
            ExpressionAttributeValues={":rid": restaurant_id, ":prefix": prefix},
            ProjectionExpression="order_number",
            ConsistentRead=True,
        )
        if not items:
            return None

        # Sort keys compare as strings, so "-10000" sorts below "-9999".
        return max((item["order_number"] for item in items), key=order_number_sort_key)

    def create_order(self, order: Order) -> Order:
        """Persist a new order, claiming its order number first.

        Args:
            order: Order to create

        Returns:
            Order: The stored order

        Raises:
            ConditionalWriteError: If the order number is already taken
            StorageError: On any other DynamoDB failure
        """
        self._call(
            "claim_order_number",
            self.order_numbers_table.put_item,
            Item={
                "restaurant_id": order.restaurant_id,
                "order_number": order.order_number,
                "order_id": order.order_id,
            },
            ConditionExpression="attribute_not_exists(order_number)",
        )

        try:
            self._call(
                "create_order",
                self.table.put_item,
                Item=order.to_dynamodb_item(),
                ConditionExpression="attribute_not_exists(order_id)",
            )
        except StorageError:
            logger.error(
                f"Releasing order number {order.order_number} after failed order write"
            )
            self._call(
                "release_order_number",
                self.order_numbers_table.delete_item,
                Key={"restaurant_id": order.restaurant_id, "order_number": order.order_number},
            )
            raise

        return order

    def save_order(self, order: Order) -> Order:
        """Update an existing order.

        Args:
            order: Order with updated fields

        Returns:
            Order: The stored order

        Raises:
            ConditionalWriteError: If the order no longer exists
        """
        self._call(
            "save_order",
            self.table.put_item,
            Item=order.to_dynamodb_item(),
            ConditionExpression="attribute_exists(order_id)",
        )
        return order

    def delete_order(self, order_id: str) -> None:
        """Delete an order record.

        The order number claim is kept so numbers are never reissued.

        Args:
            order_id: Order identifier
        """
        self._call("delete_order", self.table.delete_item, Key={"order_id": order_id})

    def list_orders(
        self,
        restaurant_id: str,
        status: OrderStatus | None = None,
        order_type: OrderType | None = None,
        table_id: str | None = None,
        waiter_id: str | None = None,
    ) -> list[Order]:
        """List orders for a restaurant, newest first.

        Uses a Global Secondary Index on restaurant_id.

        Args:
            restaurant_id: Restaurant identifier
            status: Optional status filter
            order_type: Optional order type filter
            table_id: Optional table filter
            waiter_id: Optional waiter filter

        Returns:
            list: Matching orders (empty list if none found)
        """
        expression, names, values = build_filter(
            {
                "status": status,
                "order_type": order_type,
                "table_id": table_id,
                "waiter_id": waiter_id,
            }
        )
        kwargs: dict = {
            "IndexName": "restaurant_id-index",
            "KeyConditionExpression": "restaurant_id = :rid",
            "ExpressionAttributeValues": {":rid": restaurant_id, **values},
        }
        if expression:
            kwargs["FilterExpression"] = expression
            kwargs["ExpressionAttributeNames"] = names

        orders = [Order.from_dynamodb_item(item) for item in self._query_all("list_orders", **kwargs)]
        return sorted(orders, key=_created_sort_key, reverse=True)

    def list_orders_for_table(self, table_id: str) -> list[Order]:
        """List every order referencing a table.

        Uses a Global Secondary Index on table_id.

        Args:
            table_id: Table identifier

        Returns:
            list: Orders on the table (empty list if none found)
        """
        items = self._query_all(
            "list_orders_for_table",
            IndexName="table_id-index",
            KeyConditionExpression="table_id = :tid",
            ExpressionAttributeValues={":tid": table_id},
        )
        return [Order.from_dynamodb_item(item) for item in items]


class OrderItemRepository(DynamoDBRepository):
    """Repository for order line items.

    Line items are stored with composite key (order_id, item_id) so all lines
    of an order are read with one strongly consistent query.
    """

    def list_items(self, order_id: str) -> list[OrderItem]:
        """List the line items of an order in creation order.

        Args:
            order_id: Order identifier

        Returns:
            list: Line items (empty list if none found)
        """
        items = self._query_all(
            "list_items",
            KeyConditionExpression="order_id = :oid",
            ExpressionAttributeValues={":oid": order_id},
            ConsistentRead=True,
        )
        return sorted(
            (OrderItem.from_dynamodb_item(item) for item in items), key=_created_sort_key
        )

    def get_item(self, order_id: str, item_id: str) -> OrderItem | None:
        """Retrieve one line item.

        Args:
            order_id: Owning order identifier
            item_id: Line item identifier

        Returns:
            OrderItem if found, None otherwise
        """
        response = self._call(
            "get_item",
            self.table.get_item,
            Key={"order_id": order_id, "item_id": item_id},
            ConsistentRead=True,
        )

        if "Item" not in response:
            return None

        return OrderItem.from_dynamodb_item(response["Item"])

    def save_item(self, item: OrderItem) -> OrderItem:
        """Create or update a line item.

        Args:
            item: Line item to save

        Returns:
            OrderItem: The stored line item
        """
        self._call("save_item", self.table.put_item, Item=item.to_dynamodb_item())
        return item

    def delete_item(self, order_id: str, item_id: str) -> None:
        """Delete one line item.

        Args:
            order_id: Owning order identifier
            item_id: Line item identifier
        """
        self._call(
            "delete_item", self.table.delete_item, Key={"order_id": order_id, "item_id": item_id}
        )

    def count_items(self, order_id: str) -> int:
        """Count the line items of an order.

        Args:
            order_id: Order identifier

        Returns:
            int: Number of line items
        """
        count = 0
        kwargs: dict = {
            "KeyConditionExpression": "order_id = :oid",
            "ExpressionAttributeValues": {":oid": order_id},
            "Select": "COUNT",
            "ConsistentRead": True,
        }
        while True:
            response = self._call("count_items", self.table.query, **kwargs)
            count += int(response.get("Count", 0))
            last_key = response.get("LastEvaluatedKey")
            if not last_key:
                return count
            kwargs["ExclusiveStartKey"] = last_key

    def delete_items_for_order(self, order_id: str) -> int:
        """Delete every line item of an order.

        Args:
            order_id: Order identifier

        Returns:
            int: Number of deleted line items
        """
        items = self.list_items(order_id)
        for item in items:
            self.delete_item(order_id, item.item_id)
        return len(items)


def _created_sort_key(record: Order | OrderItem) -> str:
    return record.created_at.isoformat() if record.created_at else ""
