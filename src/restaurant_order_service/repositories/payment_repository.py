"""DynamoDB repository for payments."""

from restaurant_order_service.models.payment_models import Payment, PaymentStatus
from restaurant_order_service.repositories.dynamodb_repository import (
    DynamoDBRepository,
    build_filter,
)


class PaymentRepository(DynamoDBRepository):
    """Repository for payment records.

    Payments are keyed by order_id, so a conditional put is enough to keep
    at most one payment per order.
    """

    def get_payment_for_order(self, order_id: str) -> Payment | None:
        """Retrieve the payment of an order.

        Args:
            order_id: Order identifier

        Returns:
            Payment if found, None otherwise
        """
        response = self._call(
            "get_payment_for_order",
            self.table.get_item,
            Key={"order_id": order_id},
            ConsistentRead=True,
        )

        if "Item" not in response:
            return None

        return Payment.from_dynamodb_item(response["Item"])

    def get_payment(self, payment_id: str) -> Payment | None:
        """Retrieve a payment by its own ID.

        Uses a Global Secondary Index on payment_id.

        Args:
            payment_id: Payment identifier

        Returns:
            Payment if found, None otherwise
        """
        items = self._query_all(
            "get_payment",
            IndexName="payment_id-index",
            KeyConditionExpression="payment_id = :pid",
            ExpressionAttributeValues={":pid": payment_id},
        )

        if not items:
            return None

        return Payment.from_dynamodb_item(items[0])

    def create_payment(self, payment: Payment) -> Payment:
        """Persist a new payment.

        Args:
            payment: Payment to create

        Returns:
            Payment: The stored payment

        Raises:
            ConditionalWriteError: If the order already has a payment
        """
        self._call(
            "create_payment",
            self.table.put_item,
            Item=payment.to_dynamodb_item(),
            ConditionExpression="attribute_not_exists(order_id)",
        )
        return payment

    def save_payment(self, payment: Payment) -> Payment:
        """Update an existing payment.

        Args:
            payment: Payment with updated fields

        Returns:
            Payment: The stored payment
        """
        self._call(
            "save_payment",
            self.table.put_item,
            Item=payment.to_dynamodb_item(),
            ConditionExpression="attribute_exists(order_id)",
        )
        return payment

    def list_payments(
        self, restaurant_id: str, status: PaymentStatus | None = None
    ) -> list[Payment]:
        """List payments for a restaurant, newest first.

        Uses a Global Secondary Index on restaurant_id.

        Args:
            restaurant_id: Restaurant identifier
            status: Optional status filter

        Returns:
            list: Payments (empty list if none found)
        """
        expression, names, values = build_filter({"status": status})
        kwargs: dict = {
            "IndexName": "restaurant_id-index",
            "KeyConditionExpression": "restaurant_id = :rid",
            "ExpressionAttributeValues": {":rid": restaurant_id, **values},
        }
        if expression:
            kwargs["FilterExpression"] = expression
            kwargs["ExpressionAttributeNames"] = names

        payments = [
            Payment.from_dynamodb_item(item) for item in self._query_all("list_payments", **kwargs)
        ]
        return sorted(
            payments,
            key=lambda p: p.created_at.isoformat() if p.created_at else "",
            reverse=True,
        )
