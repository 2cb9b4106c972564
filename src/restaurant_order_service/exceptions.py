"""Typed errors raised by the order fulfillment core.

Every error carries a machine-readable ``code``, the HTTP status the API layer
answers with, and a ``details`` dict holding enough context to reconstruct the
decision that produced it.
"""

from collections.abc import Iterable
from decimal import Decimal
from typing import Any


class OrderServiceError(Exception):
    """Base class for all order service errors."""

    code = "order_service_error"
    status_code = 400

    def __init__(self, message: str, **details: Any) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        """Serialize the error for API responses.

        Returns:
            dict: JSON-compatible error body
        """
        return {
            "error": self.code,
            "message": self.message,
            "details": {key: _jsonable(value) for key, value in self.details.items()},
        }


def _jsonable(value: Any) -> Any:
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_jsonable(v) for v in value]
    if hasattr(value, "value"):
        return value.value
    return value


class MissingFieldError(OrderServiceError):
    code = "missing_field"
    status_code = 400

    def __init__(self, field: str) -> None:
        super().__init__(f"{field} is required", field=field)


class InvalidOrderTypeError(OrderServiceError):
    code = "invalid_order_type"
    status_code = 400

    def __init__(self, order_type: Any, table_id: str | None, reason: str) -> None:
        super().__init__(reason, order_type=order_type, table_id=table_id)


class TableUnavailableError(OrderServiceError):
    code = "table_unavailable"
    status_code = 409

    def __init__(self, table_id: str, table_number: str, status: Any, is_active: bool) -> None:
        if not is_active:
            message = f"Table {table_number} is not active"
        else:
            message = (
                f"Table {table_number} is currently {_jsonable(status)}. "
                "Please select an available table for dine-in orders."
            )
        super().__init__(
            message,
            table_id=table_id,
            table_number=table_number,
            status=status,
            is_active=is_active,
        )


class ItemUnavailableError(OrderServiceError):
    code = "item_unavailable"
    status_code = 409

    def __init__(self, menu_item_id: str, name: str) -> None:
        super().__init__(
            f'Menu item "{name}" is not available', menu_item_id=menu_item_id, name=name
        )


class OrderClosedError(OrderServiceError):
    code = "order_closed"
    status_code = 409

    def __init__(self, order_id: str, status: Any, action: str) -> None:
        super().__init__(
            f"Cannot {action} order {order_id} in status {_jsonable(status)}",
            order_id=order_id,
            status=status,
            action=action,
        )


class InvalidTransitionError(OrderServiceError):
    code = "invalid_transition"
    status_code = 409

    def __init__(self, order_id: str, current: Any, requested: Any, allowed: Iterable[Any]) -> None:
        allowed_values = sorted(_jsonable(list(allowed)))
        super().__init__(
            f"Cannot transition order {order_id} from {_jsonable(current)} to "
            f"{_jsonable(requested)}. Valid transitions: {', '.join(allowed_values) or 'none'}",
            order_id=order_id,
            current=current,
            requested=requested,
            allowed=allowed_values,
        )


class LastItemProtectedError(OrderServiceError):
    code = "last_item_protected"
    status_code = 409

    def __init__(self, order_id: str, item_id: str) -> None:
        super().__init__(
            f"Cannot remove item {item_id}: it is the last item of order {order_id}",
            order_id=order_id,
            item_id=item_id,
        )


class AmountMismatchError(OrderServiceError):
    code = "amount_mismatch"
    status_code = 400

    def __init__(self, order_id: str, amount: Decimal, order_total: Decimal) -> None:
        super().__init__(
            f"Payment amount ({amount}) must match order total ({order_total})",
            order_id=order_id,
            amount=amount,
            order_total=order_total,
        )


class PaymentExistsError(OrderServiceError):
    code = "payment_exists"
    status_code = 409

    def __init__(self, order_id: str, payment_id: str | None) -> None:
        super().__init__(
            f"Payment already exists for order {order_id}",
            order_id=order_id,
            payment_id=payment_id,
        )


class InvalidPaymentStateError(OrderServiceError):
    code = "invalid_payment_state"
    status_code = 409

    def __init__(self, payment_id: str, status: Any, action: str) -> None:
        super().__init__(
            f"Cannot {action} payment {payment_id} in status {_jsonable(status)}",
            payment_id=payment_id,
            status=status,
            action=action,
        )


class OrderNumberExhaustedError(OrderServiceError):
    code = "order_number_exhausted"
    status_code = 503

    def __init__(self, restaurant_id: str, attempts: int) -> None:
        super().__init__(
            "Failed to generate unique order number after multiple attempts. Please try again.",
            restaurant_id=restaurant_id,
            attempts=attempts,
        )


class NotFoundError(OrderServiceError):
    code = "not_found"
    status_code = 404

    def __init__(self, entity: str, entity_id: str) -> None:
        super().__init__(f"{entity} {entity_id} not found", entity=entity, id=entity_id)


class RecalculationFailedError(OrderServiceError):
    code = "recalculation_failed"
    status_code = 500

    def __init__(self, order_id: str) -> None:
        super().__init__(
            f"Line item was saved but totals of order {order_id} could not be recalculated",
            order_id=order_id,
        )


class InvalidDiscountError(OrderServiceError):
    code = "invalid_discount"
    status_code = 400

    def __init__(self, order_id: str, discount: Decimal, subtotal: Decimal) -> None:
        super().__init__(
            f"Discount ({discount}) must be between 0 and the order subtotal ({subtotal})",
            order_id=order_id,
            discount=discount,
            subtotal=subtotal,
        )


class TableStateError(OrderServiceError):
    code = "table_state"
    status_code = 409

    def __init__(self, table_id: str, status: Any, reason: str) -> None:
        super().__init__(reason, table_id=table_id, status=status)


class TableNumberTakenError(OrderServiceError):
    code = "table_number_taken"
    status_code = 409

    def __init__(self, restaurant_id: str, table_number: str) -> None:
        super().__init__(
            f"Table number {table_number} already exists in this restaurant",
            restaurant_id=restaurant_id,
            table_number=table_number,
        )


class StorageError(OrderServiceError):
    """Raised when a DynamoDB call fails unexpectedly."""

    code = "storage_error"
    status_code = 503

    def __init__(self, operation: str, reason: str) -> None:
        super().__init__(f"Storage operation {operation} failed: {reason}", operation=operation)


class ConditionalWriteError(StorageError):
    """Raised when a conditional DynamoDB write is rejected."""

    code = "conditional_write_failed"
    status_code = 409
