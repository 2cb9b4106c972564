"""Order lifecycle transitions."""

from restaurant_order_service.exceptions import InvalidTransitionError, OrderClosedError
from restaurant_order_service.models.order_models import Order, OrderStatus

TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.CONFIRMED, OrderStatus.CANCELLED}),
    OrderStatus.CONFIRMED: frozenset({OrderStatus.IN_PROGRESS, OrderStatus.CANCELLED}),
    OrderStatus.IN_PROGRESS: frozenset({OrderStatus.COMPLETED, OrderStatus.CANCELLED}),
    OrderStatus.COMPLETED: frozenset(
        {OrderStatus.SERVED, OrderStatus.PAID, OrderStatus.CANCELLED}
    ),
    OrderStatus.SERVED: frozenset({OrderStatus.PAID, OrderStatus.CANCELLED}),
    OrderStatus.PAID: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}

# Entering one of these frees the order's table.
TABLE_RELEASING_STATUSES = frozenset(
    {OrderStatus.COMPLETED, OrderStatus.CANCELLED, OrderStatus.PAID}
)


def allowed_transitions(status: OrderStatus) -> frozenset[OrderStatus]:
    """Return the statuses reachable from ``status`` in one step."""
    return TRANSITIONS[status]


def validate_transition(order: Order, target: OrderStatus) -> None:
    """Check that ``order`` may move to ``target``.

    Args:
        order: Order in its current state
        target: Requested status

    Raises:
        OrderClosedError: If the order is cancelled
        InvalidTransitionError: If ``target`` is not reachable from the current status
    """
    if order.status == OrderStatus.CANCELLED:
        raise OrderClosedError(order.order_id, order.status, "change the status of")

    allowed = allowed_transitions(order.status)
    if target not in allowed:
        raise InvalidTransitionError(order.order_id, order.status, target, allowed)
