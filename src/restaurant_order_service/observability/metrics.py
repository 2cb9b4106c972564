"""Custom metrics for the order service."""

from opentelemetry import metrics

meter = metrics.get_meter("order-svc")

orders_created_counter = meter.create_counter(
    name="orders_created_total",
    description="Total number of orders created by order type",
    unit="1",
)

status_transition_counter = meter.create_counter(
    name="order_status_transitions_total",
    description="Total number of order status transitions by source and target status",
    unit="1",
)

order_number_collision_counter = meter.create_counter(
    name="order_number_collisions_total",
    description="Order number uniqueness violations that triggered a retry",
    unit="1",
)

side_effect_failure_counter = meter.create_counter(
    name="order_side_effect_failures_total",
    description="Best-effort side effects (table occupancy, payment sync) that failed",
    unit="1",
)

payments_processed_counter = meter.create_counter(
    name="payments_processed_total",
    description="Total number of completed payments by method",
    unit="1",
)


def record_order_created(order_type: str) -> None:
    """Record a created order.

    Args:
        order_type: DINE_IN, TAKEAWAY or DELIVERY
    """
    orders_created_counter.add(1, {"order_type": order_type})


def record_status_transition(from_status: str, to_status: str) -> None:
    """Record an applied status transition.

    Args:
        from_status: Status before the transition
        to_status: Status after the transition
    """
    status_transition_counter.add(1, {"from": from_status, "to": to_status})


def record_order_number_collision(restaurant_id: str) -> None:
    """Record an order number collision.

    Args:
        restaurant_id: Restaurant whose number was already taken
    """
    order_number_collision_counter.add(1, {"restaurant_id": restaurant_id})


def record_side_effect_failure(effect: str) -> None:
    """Record a swallowed side-effect failure.

    Args:
        effect: "table_occupy", "table_release" or "payment"
    """
    side_effect_failure_counter.add(1, {"effect": effect})


def record_payment_processed(method: str) -> None:
    """Record a payment that reached COMPLETED.

    Args:
        method: Payment method used
    """
    payments_processed_counter.add(1, {"method": method})
