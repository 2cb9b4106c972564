"""Shared pytest fixtures and configuration for all tests."""

import os
from datetime import UTC, datetime
from decimal import Decimal

import pytest

# Keep entry point modules from building the real application on import
os.environ.setdefault("ENVIRONMENT", "test")

from restaurant_order_service.models.menu_models import MenuItem  # noqa: E402
from restaurant_order_service.models.order_models import (  # noqa: E402
    Order,
    OrderItem,
    OrderStatus,
    OrderType,
)
from restaurant_order_service.models.payment_models import (  # noqa: E402
    Payment,
    PaymentMethod,
    PaymentStatus,
)
from restaurant_order_service.models.table_models import DiningTable, TableStatus  # noqa: E402


@pytest.fixture
def mock_restaurant_id() -> str:
    """Fixture providing a standard test restaurant ID."""
    return "rest_123456"


@pytest.fixture
def fixed_now() -> datetime:
    """Fixture providing the instant tests treat as now."""
    return datetime(2025, 1, 15, 12, 0, tzinfo=UTC)


@pytest.fixture
def menu_items(mock_restaurant_id: str) -> list[MenuItem]:
    """Fixture providing catalog items: two available, one sold out."""
    return [
        MenuItem(
            id="menu_steak",
            restaurant_id=mock_restaurant_id,
            name="Grilled Steak",
            price=Decimal("50.00"),
            available=True,
        ),
        MenuItem(
            id="menu_wine",
            restaurant_id=mock_restaurant_id,
            name="House Wine",
            price=Decimal("30.00"),
            available=True,
        ),
        MenuItem(
            id="menu_soup",
            restaurant_id=mock_restaurant_id,
            name="Soup of the Day",
            price=Decimal("8.50"),
            available=False,
        ),
    ]


@pytest.fixture
def sample_table(mock_restaurant_id: str) -> DiningTable:
    """Fixture providing table T5, available, four seats."""
    return DiningTable(
        table_id="tbl_t5",
        restaurant_id=mock_restaurant_id,
        table_number="T5",
        capacity=4,
        location="Terrace",
        status=TableStatus.AVAILABLE,
    )


@pytest.fixture
def sample_order(mock_restaurant_id: str, fixed_now: datetime) -> Order:
    """Fixture providing a pending dine-in order with a 130.00 subtotal."""
    return Order(
        order_id="ord_abc123",
        restaurant_id=mock_restaurant_id,
        order_number="ORD-20250115-0001",
        table_id="tbl_t5",
        waiter_id="waiter_1",
        order_type=OrderType.DINE_IN,
        status=OrderStatus.PENDING,
        subtotal=Decimal("130.00"),
        total=Decimal("130.00"),
        created_at=fixed_now,
    )


@pytest.fixture
def sample_items(fixed_now: datetime) -> list[OrderItem]:
    """Fixture providing the two line items of sample_order."""
    return [
        OrderItem(
            item_id="item_1",
            order_id="ord_abc123",
            menu_item_id="menu_steak",
            quantity=2,
            unit_price=Decimal("50.00"),
            created_at=fixed_now,
        ),
        OrderItem(
            item_id="item_2",
            order_id="ord_abc123",
            menu_item_id="menu_wine",
            quantity=1,
            unit_price=Decimal("30.00"),
            created_at=fixed_now,
        ),
    ]


@pytest.fixture
def sample_payment(mock_restaurant_id: str, fixed_now: datetime) -> Payment:
    """Fixture providing a pending cash payment for sample_order."""
    return Payment(
        payment_id="pay_xyz789",
        order_id="ord_abc123",
        restaurant_id=mock_restaurant_id,
        payment_number="PAY-20250115-A1B2C3",
        amount=Decimal("130.00"),
        method=PaymentMethod.CASH,
        status=PaymentStatus.PENDING,
        created_at=fixed_now,
    )
