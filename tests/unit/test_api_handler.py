"""Unit tests for the FastAPI order service endpoints."""

from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from restaurant_order_service.exceptions import (
    AmountMismatchError,
    InvalidTransitionError,
    NotFoundError,
    RecalculationFailedError,
    TableUnavailableError,
)
from restaurant_order_service.handlers.api_handler import create_app
from restaurant_order_service.models.order_models import (
    Order,
    OrderDetails,
    OrderItem,
    OrderStatus,
)
from restaurant_order_service.models.payment_models import Payment, PaymentMethod, PaymentStatus
from restaurant_order_service.models.table_models import DiningTable, TableStatus
from restaurant_order_service.services.order_coordinator import OrderCoordinator
from restaurant_order_service.services.payment_ledger import PaymentLedger
from restaurant_order_service.services.table_registry import TableRegistry


@pytest.fixture
def client() -> TestClient:
    """Create a test client with mocked services."""
    app = create_app(
        order_coordinator=MagicMock(spec=OrderCoordinator),
        table_registry=MagicMock(spec=TableRegistry),
        payment_ledger=MagicMock(spec=PaymentLedger),
    )
    return TestClient(app)


@pytest.fixture
def order_details(sample_order: Order, sample_items: list[OrderItem]) -> OrderDetails:
    """Fixture providing the composed sample order."""
    return OrderDetails.compose(sample_order, sample_items)


@pytest.mark.unit
class TestHealthEndpoint:
    """Test suite for health check endpoint."""

    def test_health_check(self, client: TestClient) -> None:
        """Test health check endpoint returns 200."""
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}


@pytest.mark.unit
class TestOrderEndpoints:
    """Test suite for order endpoints."""

    def test_create_order(self, client: TestClient, order_details: OrderDetails) -> None:
        """Test creating an order returns 201 with the composed order."""
        client.app.state.order_coordinator.create_order = AsyncMock(return_value=order_details)

        response = client.post(
            "/orders",
            json={
                "restaurant_id": "rest_123456",
                "waiter_id": "waiter_1",
                "order_type": "DINE_IN",
                "table_id": "tbl_t5",
                "items": [{"menu_item_id": "menu_steak", "quantity": 2}],
            },
        )

        assert response.status_code == 201
        data = response.json()
        assert data["order_number"] == "ORD-20250115-0001"
        assert Decimal(data["total"]) == Decimal("130.00")
        assert len(data["items"]) == 2
        request = client.app.state.order_coordinator.create_order.call_args.args[0]
        assert request.items[0].quantity == 2

    def test_create_order_invalid_quantity(self, client: TestClient) -> None:
        """Test that request validation rejects a zero quantity."""
        response = client.post(
            "/orders",
            json={
                "restaurant_id": "rest_123456",
                "waiter_id": "waiter_1",
                "order_type": "TAKEAWAY",
                "items": [{"menu_item_id": "menu_steak", "quantity": 0}],
            },
        )

        assert response.status_code == 422

    def test_create_order_table_unavailable(self, client: TestClient) -> None:
        """Test that service errors are rendered with their code and status."""
        client.app.state.order_coordinator.create_order = AsyncMock(
            side_effect=TableUnavailableError("tbl_t5", "T5", TableStatus.OCCUPIED, True)
        )

        response = client.post(
            "/orders",
            json={
                "restaurant_id": "rest_123456",
                "waiter_id": "waiter_1",
                "order_type": "DINE_IN",
                "table_id": "tbl_t5",
                "items": [{"menu_item_id": "menu_steak", "quantity": 1}],
            },
        )

        assert response.status_code == 409
        data = response.json()
        assert data["error"] == "table_unavailable"
        assert data["details"]["status"] == "OCCUPIED"

    def test_get_order_not_found(self, client: TestClient) -> None:
        """Test that a missing order returns 404."""
        client.app.state.order_coordinator.get_order = AsyncMock(
            side_effect=NotFoundError("Order", "ord_missing")
        )

        response = client.get("/orders/ord_missing")

        assert response.status_code == 404
        assert response.json()["error"] == "not_found"

    def test_list_orders_passes_filters(self, client: TestClient, sample_order: Order) -> None:
        """Test that query parameters reach the coordinator as enums."""
        client.app.state.order_coordinator.list_orders = AsyncMock(return_value=[sample_order])

        response = client.get(
            "/orders", params={"restaurant_id": "rest_123456", "status": "PENDING"}
        )

        assert response.status_code == 200
        assert len(response.json()) == 1
        client.app.state.order_coordinator.list_orders.assert_awaited_once_with(
            "rest_123456",
            status=OrderStatus.PENDING,
            order_type=None,
            table_id=None,
            waiter_id=None,
        )

    def test_list_orders_requires_restaurant(self, client: TestClient) -> None:
        """Test that restaurant_id is mandatory."""
        assert client.get("/orders").status_code == 422

    def test_list_active_orders_route_not_shadowed(
        self, client: TestClient, sample_order: Order
    ) -> None:
        """Test that /orders/active is not treated as an order id."""
        client.app.state.order_coordinator.list_active_orders = AsyncMock(
            return_value=[sample_order]
        )

        response = client.get("/orders/active", params={"restaurant_id": "rest_123456"})

        assert response.status_code == 200
        client.app.state.order_coordinator.list_active_orders.assert_awaited_once_with(
            "rest_123456"
        )

    def test_update_status_invalid_transition(self, client: TestClient) -> None:
        """Test that an invalid transition returns 409 with the allowed targets."""
        client.app.state.order_coordinator.update_order_status = AsyncMock(
            side_effect=InvalidTransitionError(
                "ord_abc123",
                OrderStatus.PENDING,
                OrderStatus.PAID,
                {OrderStatus.CONFIRMED, OrderStatus.CANCELLED},
            )
        )

        response = client.patch("/orders/ord_abc123/status", json={"status": "PAID"})

        assert response.status_code == 409
        assert response.json()["details"]["allowed"] == ["CANCELLED", "CONFIRMED"]

    def test_update_status_unknown_value(self, client: TestClient) -> None:
        """Test that unknown statuses are rejected by validation."""
        response = client.patch("/orders/ord_abc123/status", json={"status": "EATEN"})

        assert response.status_code == 422

    def test_apply_discount(self, client: TestClient, order_details: OrderDetails) -> None:
        """Test applying a discount."""
        client.app.state.order_coordinator.apply_discount = AsyncMock(return_value=order_details)

        response = client.post("/orders/ord_abc123/discount", json={"discount": "10.00"})

        assert response.status_code == 200
        client.app.state.order_coordinator.apply_discount.assert_awaited_once_with(
            "ord_abc123", Decimal("10.00")
        )

    def test_delete_order(self, client: TestClient) -> None:
        """Test deleting an order returns 204."""
        client.app.state.order_coordinator.delete_order = AsyncMock(return_value=None)

        response = client.delete("/orders/ord_abc123")

        assert response.status_code == 204

    def test_add_line_item(self, client: TestClient, order_details: OrderDetails) -> None:
        """Test adding a line item returns 201."""
        client.app.state.order_coordinator.add_line_item = AsyncMock(return_value=order_details)

        response = client.post(
            "/orders/ord_abc123/items", json={"menu_item_id": "menu_wine", "quantity": 1}
        )

        assert response.status_code == 201

    def test_remove_line_item_recalculation_failed(self, client: TestClient) -> None:
        """Test that a failed recalculation is reported as a server error."""
        client.app.state.order_coordinator.remove_line_item = AsyncMock(
            side_effect=RecalculationFailedError("ord_abc123")
        )

        response = client.delete("/orders/ord_abc123/items/item_2")

        assert response.status_code == 500
        assert response.json()["error"] == "recalculation_failed"


@pytest.mark.unit
class TestPaymentEndpoints:
    """Test suite for payment endpoints."""

    def test_pay_order(self, client: TestClient, sample_payment: Payment) -> None:
        """Test settling an order."""
        completed = sample_payment.model_copy(update={"status": PaymentStatus.COMPLETED})
        client.app.state.payment_ledger.process_payment = AsyncMock(return_value=completed)

        response = client.post(
            "/orders/ord_abc123/pay", json={"method": "CARD", "transaction_id": "tx_1"}
        )

        assert response.status_code == 200
        assert response.json()["status"] == "COMPLETED"
        client.app.state.payment_ledger.process_payment.assert_awaited_once_with(
            "ord_abc123", PaymentMethod.CARD, transaction_id="tx_1", notes=None
        )

    def test_create_payment_amount_mismatch(self, client: TestClient) -> None:
        """Test that a wrong amount returns 400."""
        client.app.state.payment_ledger.create_payment = AsyncMock(
            side_effect=AmountMismatchError("ord_abc123", Decimal("100.00"), Decimal("130.00"))
        )

        response = client.post("/payments", json={"order_id": "ord_abc123", "amount": "100.00"})

        assert response.status_code == 400
        assert response.json()["details"]["order_total"] == "130.00"

    def test_refund_without_body(self, client: TestClient, sample_payment: Payment) -> None:
        """Test that the refund body is optional."""
        refunded = sample_payment.model_copy(update={"status": PaymentStatus.REFUNDED})
        client.app.state.payment_ledger.refund_payment = AsyncMock(return_value=refunded)

        response = client.post("/payments/pay_xyz789/refund")

        assert response.status_code == 200
        client.app.state.payment_ledger.refund_payment.assert_awaited_once_with(
            "pay_xyz789", notes=None
        )

    def test_get_order_payment(self, client: TestClient, sample_payment: Payment) -> None:
        """Test reading an order's payment."""
        client.app.state.payment_ledger.get_payment_for_order = AsyncMock(
            return_value=sample_payment
        )

        response = client.get("/orders/ord_abc123/payment")

        assert response.status_code == 200
        assert response.json()["payment_id"] == "pay_xyz789"


@pytest.mark.unit
class TestTableEndpoints:
    """Test suite for table endpoints."""

    def test_create_table(self, client: TestClient, sample_table: DiningTable) -> None:
        """Test registering a table returns 201."""
        client.app.state.table_registry.create_table = AsyncMock(return_value=sample_table)

        response = client.post(
            "/tables",
            json={"restaurant_id": "rest_123456", "table_number": "T5", "capacity": 4},
        )

        assert response.status_code == 201
        assert response.json()["status"] == "AVAILABLE"

    def test_find_available_tables(self, client: TestClient, sample_table: DiningTable) -> None:
        """Test that /tables/available is routed to the suggestion query."""
        client.app.state.table_registry.find_available_tables = AsyncMock(
            return_value=[sample_table]
        )

        response = client.get(
            "/tables/available", params={"restaurant_id": "rest_123456", "party_size": 2}
        )

        assert response.status_code == 200
        client.app.state.table_registry.find_available_tables.assert_awaited_once_with(
            "rest_123456", party_size=2
        )

    def test_remove_table(self, client: TestClient) -> None:
        """Test removing a table returns 204."""
        client.app.state.table_registry.remove_table = AsyncMock(return_value=True)

        assert client.delete("/tables/tbl_t5").status_code == 204

    def test_release_table(self, client: TestClient, sample_table: DiningTable) -> None:
        """Test manually releasing a table."""
        client.app.state.table_registry.release_table = AsyncMock(return_value=sample_table)

        response = client.post("/tables/tbl_t5/release")

        assert response.status_code == 200
        assert response.json()["table_number"] == "T5"
