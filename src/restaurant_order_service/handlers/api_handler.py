"""FastAPI application exposing the order service."""

import logging

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from restaurant_order_service.exceptions import OrderServiceError
from restaurant_order_service.models.order_models import (
    Order,
    OrderDetails,
    OrderStatus,
    OrderType,
)
from restaurant_order_service.models.payment_models import Payment, PaymentStatus
from restaurant_order_service.models.request_models import (
    AddLineItemRequest,
    ApplyDiscountRequest,
    CreateOrderRequest,
    CreatePaymentRequest,
    CreateTableRequest,
    ProcessPaymentRequest,
    RefundPaymentRequest,
    UpdateLineItemRequest,
    UpdateOrderRequest,
    UpdateOrderStatusRequest,
    UpdatePaymentRequest,
)
from restaurant_order_service.models.table_models import DiningTable
from restaurant_order_service.services.order_coordinator import OrderCoordinator
from restaurant_order_service.services.payment_ledger import PaymentLedger
from restaurant_order_service.services.table_registry import TableRegistry

logger = logging.getLogger(__name__)


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str


def create_app(
    order_coordinator: OrderCoordinator,
    table_registry: TableRegistry,
    payment_ledger: PaymentLedger,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        order_coordinator: Service for the order lifecycle
        table_registry: Service for dining tables
        payment_ledger: Service for payments

    Returns:
        Configured FastAPI application
    """
    app = FastAPI(
        title="Restaurant Order Service API",
        description="Order fulfillment: orders, line items, table occupancy and payments",
        version="1.0.0",
    )

    # Store services in app state for access in route handlers
    app.state.order_coordinator = order_coordinator
    app.state.table_registry = table_registry
    app.state.payment_ledger = payment_ledger

    @app.exception_handler(OrderServiceError)
    async def handle_order_service_error(request: Request, exc: OrderServiceError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        else:
            logger.info(f"{request.method} {request.url.path} rejected: {exc.code}")
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.get("/health", response_model=HealthResponse, tags=["Health"])
    async def health_check() -> HealthResponse:
        """Health check endpoint."""
        return HealthResponse(status="healthy")

    @app.post("/orders", response_model=OrderDetails, status_code=201, tags=["Orders"])
    async def create_order(body: CreateOrderRequest) -> OrderDetails:
        return await app.state.order_coordinator.create_order(body)

    @app.get("/orders", response_model=list[Order], tags=["Orders"])
    async def list_orders(
        restaurant_id: str,
        status: OrderStatus | None = None,
        order_type: OrderType | None = None,
        table_id: str | None = None,
        waiter_id: str | None = None,
    ) -> list[Order]:
        """List orders for a restaurant, newest first, with optional filters."""
        return await app.state.order_coordinator.list_orders(
            restaurant_id,
            status=status,
            order_type=order_type,
            table_id=table_id,
            waiter_id=waiter_id,
        )

    @app.get("/orders/active", response_model=list[Order], tags=["Orders"])
    async def list_active_orders(restaurant_id: str) -> list[Order]:
        """List PENDING, CONFIRMED and IN_PROGRESS orders, oldest first."""
        return await app.state.order_coordinator.list_active_orders(restaurant_id)

    @app.get("/orders/{order_id}", response_model=OrderDetails, tags=["Orders"])
    async def get_order(order_id: str) -> OrderDetails:
        return await app.state.order_coordinator.get_order(order_id)

    @app.patch("/orders/{order_id}", response_model=OrderDetails, tags=["Orders"])
    async def update_order(order_id: str, body: UpdateOrderRequest) -> OrderDetails:
        return await app.state.order_coordinator.update_order(order_id, body)

    @app.patch("/orders/{order_id}/status", response_model=OrderDetails, tags=["Orders"])
    async def update_order_status(order_id: str, body: UpdateOrderStatusRequest) -> OrderDetails:
        """Move an order to a new status.

        Table and payment synchronization failures are not reported here;
        the transition itself succeeded.
        """
        logger.info(f"Status change requested for order {order_id}: {body.status.value}")
        return await app.state.order_coordinator.update_order_status(order_id, body.status)

    @app.post("/orders/{order_id}/discount", response_model=OrderDetails, tags=["Orders"])
    async def apply_discount(order_id: str, body: ApplyDiscountRequest) -> OrderDetails:
        return await app.state.order_coordinator.apply_discount(order_id, body.discount)

    @app.post("/orders/{order_id}/recalculate", response_model=OrderDetails, tags=["Orders"])
    async def recalculate(order_id: str) -> OrderDetails:
        return await app.state.order_coordinator.recalculate(order_id)

    @app.delete("/orders/{order_id}", status_code=204, tags=["Orders"])
    async def delete_order(order_id: str) -> Response:
        await app.state.order_coordinator.delete_order(order_id)
        return Response(status_code=204)

    @app.post(
        "/orders/{order_id}/items", response_model=OrderDetails, status_code=201, tags=["Line Items"]
    )
    async def add_line_item(order_id: str, body: AddLineItemRequest) -> OrderDetails:
        return await app.state.order_coordinator.add_line_item(order_id, body)

    @app.patch("/orders/{order_id}/items/{item_id}", response_model=OrderDetails, tags=["Line Items"])
    async def update_line_item(
        order_id: str, item_id: str, body: UpdateLineItemRequest
    ) -> OrderDetails:
        return await app.state.order_coordinator.update_line_item(order_id, item_id, body)

    @app.delete("/orders/{order_id}/items/{item_id}", response_model=OrderDetails, tags=["Line Items"])
    async def remove_line_item(order_id: str, item_id: str) -> OrderDetails:
        return await app.state.order_coordinator.remove_line_item(order_id, item_id)

    @app.post("/orders/{order_id}/pay", response_model=Payment, tags=["Payments"])
    async def pay_order(order_id: str, body: ProcessPaymentRequest) -> Payment:
        """Settle an order for its current total; the amount is never taken from the caller."""
        return await app.state.payment_ledger.process_payment(
            order_id,
            body.method,
            transaction_id=body.transaction_id,
            notes=body.notes,
        )

    @app.get("/orders/{order_id}/payment", response_model=Payment, tags=["Payments"])
    async def get_order_payment(order_id: str) -> Payment:
        return await app.state.payment_ledger.get_payment_for_order(order_id)

    @app.post("/payments", response_model=Payment, status_code=201, tags=["Payments"])
    async def create_payment(body: CreatePaymentRequest) -> Payment:
        return await app.state.payment_ledger.create_payment(body)

    @app.get("/payments", response_model=list[Payment], tags=["Payments"])
    async def list_payments(restaurant_id: str, status: PaymentStatus | None = None) -> list[Payment]:
        return await app.state.payment_ledger.list_payments(restaurant_id, status=status)

    @app.get("/payments/{payment_id}", response_model=Payment, tags=["Payments"])
    async def get_payment(payment_id: str) -> Payment:
        return await app.state.payment_ledger.get_payment(payment_id)

    @app.patch("/payments/{payment_id}", response_model=Payment, tags=["Payments"])
    async def update_payment(payment_id: str, body: UpdatePaymentRequest) -> Payment:
        return await app.state.payment_ledger.update_payment(payment_id, body)

    @app.post("/payments/{payment_id}/refund", response_model=Payment, tags=["Payments"])
    async def refund_payment(payment_id: str, body: RefundPaymentRequest | None = None) -> Payment:
        """Refund a completed payment; the order is cancelled."""
        notes = body.notes if body is not None else None
        return await app.state.payment_ledger.refund_payment(payment_id, notes=notes)

    @app.post("/tables", response_model=DiningTable, status_code=201, tags=["Tables"])
    async def create_table(body: CreateTableRequest) -> DiningTable:
        return await app.state.table_registry.create_table(body)

    @app.get("/tables", response_model=list[DiningTable], tags=["Tables"])
    async def list_tables(restaurant_id: str, include_inactive: bool = False) -> list[DiningTable]:
        return await app.state.table_registry.list_tables(
            restaurant_id, include_inactive=include_inactive
        )

    @app.get("/tables/available", response_model=list[DiningTable], tags=["Tables"])
    async def find_available_tables(
        restaurant_id: str, party_size: int | None = None
    ) -> list[DiningTable]:
        """Suggest up to five free tables, smallest fitting first."""
        return await app.state.table_registry.find_available_tables(
            restaurant_id, party_size=party_size
        )

    @app.get("/tables/{table_id}", response_model=DiningTable, tags=["Tables"])
    async def get_table(table_id: str) -> DiningTable:
        return await app.state.table_registry.get_table(table_id)

    @app.delete("/tables/{table_id}", status_code=204, tags=["Tables"])
    async def remove_table(table_id: str) -> Response:
        await app.state.table_registry.remove_table(table_id)
        return Response(status_code=204)

    @app.post("/tables/{table_id}/occupy", response_model=DiningTable, tags=["Tables"])
    async def occupy_table(table_id: str) -> DiningTable:
        return await app.state.table_registry.occupy_table(table_id)

    @app.post("/tables/{table_id}/release", response_model=DiningTable, tags=["Tables"])
    async def release_table(table_id: str) -> DiningTable:
        return await app.state.table_registry.release_table(table_id)

    return app
