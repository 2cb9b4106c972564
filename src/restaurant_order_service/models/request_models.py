"""Request payloads accepted by the order service.

Presence checks for identifiers are left to the services so that callers get
the same typed errors over HTTP and in-process.
"""

from decimal import Decimal

from pydantic import BaseModel, Field

from restaurant_order_service.models.order_models import OrderStatus, OrderType
from restaurant_order_service.models.payment_models import PaymentMethod, PaymentStatus


class OrderItemRequest(BaseModel):
    """A line item submitted with a new order."""

    menu_item_id: str = Field(..., description="Catalog menu item")
    quantity: int = Field(..., description="Quantity ordered", ge=1)
    unit_price: Decimal | None = Field(
        None, description="Agreed unit price; the catalog price is used when omitted", ge=0
    )
    special_instructions: str | None = Field(None, description="Kitchen instructions")


class CreateOrderRequest(BaseModel):
    """Payload for creating an order."""

    restaurant_id: str | None = Field(None, description="Restaurant taking the order")
    waiter_id: str | None = Field(None, description="Staff member taking the order")
    order_type: OrderType = Field(..., description="Fulfillment channel")
    table_id: str | None = Field(None, description="Required for DINE_IN, forbidden otherwise")
    customer_phone: str | None = Field(None, description="Customer phone for lookup")
    customer_name: str | None = Field(None, description="Customer name for lookup")
    party_size: int = Field(default=1, description="Number of guests", ge=1)
    notes: str | None = Field(None, description="Free-form notes")
    total_amount: Decimal | None = Field(
        None, description="Client-computed total; replaced by the line sum when it disagrees", ge=0
    )
    items: list[OrderItemRequest] = Field(default_factory=list, description="Line items")


class UpdateOrderRequest(BaseModel):
    """Payload for editing order details."""

    notes: str | None = None
    party_size: int | None = Field(None, ge=1)


class UpdateOrderStatusRequest(BaseModel):
    """Payload for a status transition."""

    status: OrderStatus


class ApplyDiscountRequest(BaseModel):
    """Payload for applying a discount."""

    discount: Decimal = Field(..., ge=0)


class AddLineItemRequest(BaseModel):
    """Payload for adding a line item to an existing order."""

    menu_item_id: str
    quantity: int = Field(..., ge=1)
    special_instructions: str | None = None


class UpdateLineItemRequest(BaseModel):
    """Payload for editing a line item."""

    quantity: int | None = Field(None, ge=1)
    special_instructions: str | None = None


class ProcessPaymentRequest(BaseModel):
    """Payload for settling an order; the amount is always the order total."""

    method: PaymentMethod
    transaction_id: str | None = None
    notes: str | None = None


class CreatePaymentRequest(BaseModel):
    """Payload for explicitly recording a payment."""

    order_id: str
    amount: Decimal = Field(..., ge=0)
    method: PaymentMethod = PaymentMethod.CASH
    status: PaymentStatus = PaymentStatus.PENDING
    transaction_id: str | None = None
    notes: str | None = None


class UpdatePaymentRequest(BaseModel):
    """Payload for editing a payment that is not yet settled."""

    status: PaymentStatus | None = None
    transaction_id: str | None = None
    notes: str | None = None


class RefundPaymentRequest(BaseModel):
    """Payload for refunding a payment."""

    notes: str | None = None


class CreateTableRequest(BaseModel):
    """Payload for registering a dining table."""

    restaurant_id: str
    table_number: str
    capacity: int = Field(..., ge=1)
    location: str | None = None
