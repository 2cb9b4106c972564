"""Order and order line item models.

These models represent orders, their line items, and the composed order view
returned to callers. Orders are stored in DynamoDB with order_id as partition
key; line items with (order_id, item_id) as composite key.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

from restaurant_order_service.models.money import to_amount
from restaurant_order_service.models.payment_models import Payment
from restaurant_order_service.models.table_models import DiningTable


class OrderType(str, Enum):
    """Fulfillment channel of an order."""

    DINE_IN = "DINE_IN"
    TAKEAWAY = "TAKEAWAY"
    DELIVERY = "DELIVERY"


class OrderStatus(str, Enum):
    """Lifecycle status of an order."""

    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    SERVED = "SERVED"
    PAID = "PAID"
    CANCELLED = "CANCELLED"


# No transition leaves these.
TERMINAL_STATUSES = frozenset({OrderStatus.PAID, OrderStatus.CANCELLED})

# Line items and order details can no longer change. SERVED stays editable.
EDIT_LOCKED_STATUSES = frozenset({OrderStatus.COMPLETED, OrderStatus.PAID, OrderStatus.CANCELLED})

# Orders the kitchen is still working on.
ACTIVE_STATUSES = frozenset({OrderStatus.PENDING, OrderStatus.CONFIRMED, OrderStatus.IN_PROGRESS})

# Deletion is refused in these.
FULFILLED_STATUSES = frozenset({OrderStatus.COMPLETED, OrderStatus.SERVED, OrderStatus.PAID})


class Order(BaseModel):
    """One customer transaction.

    Invariants: total equals subtotal minus discount, the discount never
    exceeds the subtotal, and only DINE_IN orders reference a table.
    """

    order_id: str = Field(..., description="Unique order identifier")
    restaurant_id: str = Field(..., description="Restaurant this order belongs to")
    order_number: str = Field(..., description="Human-readable number, unique per restaurant")
    table_id: str | None = Field(None, description="Table for DINE_IN orders")
    waiter_id: str = Field(..., description="Staff member who took the order")
    customer_id: str | None = Field(None, description="Customer from the customer directory")
    party_size: int = Field(default=1, description="Number of guests", ge=1)
    order_type: OrderType = Field(..., description="Fulfillment channel")
    status: OrderStatus = Field(default=OrderStatus.PENDING, description="Lifecycle status")
    subtotal: Decimal = Field(default=Decimal("0.00"), description="Sum of line totals", ge=0)
    discount: Decimal = Field(default=Decimal("0.00"), description="Discount amount", ge=0)
    total: Decimal = Field(default=Decimal("0.00"), description="subtotal - discount", ge=0)
    notes: str = Field(default="", description="Free-form notes")
    created_at: datetime | None = Field(None, description="Creation timestamp")
    completed_at: datetime | None = Field(None, description="When the order was completed")
    payment_id: str | None = Field(None, description="Linked payment, if any")

    @field_validator("subtotal", "discount", "total")
    @classmethod
    def quantize_amounts(cls, v: Decimal) -> Decimal:
        """Round monetary fields to cents."""
        return to_amount(v)

    @model_validator(mode="after")
    def validate_table_assignment(self) -> "Order":
        """Validate that the table reference matches the order type."""
        if self.order_type == OrderType.DINE_IN and not self.table_id:
            raise ValueError("DINE_IN orders require a table_id")
        if self.order_type != OrderType.DINE_IN and self.table_id:
            raise ValueError(f"{self.order_type.value} orders cannot reference a table")
        return self

    @property
    def is_dine_in(self) -> bool:
        """Whether this order occupies a table."""
        return self.order_type == OrderType.DINE_IN and self.table_id is not None

    def apply_subtotal(self, subtotal: Decimal) -> None:
        """Set the subtotal and derive the total.

        The discount is clamped so it never exceeds the new subtotal.

        Args:
            subtotal: New subtotal
        """
        self.subtotal = to_amount(subtotal)
        self.discount = min(self.discount, self.subtotal)
        self.total = to_amount(self.subtotal - self.discount)

    def apply_discount(self, discount: Decimal) -> None:
        """Set the discount and derive the total.

        Args:
            discount: Discount amount, already validated against the subtotal
        """
        self.discount = to_amount(discount)
        self.total = to_amount(self.subtotal - self.discount)

    def to_dynamodb_item(self) -> dict[str, Any]:
        """Convert to DynamoDB item format.

        Returns:
            dict: DynamoDB-compatible representation
        """
        item: dict[str, Any] = {
            "order_id": self.order_id,
            "restaurant_id": self.restaurant_id,
            "order_number": self.order_number,
            "waiter_id": self.waiter_id,
            "party_size": self.party_size,
            "order_type": self.order_type.value,
            "status": self.status.value,
            "subtotal": self.subtotal,
            "discount": self.discount,
            "total": self.total,
            "notes": self.notes,
        }

        # Sparse GSI keys must be omitted rather than null
        for key in ("table_id", "customer_id", "payment_id"):
            value = getattr(self, key)
            if value is not None:
                item[key] = value

        if self.created_at is not None:
            item["created_at"] = self.created_at.isoformat()

        if self.completed_at is not None:
            item["completed_at"] = self.completed_at.isoformat()

        return item

    @classmethod
    def from_dynamodb_item(cls, item: dict[str, Any]) -> "Order":
        """Create Order from DynamoDB item.

        Args:
            item: DynamoDB item dictionary

        Returns:
            Order: Parsed model instance
        """
        data: dict[str, Any] = {
            "order_id": item["order_id"],
            "restaurant_id": item["restaurant_id"],
            "order_number": item["order_number"],
            "waiter_id": item["waiter_id"],
            "party_size": int(item.get("party_size", 1)),
            "order_type": OrderType(item["order_type"]),
            "status": OrderStatus(item["status"]),
            "subtotal": Decimal(str(item.get("subtotal", "0"))),
            "discount": Decimal(str(item.get("discount", "0"))),
            "total": Decimal(str(item.get("total", "0"))),
            "notes": item.get("notes", ""),
        }

        for key in ("table_id", "customer_id", "payment_id"):
            if key in item:
                data[key] = item[key]

        for key in ("created_at", "completed_at"):
            if key in item:
                data[key] = datetime.fromisoformat(item[key])

        return cls(**data)


class OrderItem(BaseModel):
    """One priced line within an order.

    The unit price is captured when the line is created and never re-read from
    the catalog; total_price is always quantity x unit_price.
    """

    item_id: str = Field(..., description="Unique line item identifier")
    order_id: str = Field(..., description="Owning order")
    menu_item_id: str = Field(..., description="Catalog menu item")
    quantity: int = Field(..., description="Quantity ordered", ge=1)
    unit_price: Decimal = Field(..., description="Price per unit at order time", ge=0)
    total_price: Decimal = Field(default=Decimal("0.00"), description="quantity x unit_price")
    special_instructions: str | None = Field(None, description="Kitchen instructions")
    created_at: datetime | None = Field(None, description="Creation timestamp")

    @field_validator("unit_price")
    @classmethod
    def quantize_unit_price(cls, v: Decimal) -> Decimal:
        """Round the unit price to cents."""
        return to_amount(v)

    @model_validator(mode="after")
    def derive_total_price(self) -> "OrderItem":
        """Derive total_price from quantity and unit price."""
        self.total_price = to_amount(self.unit_price * self.quantity)
        return self

    def change_quantity(self, quantity: int) -> None:
        """Change the quantity and re-derive the line total.

        Args:
            quantity: New quantity (must be at least 1)

        Raises:
            ValueError: If quantity is below 1
        """
        if quantity < 1:
            raise ValueError("quantity must be at least 1")
        self.quantity = quantity
        self.total_price = to_amount(self.unit_price * quantity)

    def to_dynamodb_item(self) -> dict[str, Any]:
        """Convert to DynamoDB item format.

        Returns:
            dict: DynamoDB-compatible representation
        """
        item: dict[str, Any] = {
            "order_id": self.order_id,
            "item_id": self.item_id,
            "menu_item_id": self.menu_item_id,
            "quantity": self.quantity,
            "unit_price": self.unit_price,
            "total_price": self.total_price,
        }

        if self.special_instructions is not None:
            item["special_instructions"] = self.special_instructions

        if self.created_at is not None:
            item["created_at"] = self.created_at.isoformat()

        return item

    @classmethod
    def from_dynamodb_item(cls, item: dict[str, Any]) -> "OrderItem":
        """Create OrderItem from DynamoDB item.

        Args:
            item: DynamoDB item dictionary

        Returns:
            OrderItem: Parsed model instance
        """
        data: dict[str, Any] = {
            "order_id": item["order_id"],
            "item_id": item["item_id"],
            "menu_item_id": item["menu_item_id"],
            "quantity": int(item["quantity"]),
            "unit_price": Decimal(str(item["unit_price"])),
        }

        if "special_instructions" in item:
            data["special_instructions"] = item["special_instructions"]

        if "created_at" in item:
            data["created_at"] = datetime.fromisoformat(item["created_at"])

        return cls(**data)


class OrderDetails(Order):
    """Composed order view with line items, table and payment."""

    items: list[OrderItem] = Field(default_factory=list, description="Line items")
    table: DiningTable | None = Field(None, description="Table for DINE_IN orders")
    payment: Payment | None = Field(None, description="Linked payment")

    @classmethod
    def compose(
        cls,
        order: Order,
        items: list[OrderItem],
        table: DiningTable | None = None,
        payment: Payment | None = None,
    ) -> "OrderDetails":
        """Build the composed view from its parts.

        Args:
            order: The order record
            items: Its line items
            table: The referenced table, if any
            payment: The linked payment, if any

        Returns:
            OrderDetails: Composed order view
        """
        return cls(**order.model_dump(), items=items, table=table, payment=payment)
