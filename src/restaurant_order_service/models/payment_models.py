"""Payment models."""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator

from restaurant_order_service.models.money import to_amount


class PaymentStatus(str, Enum):
    """Settlement status of a payment."""

    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    REFUNDED = "REFUNDED"


class PaymentMethod(str, Enum):
    """Supported payment methods."""

    CASH = "CASH"
    CARD = "CARD"
    MOBILE_MONEY = "MOBILE_MONEY"
    BANK_TRANSFER = "BANK_TRANSFER"


class Payment(BaseModel):
    """Settlement record for exactly one order.

    Stored in DynamoDB with order_id as partition key, which enforces the
    one-payment-per-order rule at the storage layer.
    """

    payment_id: str = Field(..., description="Unique payment identifier")
    order_id: str = Field(..., description="Order this payment settles")
    restaurant_id: str = Field(..., description="Restaurant the order belongs to")
    payment_number: str = Field(..., description="Human-readable payment number")
    amount: Decimal = Field(..., description="Settled amount", ge=0)
    method: PaymentMethod = Field(default=PaymentMethod.CASH, description="Payment method")
    status: PaymentStatus = Field(default=PaymentStatus.PENDING, description="Payment status")
    transaction_id: str | None = Field(None, description="External transaction reference")
    notes: str | None = Field(None, description="Free-form notes")
    created_at: datetime | None = Field(None, description="Creation timestamp")
    paid_at: datetime | None = Field(None, description="When the payment completed")

    @field_validator("amount")
    @classmethod
    def quantize_amount(cls, v: Decimal) -> Decimal:
        """Round the amount to cents."""
        return to_amount(v)

    def to_dynamodb_item(self) -> dict[str, Any]:
        """Convert to DynamoDB item format.

        Returns:
            dict: DynamoDB-compatible representation
        """
        item: dict[str, Any] = {
            "payment_id": self.payment_id,
            "order_id": self.order_id,
            "restaurant_id": self.restaurant_id,
            "payment_number": self.payment_number,
            "amount": self.amount,
            "method": self.method.value,
            "status": self.status.value,
        }

        if self.transaction_id is not None:
            item["transaction_id"] = self.transaction_id

        if self.notes is not None:
            item["notes"] = self.notes

        if self.created_at is not None:
            item["created_at"] = self.created_at.isoformat()

        if self.paid_at is not None:
            item["paid_at"] = self.paid_at.isoformat()

        return item

    @classmethod
    def from_dynamodb_item(cls, item: dict[str, Any]) -> "Payment":
        """Create Payment from DynamoDB item.

        Args:
            item: DynamoDB item dictionary

        Returns:
            Payment: Parsed model instance
        """
        data: dict[str, Any] = {
            "payment_id": item["payment_id"],
            "order_id": item["order_id"],
            "restaurant_id": item["restaurant_id"],
            "payment_number": item["payment_number"],
            "amount": Decimal(str(item["amount"])),
            "method": PaymentMethod(item["method"]),
            "status": PaymentStatus(item["status"]),
        }

        for key in ("transaction_id", "notes"):
            if key in item:
                data[key] = item[key]

        for key in ("created_at", "paid_at"):
            if key in item:
                data[key] = datetime.fromisoformat(item[key])

        return cls(**data)
