"""Dining table models."""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class TableStatus(str, Enum):
    """Occupancy status of a dining table."""

    AVAILABLE = "AVAILABLE"
    OCCUPIED = "OCCUPIED"
    RESERVED = "RESERVED"


# Statuses from which a table may become OCCUPIED.
OCCUPIABLE_STATUSES = (TableStatus.AVAILABLE, TableStatus.RESERVED)


class DiningTable(BaseModel):
    """A physical seating unit in a restaurant.

    Stored in DynamoDB with table_id as partition key.
    """

    table_id: str = Field(..., description="Unique table identifier")
    restaurant_id: str = Field(..., description="Restaurant this table belongs to")
    table_number: str = Field(..., description="Table number, unique per restaurant")
    capacity: int = Field(..., description="Number of seats", ge=1)
    location: str | None = Field(None, description="Free-form location (e.g. 'Terrace')")
    status: TableStatus = Field(default=TableStatus.AVAILABLE, description="Occupancy status")
    is_active: bool = Field(default=True, description="False once soft-deactivated")
    created_at: datetime | None = Field(None, description="Creation timestamp")

    @property
    def is_occupiable(self) -> bool:
        """Whether an order may be seated at this table right now."""
        return self.is_active and self.status in OCCUPIABLE_STATUSES

    def to_dynamodb_item(self) -> dict[str, Any]:
        """Convert to DynamoDB item format.

        Returns:
            dict: DynamoDB-compatible representation
        """
        item: dict[str, Any] = {
            "table_id": self.table_id,
            "restaurant_id": self.restaurant_id,
            "table_number": self.table_number,
            "capacity": self.capacity,
            "status": self.status.value,
            "is_active": self.is_active,
        }

        if self.location is not None:
            item["location"] = self.location

        if self.created_at is not None:
            item["created_at"] = self.created_at.isoformat()

        return item

    @classmethod
    def from_dynamodb_item(cls, item: dict[str, Any]) -> "DiningTable":
        """Create DiningTable from DynamoDB item.

        Args:
            item: DynamoDB item dictionary

        Returns:
            DiningTable: Parsed model instance
        """
        data: dict[str, Any] = {
            "table_id": item["table_id"],
            "restaurant_id": item["restaurant_id"],
            "table_number": item["table_number"],
            "capacity": int(item["capacity"]),
            "status": TableStatus(item["status"]),
            "is_active": bool(item.get("is_active", True)),
        }

        if "location" in item:
            data["location"] = item["location"]

        if "created_at" in item:
            data["created_at"] = datetime.fromisoformat(item["created_at"])

        return cls(**data)
