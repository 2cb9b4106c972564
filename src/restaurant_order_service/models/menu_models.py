"""Menu catalog models.

These models represent menu items as returned by the menu catalog service.
The order service only reads them; prices and availability are owned by the
catalog.
"""

from decimal import Decimal

from pydantic import BaseModel, Field, field_serializer


class MenuItem(BaseModel):
    """Menu item model."""

    id: str = Field(..., description="Unique identifier for the menu item")
    restaurant_id: str = Field(..., description="Restaurant this item belongs to")
    name: str = Field(..., description="Item name")
    description: str | None = Field(None, description="Item description")
    price: Decimal = Field(..., description="Item price", ge=0)
    available: bool = Field(default=True, description="Whether item is currently available")

    @field_serializer("price", when_used="json")
    def serialize_price(self, price: Decimal) -> str:
        return str(price)
