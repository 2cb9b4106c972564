"""Client for looking up menu items in the Menu Service."""

import logging
from decimal import Decimal

import httpx

from restaurant_order_service.models.menu_models import MenuItem

logger = logging.getLogger(__name__)


class MenuCatalogClient:
    """HTTP client for reading menu items from the Menu Service.

    Prices and availability are owned by the Menu Service; the order service
    only reads them when line items are created.
    """

    def __init__(self, base_url: str, api_key: str, timeout_seconds: float = 5.0) -> None:
        """Initialize the Menu Service client.

        Args:
            base_url: Base URL of the Menu Service API (e.g., "https://api.example.com")
            api_key: API key for service-to-service authentication
            timeout_seconds: Request timeout
        """
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout_seconds = timeout_seconds

    async def find_by_id(self, menu_item_id: str) -> MenuItem | None:
        """Fetch one menu item.

        Args:
            menu_item_id: Menu item identifier

        Returns:
            MenuItem, or None if the item does not exist or the lookup failed
        """
        url = f"{self.base_url}/menu-items/{menu_item_id}"
        headers = {"X-API-Key": self.api_key}

        try:
            async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
                response = await client.get(url, headers=headers)
                if response.status_code == 404:
                    return None
                response.raise_for_status()
                data = response.json()

                # Convert price string to Decimal
                data["price"] = Decimal(str(data["price"]))
                return MenuItem(**data)

        except (httpx.HTTPStatusError, httpx.RequestError) as e:
            logger.error(f"Failed to fetch menu item {menu_item_id}: {e}")  # pragma: no cover
            return None
