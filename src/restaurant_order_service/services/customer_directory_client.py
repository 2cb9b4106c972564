"""Client for the Customer Service find-or-create endpoint."""

import logging

import httpx

logger = logging.getLogger(__name__)


class CustomerDirectoryClient:
    """HTTP client resolving customers by phone number.

    The Customer Service find-or-create call is idempotent on
    (restaurant, phone), so repeating it for the same customer is safe.
    """

    def __init__(self, base_url: str, api_key: str, timeout_seconds: float = 5.0) -> None:
        """Initialize the Customer Service client.

        Args:
            base_url: Base URL of the Customer Service API
            api_key: API key for service-to-service authentication
            timeout_seconds: Request timeout
        """
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout_seconds = timeout_seconds

    async def find_or_create(
        self, restaurant_id: str, phone: str, name: str | None = None
    ) -> str | None:
        """Find a customer by phone, creating one if needed.

        Args:
            restaurant_id: Restaurant the customer belongs to
            phone: Customer phone number
            name: Customer name, used when the customer is created

        Returns:
            The customer id, or None on failure
        """
        url = f"{self.base_url}/restaurants/{restaurant_id}/customers/find-or-create"
        headers = {"X-API-Key": self.api_key}
        payload = {"phone": phone, "name": name}

        try:
            async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
                response = await client.post(url, json=payload, headers=headers)
                response.raise_for_status()
                data = response.json()

                customer_id = data.get("id")
                return str(customer_id) if customer_id is not None else None

        except (httpx.HTTPStatusError, httpx.RequestError) as e:
            logger.error(
                f"Failed to find or create customer for restaurant {restaurant_id}: {e}"
            )  # pragma: no cover
            return None
