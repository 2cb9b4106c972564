"""Narrow interfaces between the order coordinator, table registry and payment ledger.

The coordinator depends on ``TableOccupancy`` and ``PaymentProcessor`` rather
than on the concrete services, and the ledger calls back into orders only
through ``OrderStatusUpdater``. None of these modules import each other.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from restaurant_order_service.models.order_models import Order, OrderStatus, OrderType
from restaurant_order_service.models.payment_models import Payment, PaymentMethod
from restaurant_order_service.models.table_models import DiningTable


@dataclass
class ReleaseOutcome:
    """Result of an automatic table release.

    Attributes:
        table: The table after the release attempt
        released: Whether the table is now AVAILABLE
        remaining_order_ids: Other non-terminal orders still seated at the table
    """

    table: DiningTable
    released: bool
    remaining_order_ids: list[str] = field(default_factory=list)


class TableOccupancy(ABC):
    """Table occupancy operations used while orders are created and closed."""

    @abstractmethod
    async def validate_table_for_order(
        self, table_id: str | None, order_type: OrderType
    ) -> DiningTable | None:
        """Check that a table can take a new order.

        Returns:
            The table for DINE_IN orders, None for other order types

        Raises:
            NotFoundError: If the table does not exist
            TableUnavailableError: If the table is inactive or not AVAILABLE/RESERVED
        """

    @abstractmethod
    async def auto_occupy_table(self, table_id: str, order_id: str) -> DiningTable:
        """Mark a table OCCUPIED for an order; already OCCUPIED tables are returned unchanged."""

    @abstractmethod
    async def auto_release_table(self, table_id: str, order_id: str) -> ReleaseOutcome:
        """Free a table unless another non-terminal order still references it."""

    @abstractmethod
    async def find_table(self, table_id: str) -> DiningTable | None:
        """Look up a table, returning None when it does not exist."""


class PaymentProcessor(ABC):
    """Payment operations triggered by order status changes."""

    @abstractmethod
    async def process_payment(
        self,
        order_id: str,
        method: PaymentMethod,
        transaction_id: str | None = None,
        notes: str | None = None,
    ) -> Payment:
        """Create or complete the order's payment for its current total."""

    @abstractmethod
    async def complete_pending_payment(self, order_id: str) -> Payment | None:
        """Mark an existing PENDING payment COMPLETED; None when there is none."""

    @abstractmethod
    async def find_payment_for_order(self, order_id: str) -> Payment | None:
        """Look up the order's payment, returning None when it has none."""


class OrderStatusUpdater(ABC):
    """Call-back into order state for the payment ledger."""

    @abstractmethod
    async def force_status(self, order_id: str, status: OrderStatus) -> Order:
        """Set an order's status without transition validation or payment sync."""

    @abstractmethod
    async def link_payment(self, order_id: str, payment_id: str) -> Order:
        """Record the payment id on the order."""
