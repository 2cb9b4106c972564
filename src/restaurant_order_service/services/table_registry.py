"""Table registry: dining table administration and occupancy."""

import logging
import uuid

from restaurant_order_service.exceptions import (
    ConditionalWriteError,
    InvalidOrderTypeError,
    NotFoundError,
    TableNumberTakenError,
    TableStateError,
    TableUnavailableError,
)
from restaurant_order_service.models.order_models import (
    ACTIVE_STATUSES,
    TERMINAL_STATUSES,
    OrderType,
)
from restaurant_order_service.models.request_models import CreateTableRequest
from restaurant_order_service.models.table_models import (
    OCCUPIABLE_STATUSES,
    DiningTable,
    TableStatus,
)
from restaurant_order_service.observability import traced
from restaurant_order_service.repositories.order_repositories import OrderRepository
from restaurant_order_service.repositories.table_repository import TableRepository
from restaurant_order_service.services.clock import Clock, utc_now
from restaurant_order_service.services.interfaces import ReleaseOutcome, TableOccupancy

logger = logging.getLogger(__name__)

MAX_AVAILABLE_SUGGESTIONS = 5


class TableRegistry(TableOccupancy):
    """Owns dining table state.

    Occupancy writes are conditional on the status stored at write time, so
    a concurrent occupy or release is never overwritten with a stale view.
    Orders are only read here, to decide whether a table can be freed.
    """

    def __init__(
        self,
        table_repository: TableRepository,
        order_repository: OrderRepository,
        clock: Clock = utc_now,
    ) -> None:
        """Initialize the TableRegistry.

        Args:
            table_repository: Repository for dining tables
            order_repository: Repository for orders (read-only here)
            clock: Time source for creation timestamps
        """
        self.table_repository = table_repository
        self.order_repository = order_repository
        self.clock = clock

    def _require_table(self, table_id: str) -> DiningTable:
        table = self.table_repository.get_table(table_id)
        if table is None:
            raise NotFoundError("Table", table_id)
        return table

    async def find_table(self, table_id: str) -> DiningTable | None:
        return self.table_repository.get_table(table_id)

    @traced("tables.get")
    async def get_table(self, table_id: str) -> DiningTable:
        """Get a table, raising NotFoundError when it does not exist."""
        return self._require_table(table_id)

    @traced("tables.list")
    async def list_tables(
        self, restaurant_id: str, include_inactive: bool = False
    ) -> list[DiningTable]:
        return self.table_repository.list_tables(restaurant_id, include_inactive=include_inactive)

    @traced("tables.find_available")
    async def find_available_tables(
        self, restaurant_id: str, party_size: int | None = None
    ) -> list[DiningTable]:
        """Suggest free tables for a party, smallest fitting table first.

        Args:
            restaurant_id: Restaurant identifier
            party_size: Minimum capacity required, if any

        Returns:
            Up to five AVAILABLE active tables
        """
        tables = [
            table
            for table in self.table_repository.list_tables(restaurant_id)
            if table.status == TableStatus.AVAILABLE
            and (party_size is None or table.capacity >= party_size)
        ]
        tables.sort(key=lambda t: (t.capacity, t.table_number))
        return tables[:MAX_AVAILABLE_SUGGESTIONS]

    @traced("tables.create")
    async def create_table(self, request: CreateTableRequest) -> DiningTable:
        """Register a new dining table.

        Raises:
            TableNumberTakenError: If the restaurant already has a table with this number
        """
        existing = self.table_repository.list_tables(request.restaurant_id, include_inactive=True)
        if any(t.table_number == request.table_number for t in existing):
            raise TableNumberTakenError(request.restaurant_id, request.table_number)

        table = DiningTable(
            table_id=f"tbl_{uuid.uuid4().hex[:12]}",
            restaurant_id=request.restaurant_id,
            table_number=request.table_number,
            capacity=request.capacity,
            location=request.location,
            created_at=self.clock(),
        )
        self.table_repository.create_table(table)
        logger.info(f"Created table {table.table_number} ({table.table_id})")
        return table

    @traced("tables.remove")
    async def remove_table(self, table_id: str) -> bool:
        """Remove a table, soft-deactivating it when orders reference it.

        Returns:
            True if the table was deleted, False if it was deactivated

        Raises:
            TableStateError: If the table is occupied or reserved
        """
        table = self._require_table(table_id)
        if table.status in (TableStatus.OCCUPIED, TableStatus.RESERVED):
            raise TableStateError(
                table_id, table.status, f"Cannot delete a {table.status.value.lower()} table"
            )

        if self.order_repository.list_orders_for_table(table_id):
            table.is_active = False
            self.table_repository.save_table(table)
            logger.info(f"Deactivated table {table_id}; it has order history")
            return False

        self.table_repository.delete_table(table_id)
        logger.info(f"Deleted table {table_id}")
        return True

    @traced("tables.validate_for_order")
    async def validate_table_for_order(
        self, table_id: str | None, order_type: OrderType
    ) -> DiningTable | None:
        if order_type != OrderType.DINE_IN:
            return None
        if not table_id:
            raise InvalidOrderTypeError(order_type, table_id, "DINE_IN orders require a table")

        table = self._require_table(table_id)
        if not table.is_occupiable:
            raise TableUnavailableError(
                table.table_id, table.table_number, table.status, table.is_active
            )
        return table

    @traced("tables.auto_occupy")
    async def auto_occupy_table(self, table_id: str, order_id: str) -> DiningTable:
        """Mark a table OCCUPIED for an order.

        Several orders may share an OCCUPIED table (split bills), so that
        case is not an error.

        Raises:
            NotFoundError: If the table does not exist
            TableUnavailableError: If the table can no longer be occupied
        """
        try:
            table = self.table_repository.update_status(
                table_id, TableStatus.OCCUPIED, expected_statuses=OCCUPIABLE_STATUSES
            )
        except ConditionalWriteError:
            table = self._require_table(table_id)
            if table.status == TableStatus.OCCUPIED:
                logger.info(f"Table {table.table_number} already occupied, allowing order {order_id}")
                return table
            raise TableUnavailableError(
                table.table_id, table.table_number, table.status, table.is_active
            ) from None

        logger.info(f"Table {table.table_number} occupied by order {order_id}")
        return table

    def _open_orders_on_table(self, table_id: str, exclude_order_id: str | None = None) -> list[str]:
        return [
            order.order_id
            for order in self.order_repository.list_orders_for_table(table_id)
            if order.order_id != exclude_order_id and order.status not in TERMINAL_STATUSES
        ]

    @traced("tables.auto_release")
    async def auto_release_table(self, table_id: str, order_id: str) -> ReleaseOutcome:
        """Free a table once no other non-terminal order references it.

        A table that stays OCCUPIED because other orders remain is reported
        through the outcome, not as an error.
        """
        table = self._require_table(table_id)
        remaining = self._open_orders_on_table(table_id, exclude_order_id=order_id)

        if remaining:
            logger.info(
                f"Table {table.table_number} still has {len(remaining)} open order(s) "
                f"after order {order_id}"
            )
            return ReleaseOutcome(table=table, released=False, remaining_order_ids=remaining)

        if table.status != TableStatus.AVAILABLE:
            table = self.table_repository.update_status(table_id, TableStatus.AVAILABLE)
            logger.info(f"Table {table.table_number} released after order {order_id}")

        return ReleaseOutcome(table=table, released=True)

    @traced("tables.occupy")
    async def occupy_table(self, table_id: str) -> DiningTable:
        """Manually occupy a table, e.g. for a walk-in without an order yet.

        Raises:
            TableStateError: If the table is inactive or not AVAILABLE/RESERVED
        """
        table = self._require_table(table_id)
        if not table.is_occupiable:
            raise TableStateError(
                table_id,
                table.status,
                f"Table is currently {table.status.value}. "
                "Only active available/reserved tables can be manually occupied.",
            )

        try:
            return self.table_repository.update_status(
                table_id, TableStatus.OCCUPIED, expected_statuses=OCCUPIABLE_STATUSES
            )
        except ConditionalWriteError:
            current = self._require_table(table_id)
            raise TableStateError(
                table_id, current.status, f"Table changed to {current.status.value} concurrently"
            ) from None

    @traced("tables.release")
    async def release_table(self, table_id: str) -> DiningTable:
        """Manually release an occupied table.

        Raises:
            TableStateError: If the table is not OCCUPIED or still has active orders
        """
        table = self._require_table(table_id)
        if table.status != TableStatus.OCCUPIED:
            raise TableStateError(table_id, table.status, "Only occupied tables can be released")

        active = [
            order
            for order in self.order_repository.list_orders_for_table(table_id)
            if order.status in ACTIVE_STATUSES
        ]
        if active:
            raise TableStateError(
                table_id,
                table.status,
                "Table has active orders. Complete or cancel orders first.",
            )

        try:
            return self.table_repository.update_status(
                table_id, TableStatus.AVAILABLE, expected_statuses=(TableStatus.OCCUPIED,)
            )
        except ConditionalWriteError:
            current = self._require_table(table_id)
            raise TableStateError(
                table_id, current.status, f"Table changed to {current.status.value} concurrently"
            ) from None
