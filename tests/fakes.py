"""In-memory stand-ins for the DynamoDB repositories and HTTP collaborators.

They expose the same methods as the real repositories and reject
conditional writes the same way (ConditionalWriteError), so services can be
exercised end to end without DynamoDB.
"""

import asyncio
from collections.abc import Iterable
from datetime import UTC, datetime

from restaurant_order_service.exceptions import ConditionalWriteError, StorageError
from restaurant_order_service.models.menu_models import MenuItem
from restaurant_order_service.models.order_models import Order, OrderItem, OrderStatus, OrderType
from restaurant_order_service.models.payment_models import Payment, PaymentStatus
from restaurant_order_service.models.table_models import DiningTable, TableStatus
from restaurant_order_service.repositories.order_repositories import order_number_sort_key

CONDITION_FAILED = "ConditionalCheckFailedException"


class FixedClock:
    """Clock returning a settable instant."""

    def __init__(self, now: datetime | None = None) -> None:
        self.now = now or datetime(2025, 1, 15, 12, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now


def _sort_key(record: Order | OrderItem | Payment) -> str:
    return record.created_at.isoformat() if record.created_at else ""


class FakeOrderRepository:
    """Orders plus order number claims.

    ``stale_highest_reads`` makes the next N highest-number queries answer as
    if no number had been issued yet, which is what a request sees when a
    concurrent create commits between its read and its write.
    """

    def __init__(self, stale_highest_reads: int = 0) -> None:
        self.orders: dict[str, Order] = {}
        self.claims: dict[tuple[str, str], str] = {}
        self.stale_highest_reads = stale_highest_reads
        self.failing_saves = 0
        self.save_calls = 0

    def claim(self, restaurant_id: str, order_number: str, order_id: str = "ord_other") -> None:
        """Record a number issued by another writer."""
        self.claims[(restaurant_id, order_number)] = order_id

    def get_order(self, order_id: str) -> Order | None:
        order = self.orders.get(order_id)
        return order.model_copy(deep=True) if order else None

    def find_highest_order_number(self, restaurant_id: str, prefix: str) -> str | None:
        if self.stale_highest_reads > 0:
            self.stale_highest_reads -= 1
            return None
        numbers = [
            number
            for (rid, number) in self.claims
            if rid == restaurant_id and number.startswith(prefix)
        ]
        return max(numbers, key=order_number_sort_key) if numbers else None

    def create_order(self, order: Order) -> Order:
        key = (order.restaurant_id, order.order_number)
        if key in self.claims:
            raise ConditionalWriteError("claim_order_number", CONDITION_FAILED)
        self.claims[key] = order.order_id
        self.orders[order.order_id] = order.model_copy(deep=True)
        return order

    def save_order(self, order: Order) -> Order:
        self.save_calls += 1
        if self.failing_saves > 0:
            self.failing_saves -= 1
            raise StorageError("save_order", "ProvisionedThroughputExceededException")
        if order.order_id not in self.orders:
            raise ConditionalWriteError("save_order", CONDITION_FAILED)
        self.orders[order.order_id] = order.model_copy(deep=True)
        return order

    def delete_order(self, order_id: str) -> None:
        self.orders.pop(order_id, None)

    def list_orders(
        self,
        restaurant_id: str,
        status: OrderStatus | None = None,
        order_type: OrderType | None = None,
        table_id: str | None = None,
        waiter_id: str | None = None,
    ) -> list[Order]:
        orders = [
            o.model_copy(deep=True)
            for o in self.orders.values()
            if o.restaurant_id == restaurant_id
            and (status is None or o.status == status)
            and (order_type is None or o.order_type == order_type)
            and (table_id is None or o.table_id == table_id)
            and (waiter_id is None or o.waiter_id == waiter_id)
        ]
        return sorted(orders, key=_sort_key, reverse=True)

    def list_orders_for_table(self, table_id: str) -> list[Order]:
        return [o.model_copy(deep=True) for o in self.orders.values() if o.table_id == table_id]


class FakeOrderItemRepository:
    def __init__(self) -> None:
        self.items: dict[tuple[str, str], OrderItem] = {}

    def list_items(self, order_id: str) -> list[OrderItem]:
        items = [i.model_copy(deep=True) for (oid, _), i in self.items.items() if oid == order_id]
        return sorted(items, key=_sort_key)

    def get_item(self, order_id: str, item_id: str) -> OrderItem | None:
        item = self.items.get((order_id, item_id))
        return item.model_copy(deep=True) if item else None

    def save_item(self, item: OrderItem) -> OrderItem:
        self.items[(item.order_id, item.item_id)] = item.model_copy(deep=True)
        return item

    def delete_item(self, order_id: str, item_id: str) -> None:
        self.items.pop((order_id, item_id), None)

    def count_items(self, order_id: str) -> int:
        return sum(1 for (oid, _) in self.items if oid == order_id)

    def delete_items_for_order(self, order_id: str) -> int:
        keys = [key for key in self.items if key[0] == order_id]
        for key in keys:
            del self.items[key]
        return len(keys)


class FakeTableRepository:
    def __init__(self) -> None:
        self.tables: dict[str, DiningTable] = {}

    def add(self, table: DiningTable) -> DiningTable:
        self.tables[table.table_id] = table.model_copy(deep=True)
        return table

    def get_table(self, table_id: str) -> DiningTable | None:
        table = self.tables.get(table_id)
        return table.model_copy(deep=True) if table else None

    def create_table(self, table: DiningTable) -> DiningTable:
        if table.table_id in self.tables:
            raise ConditionalWriteError("create_table", CONDITION_FAILED)
        return self.add(table)

    def save_table(self, table: DiningTable) -> DiningTable:
        if table.table_id not in self.tables:
            raise ConditionalWriteError("save_table", CONDITION_FAILED)
        return self.add(table)

    def update_status(
        self,
        table_id: str,
        status: TableStatus,
        expected_statuses: Iterable[TableStatus] | None = None,
    ) -> DiningTable:
        table = self.tables.get(table_id)
        if table is None:
            raise ConditionalWriteError("update_table_status", CONDITION_FAILED)
        if expected_statuses and table.status not in tuple(expected_statuses):
            raise ConditionalWriteError("update_table_status", CONDITION_FAILED)
        table.status = status
        return table.model_copy(deep=True)

    def list_tables(self, restaurant_id: str, include_inactive: bool = False) -> list[DiningTable]:
        tables = [
            t.model_copy(deep=True)
            for t in self.tables.values()
            if t.restaurant_id == restaurant_id and (include_inactive or t.is_active)
        ]
        return sorted(tables, key=lambda t: t.table_number)

    def delete_table(self, table_id: str) -> None:
        self.tables.pop(table_id, None)


class FakePaymentRepository:
    def __init__(self) -> None:
        self.payments: dict[str, Payment] = {}

    def get_payment_for_order(self, order_id: str) -> Payment | None:
        payment = self.payments.get(order_id)
        return payment.model_copy(deep=True) if payment else None

    def get_payment(self, payment_id: str) -> Payment | None:
        for payment in self.payments.values():
            if payment.payment_id == payment_id:
                return payment.model_copy(deep=True)
        return None

    def create_payment(self, payment: Payment) -> Payment:
        if payment.order_id in self.payments:
            raise ConditionalWriteError("create_payment", CONDITION_FAILED)
        self.payments[payment.order_id] = payment.model_copy(deep=True)
        return payment

    def save_payment(self, payment: Payment) -> Payment:
        if payment.order_id not in self.payments:
            raise ConditionalWriteError("save_payment", CONDITION_FAILED)
        self.payments[payment.order_id] = payment.model_copy(deep=True)
        return payment

    def list_payments(self, restaurant_id: str, status: PaymentStatus | None = None) -> list[Payment]:
        payments = [
            p.model_copy(deep=True)
            for p in self.payments.values()
            if p.restaurant_id == restaurant_id and (status is None or p.status == status)
        ]
        return sorted(payments, key=_sort_key, reverse=True)


class FakeMenuCatalog:
    """Menu lookups that yield to the event loop like a real HTTP call."""

    def __init__(self, items: Iterable[MenuItem] = ()) -> None:
        self.items = {item.id: item for item in items}

    async def find_by_id(self, menu_item_id: str) -> MenuItem | None:
        await asyncio.sleep(0)
        return self.items.get(menu_item_id)


class FakeCustomerDirectory:
    def __init__(self) -> None:
        self.calls: list[tuple[str, str, str | None]] = []

    async def find_or_create(
        self, restaurant_id: str, phone: str, name: str | None = None
    ) -> str | None:
        self.calls.append((restaurant_id, phone, name))
        return f"cust_{phone[-4:]}"
