"""Order coordinator: order creation, line items, totals and status transitions."""

import asyncio
import logging
import uuid
from datetime import datetime
from decimal import Decimal

from restaurant_order_service.exceptions import (
    ConditionalWriteError,
    InvalidDiscountError,
    InvalidOrderTypeError,
    ItemUnavailableError,
    LastItemProtectedError,
    MissingFieldError,
    NotFoundError,
    OrderClosedError,
    OrderNumberExhaustedError,
    RecalculationFailedError,
    StorageError,
)
from restaurant_order_service.models.menu_models import MenuItem
from restaurant_order_service.models.money import amounts_match, to_amount
from restaurant_order_service.models.order_models import (
    ACTIVE_STATUSES,
    EDIT_LOCKED_STATUSES,
    FULFILLED_STATUSES,
    TERMINAL_STATUSES,
    Order,
    OrderDetails,
    OrderItem,
    OrderStatus,
    OrderType,
)
from restaurant_order_service.models.payment_models import PaymentMethod
from restaurant_order_service.models.request_models import (
    AddLineItemRequest,
    CreateOrderRequest,
    OrderItemRequest,
    UpdateLineItemRequest,
    UpdateOrderRequest,
)
from restaurant_order_service.observability import traced
from restaurant_order_service.observability.metrics import (
    record_order_created,
    record_order_number_collision,
    record_side_effect_failure,
    record_status_transition,
)
from restaurant_order_service.repositories.order_repositories import (
    OrderItemRepository,
    OrderRepository,
)
from restaurant_order_service.services.clock import Clock, utc_now
from restaurant_order_service.services.customer_directory_client import CustomerDirectoryClient
from restaurant_order_service.services.interfaces import (
    OrderStatusUpdater,
    PaymentProcessor,
    TableOccupancy,
)
from restaurant_order_service.services.menu_catalog_client import MenuCatalogClient
from restaurant_order_service.services.order_state_machine import (
    TABLE_RELEASING_STATUSES,
    validate_transition,
)

logger = logging.getLogger(__name__)

ORDER_NUMBER_ATTEMPTS = 3


class OrderCoordinator(OrderStatusUpdater):
    """Service coordinating the order lifecycle.

    The order record is always written before any table or payment side
    effect. Those side effects are best-effort: a failure is logged and
    counted in metrics but never rolls back or fails the order change.
    """

    def __init__(
        self,
        order_repository: OrderRepository,
        item_repository: OrderItemRepository,
        menu_catalog: MenuCatalogClient,
        table_occupancy: TableOccupancy,
        payment_processor: PaymentProcessor,
        customer_directory: CustomerDirectoryClient | None = None,
        clock: Clock = utc_now,
        default_payment_method: PaymentMethod = PaymentMethod.CASH,
        retry_delay_seconds: float = 0.1,
        max_order_number_attempts: int = ORDER_NUMBER_ATTEMPTS,
    ) -> None:
        """Initialize the OrderCoordinator.

        Args:
            order_repository: Repository for orders and order number claims
            item_repository: Repository for order line items
            menu_catalog: Client for menu item prices and availability
            table_occupancy: Table registry operations
            payment_processor: Payment ledger operations
            customer_directory: Client resolving customers by phone, optional
            clock: Time source for order numbers and timestamps
            default_payment_method: Method used when a status change settles the order
            retry_delay_seconds: Seconds to wait before retrying a taken order number
            max_order_number_attempts: Attempts before giving up on an order number
        """
        self.order_repository = order_repository
        self.item_repository = item_repository
        self.menu_catalog = menu_catalog
        self.table_occupancy = table_occupancy
        self.payment_processor = payment_processor
        self.customer_directory = customer_directory
        self.clock = clock
        self.default_payment_method = default_payment_method
        self.retry_delay_seconds = retry_delay_seconds
        self.max_order_number_attempts = max_order_number_attempts

    def _require_order(self, order_id: str) -> Order:
        order = self.order_repository.get_order(order_id)
        if order is None:
            raise NotFoundError("Order", order_id)
        return order

    def _require_editable(self, order_id: str, action: str) -> Order:
        order = self._require_order(order_id)
        if order.status in EDIT_LOCKED_STATUSES:
            raise OrderClosedError(order_id, order.status, action)
        return order

    async def _compose(self, order: Order) -> OrderDetails:
        items = self.item_repository.list_items(order.order_id)
        table = await self.table_occupancy.find_table(order.table_id) if order.table_id else None
        payment = await self.payment_processor.find_payment_for_order(order.order_id)
        return OrderDetails.compose(order, items, table=table, payment=payment)

    @traced("orders.get")
    async def get_order(self, order_id: str) -> OrderDetails:
        """Get the composed view of an order.

        Raises:
            NotFoundError: If the order does not exist
        """
        return await self._compose(self._require_order(order_id))

    @traced("orders.list")
    async def list_orders(
        self,
        restaurant_id: str,
        status: OrderStatus | None = None,
        order_type: OrderType | None = None,
        table_id: str | None = None,
        waiter_id: str | None = None,
    ) -> list[Order]:
        return self.order_repository.list_orders(
            restaurant_id,
            status=status,
            order_type=order_type,
            table_id=table_id,
            waiter_id=waiter_id,
        )

    @traced("orders.list_active")
    async def list_active_orders(self, restaurant_id: str) -> list[Order]:
        """List orders the kitchen is still working on, oldest first."""
        orders = [
            order
            for order in self.order_repository.list_orders(restaurant_id)
            if order.status in ACTIVE_STATUSES
        ]
        orders.reverse()
        return orders

    @traced("orders.list_for_table")
    async def list_orders_for_table(self, table_id: str) -> list[Order]:
        return self.order_repository.list_orders_for_table(table_id)

    @traced("orders.create")
    async def create_order(self, request: CreateOrderRequest) -> OrderDetails:
        """Create an order with its line items.

        Every menu item is resolved before anything is written, so an
        unknown or unavailable item leaves no partial order behind.

        Args:
            request: Order payload

        Returns:
            OrderDetails: The composed new order

        Raises:
            MissingFieldError: If waiter, restaurant or items are missing
            InvalidOrderTypeError: If the table reference does not match the order type
            TableUnavailableError: If a DINE_IN table cannot take the order
            NotFoundError: If the table or a menu item does not exist
            ItemUnavailableError: If a menu item is unavailable
            OrderNumberExhaustedError: If no unique order number could be claimed
        """
        if not request.waiter_id:
            raise MissingFieldError("waiter_id")
        if not request.restaurant_id:
            raise MissingFieldError("restaurant_id")
        if not request.items:
            raise MissingFieldError("items")

        self._check_order_type(request.order_type, request.table_id)
        await self.table_occupancy.validate_table_for_order(request.table_id, request.order_type)

        customer_id = await self._resolve_customer(request)
        lines = [(line, await self._resolve_unit_price(line)) for line in request.items]

        computed = sum(
            (to_amount(unit_price * line.quantity) for line, unit_price in lines), Decimal("0")
        )
        seed = to_amount(request.total_amount) if request.total_amount is not None else computed

        now = self.clock()
        order = await self._persist_new_order(request, customer_id, seed, now)

        items = [
            self.item_repository.save_item(
                OrderItem(
                    item_id=f"item_{uuid.uuid4().hex[:12]}",
                    order_id=order.order_id,
                    menu_item_id=line.menu_item_id,
                    quantity=line.quantity,
                    unit_price=unit_price,
                    special_instructions=line.special_instructions,
                    created_at=now,
                )
            )
            for line, unit_price in lines
        ]

        subtotal = sum((item.total_price for item in items), Decimal("0"))
        if not amounts_match(subtotal, order.subtotal):
            logger.warning(
                f"Order {order.order_number}: submitted total {order.subtotal} replaced by "
                f"line item sum {subtotal}"
            )
            order.apply_subtotal(subtotal)
            self.order_repository.save_order(order)

        record_order_created(order.order_type.value)
        logger.info(f"Created order {order.order_number} ({order.order_id}) with {len(items)} item(s)")

        if order.is_dine_in:
            try:
                await self.table_occupancy.auto_occupy_table(order.table_id, order.order_id)
            except Exception as e:
                logger.error(
                    f"Failed to occupy table {order.table_id} for order {order.order_id}: {e}"
                )
                record_side_effect_failure("table_occupy")

        return await self.get_order(order.order_id)

    def _check_order_type(self, order_type: OrderType, table_id: str | None) -> None:
        if order_type == OrderType.DINE_IN and not table_id:
            raise InvalidOrderTypeError(order_type, table_id, "DINE_IN orders require a table_id")
        if order_type != OrderType.DINE_IN and table_id:
            raise InvalidOrderTypeError(
                order_type, table_id, f"{order_type.value} orders cannot reference a table"
            )

    async def _resolve_customer(self, request: CreateOrderRequest) -> str | None:
        if not request.customer_phone or self.customer_directory is None:
            return None

        customer_id = await self.customer_directory.find_or_create(
            request.restaurant_id, request.customer_phone, request.customer_name
        )
        if customer_id is None:
            logger.warning(
                f"Customer lookup failed for restaurant {request.restaurant_id}; "
                "creating order without a customer"
            )
        return customer_id

    async def _require_menu_item(self, menu_item_id: str) -> MenuItem:
        menu_item = await self.menu_catalog.find_by_id(menu_item_id)
        if menu_item is None:
            raise NotFoundError("MenuItem", menu_item_id)
        if not menu_item.available:
            raise ItemUnavailableError(menu_item_id, menu_item.name)
        return menu_item

    async def _resolve_unit_price(self, line: OrderItemRequest) -> Decimal:
        menu_item = await self._require_menu_item(line.menu_item_id)
        # The price agreed at the counter wins over the current catalog price
        if line.unit_price is not None:
            return to_amount(line.unit_price)
        return to_amount(menu_item.price)

    def _next_order_number(self, restaurant_id: str, prefix: str) -> str:
        highest = self.order_repository.find_highest_order_number(restaurant_id, prefix)
        sequence = 1
        if highest is not None:
            suffix = highest[len(prefix):]
            if suffix.isdigit():
                sequence = int(suffix) + 1
        return f"{prefix}{sequence:04d}"

    async def _persist_new_order(
        self,
        request: CreateOrderRequest,
        customer_id: str | None,
        seed: Decimal,
        now: datetime,
    ) -> Order:
        prefix = f"ORD-{now:%Y%m%d}-"
        order_id = f"ord_{uuid.uuid4().hex[:12]}"

        for attempt in range(1, self.max_order_number_attempts + 1):
            order = Order(
                order_id=order_id,
                restaurant_id=request.restaurant_id,
                order_number=self._next_order_number(request.restaurant_id, prefix),
                table_id=request.table_id,
                waiter_id=request.waiter_id,
                customer_id=customer_id,
                party_size=request.party_size,
                order_type=request.order_type,
                status=OrderStatus.PENDING,
                subtotal=seed,
                discount=Decimal("0"),
                total=seed,
                notes=request.notes or "",
                created_at=now,
            )
            try:
                return self.order_repository.create_order(order)
            except ConditionalWriteError:
                record_order_number_collision(request.restaurant_id)
                logger.warning(
                    f"Order number {order.order_number} already taken "
                    f"(attempt {attempt}/{self.max_order_number_attempts})"
                )
                if attempt < self.max_order_number_attempts:
                    await asyncio.sleep(self.retry_delay_seconds)

        raise OrderNumberExhaustedError(request.restaurant_id, self.max_order_number_attempts)

    @traced("orders.update")
    async def update_order(self, order_id: str, request: UpdateOrderRequest) -> OrderDetails:
        """Edit notes or party size of an order that is still open for edits."""
        order = self._require_editable(order_id, "update")

        if request.notes is not None:
            order.notes = request.notes
        if request.party_size is not None:
            order.party_size = request.party_size

        self.order_repository.save_order(order)
        return await self._compose(order)

    @traced("orders.apply_discount")
    async def apply_discount(self, order_id: str, discount: Decimal) -> OrderDetails:
        """Apply a discount to an order.

        Raises:
            InvalidDiscountError: If the discount is negative or exceeds the subtotal
        """
        order = self._require_editable(order_id, "discount")

        amount = to_amount(discount)
        if amount < 0 or amount > order.subtotal:
            raise InvalidDiscountError(order_id, amount, order.subtotal)

        order.apply_discount(amount)
        self.order_repository.save_order(order)
        logger.info(f"Applied discount {amount} to order {order_id}")
        return await self._compose(order)

    @traced("orders.delete")
    async def delete_order(self, order_id: str) -> None:
        """Delete an order with its line items.

        Order numbers stay claimed so they are never reissued.

        Raises:
            OrderClosedError: If the order is COMPLETED, SERVED or PAID
        """
        order = self._require_order(order_id)
        if order.status in FULFILLED_STATUSES:
            raise OrderClosedError(order_id, order.status, "delete")

        removed = self.item_repository.delete_items_for_order(order_id)
        self.order_repository.delete_order(order_id)
        logger.info(f"Deleted order {order.order_number} and {removed} line item(s)")

        if order.is_dine_in:
            await self._release_table(order)

    @traced("orders.add_item")
    async def add_line_item(self, order_id: str, request: AddLineItemRequest) -> OrderDetails:
        """Add a line item priced at the current catalog price."""
        self._require_editable(order_id, "add items to")
        menu_item = await self._require_menu_item(request.menu_item_id)

        item = OrderItem(
            item_id=f"item_{uuid.uuid4().hex[:12]}",
            order_id=order_id,
            menu_item_id=request.menu_item_id,
            quantity=request.quantity,
            unit_price=menu_item.price,
            special_instructions=request.special_instructions,
            created_at=self.clock(),
        )
        self.item_repository.save_item(item)

        return await self._compose(self._recalculate_after_item_write(order_id))

    @traced("orders.update_item")
    async def update_line_item(
        self, order_id: str, item_id: str, request: UpdateLineItemRequest
    ) -> OrderDetails:
        """Change quantity or instructions of a line item; the unit price never changes."""
        self._require_editable(order_id, "edit items of")

        item = self.item_repository.get_item(order_id, item_id)
        if item is None:
            raise NotFoundError("OrderItem", item_id)

        if request.quantity is not None:
            item.change_quantity(request.quantity)
        if request.special_instructions is not None:
            item.special_instructions = request.special_instructions
        self.item_repository.save_item(item)

        return await self._compose(self._recalculate_after_item_write(order_id))

    @traced("orders.remove_item")
    async def remove_line_item(self, order_id: str, item_id: str) -> OrderDetails:
        """Remove a line item.

        Raises:
            LastItemProtectedError: If it is the order's only line item
        """
        self._require_editable(order_id, "remove items from")

        if self.item_repository.get_item(order_id, item_id) is None:
            raise NotFoundError("OrderItem", item_id)
        if self.item_repository.count_items(order_id) <= 1:
            raise LastItemProtectedError(order_id, item_id)

        self.item_repository.delete_item(order_id, item_id)

        return await self._compose(self._recalculate_after_item_write(order_id))

    def _recalculate_totals(self, order_id: str) -> Order:
        order = self._require_order(order_id)
        items = self.item_repository.list_items(order_id)
        order.apply_subtotal(sum((item.total_price for item in items), Decimal("0")))
        return self.order_repository.save_order(order)

    def _recalculate_after_item_write(self, order_id: str) -> Order:
        try:
            return self._recalculate_totals(order_id)
        except StorageError as e:
            logger.error(f"Line item of order {order_id} saved but totals not recalculated: {e}")
            raise RecalculationFailedError(order_id) from e

    @traced("orders.recalculate")
    async def recalculate(self, order_id: str) -> OrderDetails:
        """Re-sum an order's totals from its line items.

        Always a full re-sum, so calling it again repairs an order left
        inconsistent by an earlier failure.
        """
        return await self._compose(self._recalculate_totals(order_id))

    @traced("orders.update_status")
    async def update_order_status(self, order_id: str, status: OrderStatus) -> OrderDetails:
        """Move an order along the lifecycle.

        The order write is committed first. Payment sync (on PAID) and table
        release (on COMPLETED, CANCELLED, PAID) follow as best-effort side
        effects.

        Raises:
            OrderClosedError: If the order is cancelled
            InvalidTransitionError: If the transition is not allowed
        """
        order = self._require_order(order_id)
        validate_transition(order, status)

        previous = order.status
        order.status = status
        if status == OrderStatus.COMPLETED:
            order.completed_at = self.clock()

        self.order_repository.save_order(order)
        record_status_transition(previous.value, status.value)
        logger.info(f"Order {order.order_number} moved from {previous.value} to {status.value}")

        if status == OrderStatus.PAID:
            await self._sync_payment(order)

        if status in TABLE_RELEASING_STATUSES and order.is_dine_in:
            await self._release_table(order)

        return await self.get_order(order_id)

    async def _sync_payment(self, order: Order) -> None:
        try:
            await self.payment_processor.process_payment(
                order.order_id,
                self.default_payment_method,
                notes=f"Settled when order {order.order_number} was marked PAID",
            )
            return
        except Exception as e:
            logger.error(f"Payment processing failed for order {order.order_id}: {e}")

        try:
            payment = await self.payment_processor.complete_pending_payment(order.order_id)
        except Exception as e:
            logger.error(f"Completing pending payment failed for order {order.order_id}: {e}")
            payment = None

        if payment is None:
            logger.error(f"Order {order.order_id} is PAID but its payment could not be reconciled")
            record_side_effect_failure("payment")

    async def _release_table(self, order: Order) -> None:
        try:
            outcome = await self.table_occupancy.auto_release_table(order.table_id, order.order_id)
        except Exception as e:
            logger.error(f"Failed to release table {order.table_id} for order {order.order_id}: {e}")
            record_side_effect_failure("table_release")
            return

        if not outcome.released:
            logger.info(
                f"Table {order.table_id} kept occupied by orders {outcome.remaining_order_ids}"
            )

    async def force_status(self, order_id: str, status: OrderStatus) -> Order:
        order = self._require_order(order_id)
        if order.status == status:
            return order

        previous = order.status
        order.status = status
        if status in (OrderStatus.COMPLETED, OrderStatus.PAID) and order.completed_at is None:
            order.completed_at = self.clock()

        self.order_repository.save_order(order)
        record_status_transition(previous.value, status.value)
        logger.info(f"Order {order.order_number} forced from {previous.value} to {status.value}")

        if status in TERMINAL_STATUSES and order.is_dine_in:
            await self._release_table(order)
        return order

    async def link_payment(self, order_id: str, payment_id: str) -> Order:
        order = self._require_order(order_id)
        if order.payment_id != payment_id:
            order.payment_id = payment_id
            self.order_repository.save_order(order)
        return order
