"""Payment ledger: one settlement record per order."""

import logging
import uuid
from datetime import datetime
from decimal import Decimal

from restaurant_order_service.exceptions import (
    AmountMismatchError,
    ConditionalWriteError,
    InvalidPaymentStateError,
    NotFoundError,
    OrderClosedError,
    PaymentExistsError,
)
from restaurant_order_service.models.money import amounts_match, to_amount
from restaurant_order_service.models.order_models import Order, OrderStatus
from restaurant_order_service.models.payment_models import (
    Payment,
    PaymentMethod,
    PaymentStatus,
)
from restaurant_order_service.models.request_models import (
    CreatePaymentRequest,
    UpdatePaymentRequest,
)
from restaurant_order_service.observability import traced
from restaurant_order_service.observability.metrics import record_payment_processed
from restaurant_order_service.repositories.order_repositories import OrderRepository
from restaurant_order_service.repositories.payment_repository import PaymentRepository
from restaurant_order_service.services.clock import Clock, utc_now
from restaurant_order_service.services.interfaces import OrderStatusUpdater, PaymentProcessor

logger = logging.getLogger(__name__)

# Settled payments only change through a refund.
IMMUTABLE_PAYMENT_STATUSES = frozenset({PaymentStatus.COMPLETED, PaymentStatus.REFUNDED})


class PaymentLedger(PaymentProcessor):
    """Creates, settles and refunds payments.

    Orders are read directly from the order repository; every write to an
    order goes through the attached ``OrderStatusUpdater``.
    """

    def __init__(
        self,
        payment_repository: PaymentRepository,
        order_repository: OrderRepository,
        clock: Clock = utc_now,
        status_updater: OrderStatusUpdater | None = None,
    ) -> None:
        """Initialize the PaymentLedger.

        Args:
            payment_repository: Repository for payments
            order_repository: Repository for orders (read-only here)
            clock: Time source for payment timestamps and numbers
            status_updater: Call-back into order state; may be attached later
        """
        self.payment_repository = payment_repository
        self.order_repository = order_repository
        self.clock = clock
        self.status_updater = status_updater

    def attach_status_updater(self, status_updater: OrderStatusUpdater) -> None:
        """Attach the order call-back once the coordinator exists."""
        self.status_updater = status_updater

    @property
    def _orders(self) -> OrderStatusUpdater:
        if self.status_updater is None:
            raise RuntimeError("PaymentLedger has no OrderStatusUpdater attached")
        return self.status_updater

    def _require_order(self, order_id: str) -> Order:
        order = self.order_repository.get_order(order_id)
        if order is None:
            raise NotFoundError("Order", order_id)
        return order

    def _require_payment(self, payment_id: str) -> Payment:
        payment = self.payment_repository.get_payment(payment_id)
        if payment is None:
            raise NotFoundError("Payment", payment_id)
        return payment

    def _new_payment(
        self,
        order: Order,
        amount: Decimal,
        method: PaymentMethod,
        status: PaymentStatus,
        transaction_id: str | None,
        notes: str | None,
        now: datetime,
    ) -> Payment:
        return Payment(
            payment_id=f"pay_{uuid.uuid4().hex[:12]}",
            order_id=order.order_id,
            restaurant_id=order.restaurant_id,
            payment_number=f"PAY-{now:%Y%m%d}-{uuid.uuid4().hex[:6].upper()}",
            amount=to_amount(amount),
            method=method,
            status=status,
            transaction_id=transaction_id,
            notes=notes,
            created_at=now,
            paid_at=now if status == PaymentStatus.COMPLETED else None,
        )

    @traced("payments.create")
    async def create_payment(self, request: CreatePaymentRequest) -> Payment:
        """Record a payment for an order with a caller-supplied amount.

        Raises:
            NotFoundError: If the order does not exist
            PaymentExistsError: If the order already has a payment
            AmountMismatchError: If the amount differs from the order total by more than a cent
        """
        order = self._require_order(request.order_id)

        existing = self.payment_repository.get_payment_for_order(order.order_id)
        if existing is not None:
            raise PaymentExistsError(order.order_id, existing.payment_id)

        if not amounts_match(request.amount, order.total):
            raise AmountMismatchError(order.order_id, to_amount(request.amount), order.total)

        payment = self._new_payment(
            order,
            request.amount,
            request.method,
            request.status,
            request.transaction_id,
            request.notes,
            self.clock(),
        )

        try:
            self.payment_repository.create_payment(payment)
        except ConditionalWriteError:
            winner = self.payment_repository.get_payment_for_order(order.order_id)
            raise PaymentExistsError(
                order.order_id, winner.payment_id if winner else None
            ) from None

        if payment.status == PaymentStatus.COMPLETED:
            record_payment_processed(payment.method.value)

        await self._orders.link_payment(order.order_id, payment.payment_id)
        logger.info(f"Created payment {payment.payment_number} for order {order.order_id}")
        return payment

    @traced("payments.process")
    async def process_payment(
        self,
        order_id: str,
        method: PaymentMethod,
        transaction_id: str | None = None,
        notes: str | None = None,
    ) -> Payment:
        """Settle an order for its current total.

        Idempotent: the order's payment is created COMPLETED when missing,
        otherwise the existing record is completed again at the order's
        current total. The order is moved to PAID when it is not PAID already.

        Raises:
            NotFoundError: If the order does not exist
            OrderClosedError: If the order is cancelled
        """
        order = self._require_order(order_id)
        if order.status == OrderStatus.CANCELLED:
            raise OrderClosedError(order_id, order.status, "pay")

        now = self.clock()
        payment = self.payment_repository.get_payment_for_order(order_id)

        if payment is None:
            payment = self._new_payment(
                order, order.total, method, PaymentStatus.COMPLETED, transaction_id, notes, now
            )
            try:
                self.payment_repository.create_payment(payment)
                payment_created = True
            except ConditionalWriteError:
                logger.warning(f"Concurrent payment creation for order {order_id}, completing it")
                payment = self.payment_repository.get_payment_for_order(order_id)
                if payment is None:
                    raise
                payment_created = False
        else:
            payment_created = False

        if not payment_created:
            payment.method = method
            payment.amount = order.total
            payment.transaction_id = transaction_id or payment.transaction_id
            payment.notes = notes or payment.notes
            payment.status = PaymentStatus.COMPLETED
            payment.paid_at = now
            self.payment_repository.save_payment(payment)

        record_payment_processed(method.value)

        if order.status != OrderStatus.PAID:
            await self._orders.force_status(order_id, OrderStatus.PAID)
        if order.payment_id != payment.payment_id:
            await self._orders.link_payment(order_id, payment.payment_id)

        logger.info(f"Processed payment {payment.payment_number} for order {order_id}")
        return payment

    async def complete_pending_payment(self, order_id: str) -> Payment | None:
        payment = self.payment_repository.get_payment_for_order(order_id)
        if payment is None or payment.status != PaymentStatus.PENDING:
            return None

        order = self._require_order(order_id)
        if not amounts_match(payment.amount, order.total):
            logger.warning(
                f"Pending payment {payment.payment_id} of {payment.amount} no longer matches "
                f"order {order_id} total {order.total}; not completing it"
            )
            return None

        payment.status = PaymentStatus.COMPLETED
        payment.paid_at = self.clock()
        self.payment_repository.save_payment(payment)
        record_payment_processed(payment.method.value)

        logger.info(f"Completed pending payment {payment.payment_id} for order {order_id}")
        return payment

    @traced("payments.update")
    async def update_payment(self, payment_id: str, request: UpdatePaymentRequest) -> Payment:
        """Edit a payment that has not been settled.

        Only a refund marks a payment REFUNDED, and it may only be marked
        COMPLETED while its amount still matches the order total.

        Raises:
            InvalidPaymentStateError: If the payment is settled or REFUNDED is requested
            AmountMismatchError: If COMPLETED is requested for a stale amount
        """
        payment = self._require_payment(payment_id)
        if payment.status in IMMUTABLE_PAYMENT_STATUSES:
            raise InvalidPaymentStateError(payment_id, payment.status, "update")
        if request.status == PaymentStatus.REFUNDED:
            raise InvalidPaymentStateError(payment_id, payment.status, "refund")
        if request.status == PaymentStatus.COMPLETED:
            order = self._require_order(payment.order_id)
            if not amounts_match(payment.amount, order.total):
                raise AmountMismatchError(order.order_id, payment.amount, order.total)

        if request.transaction_id is not None:
            payment.transaction_id = request.transaction_id
        if request.notes is not None:
            payment.notes = request.notes
        if request.status is not None:
            payment.status = request.status
            if request.status == PaymentStatus.COMPLETED:
                payment.paid_at = self.clock()
                record_payment_processed(payment.method.value)

        return self.payment_repository.save_payment(payment)

    @traced("payments.refund")
    async def refund_payment(self, payment_id: str, notes: str | None = None) -> Payment:
        """Refund a completed payment and cancel its order.

        Raises:
            InvalidPaymentStateError: If the payment is not COMPLETED
        """
        payment = self._require_payment(payment_id)
        if payment.status != PaymentStatus.COMPLETED:
            raise InvalidPaymentStateError(payment_id, payment.status, "refund")

        payment.status = PaymentStatus.REFUNDED
        payment.notes = notes or payment.notes
        self.payment_repository.save_payment(payment)

        await self._orders.force_status(payment.order_id, OrderStatus.CANCELLED)

        logger.info(f"Refunded payment {payment_id}; order {payment.order_id} cancelled")
        return payment

    @traced("payments.get")
    async def get_payment(self, payment_id: str) -> Payment:
        return self._require_payment(payment_id)

    @traced("payments.get_for_order")
    async def get_payment_for_order(self, order_id: str) -> Payment:
        """Get the order's payment, raising NotFoundError when it has none."""
        payment = self.payment_repository.get_payment_for_order(order_id)
        if payment is None:
            raise NotFoundError("Payment", order_id)
        return payment

    async def find_payment_for_order(self, order_id: str) -> Payment | None:
        return self.payment_repository.get_payment_for_order(order_id)

    @traced("payments.list")
    async def list_payments(
        self, restaurant_id: str, status: PaymentStatus | None = None
    ) -> list[Payment]:
        return self.payment_repository.list_payments(restaurant_id, status=status)
