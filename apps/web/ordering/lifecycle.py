"""
Order lifecycle controller - moves a session from cart to paid order.

States:
    NO_ORDER -> PLACED (unserved, unpaid) -> SERVED (unpaid) -> paid

Paid is terminal and collapses straight back to NO_ORDER: the session
forgets the order reference, its cached status, and the cart.

The backend is the source of truth for serving and payment flags. The
session only caches them, and reconciles against the backend on load and
before payment.
"""

import logging
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from datetime import datetime

from django.core.cache import cache
from django.utils import timezone

from pydantic import ValidationError as PydanticValidationError
from tableside_schemas import (
    LifecycleState,
    NewOrder,
    Order,
    OrderLine,
    OrderStatus,
    OrderUpdate,
    StatusReport,
    TableUpdate,
)

from apps.web.backend import BackendError, RestaurantBackend
from apps.web.backend.exceptions import BackendAPIError
from apps.web.ordering.cart import Cart
from apps.web.ordering.exceptions import (
    PreconditionError,
    RemoteError,
    ValidationError,
)
from apps.web.ordering.poller import StatusPoller, UpdateCallback
from apps.web.ordering.session_store import (
    CURRENT_ORDER_KEY,
    CURRENT_ORDER_TTL,
    ORDER_STATUS_KEY,
    ORDER_STATUS_TTL,
    SessionStore,
)

logger = logging.getLogger(__name__)

# Upper bound on how long a crashed submission can keep the guard held
IN_FLIGHT_TIMEOUT = 60


def latest_order(orders: list[Order]) -> Order | None:
    """Most recent order by date then time (YYYY-MM-DD and HH:MM sort as text)."""
    if not orders:
        return None
    return max(orders, key=lambda o: (o.date, o.time))


def _remote_error(
    message: str, error: BackendError, order_id: str | None
) -> RemoteError:
    status_code = error.status_code if isinstance(error, BackendAPIError) else None
    return RemoteError(f"{message}: {error.message}", order_id, status_code)


class OrderLifecycleController:
    """
    Coordinates the cart, the session's order reference and the backend.

    One controller serves one session. It owns that session's Cart and its
    StatusPoller.

    Mutating calls (place, add items, pay) are guarded through the Django
    cache, so only one is in flight per owner at a time even when every
    request builds its own controller. The owner is normally the customer
    id; without one, controllers sharing the same store share the guard.
    """

    def __init__(
        self,
        backend: RestaurantBackend,
        store: SessionStore,
        cart: Cart | None = None,
        clock: Callable[[], datetime] = timezone.now,
        owner: str | None = None,
    ) -> None:
        self.backend = backend
        self.store = store
        self.cart = cart if cart is not None else Cart(store)
        self.poller = StatusPoller(self.refresh_status)
        self._clock = clock
        guard = owner or f"store-{id(store)}"
        self._in_flight_key = f"ordering:in-flight:{guard}"
        self.last_report: StatusReport | None = None

    # =========================================================================
    # Session state
    # =========================================================================

    @property
    def order_id(self) -> str | None:
        """The session's open order reference, if any."""
        value = self.store.load(CURRENT_ORDER_KEY)
        return str(value) if value else None

    @property
    def status(self) -> OrderStatus | None:
        """Last known status of the open order (cached, not authoritative)."""
        raw = self.store.load(ORDER_STATUS_KEY)
        if raw is None:
            return None
        try:
            return OrderStatus.model_validate(raw)
        except PydanticValidationError:
            logger.warning("Ignoring unreadable cached order status")
            return None

    @property
    def state(self) -> LifecycleState:
        if self.order_id is None:
            return LifecycleState.NO_ORDER
        status = self.status
        if status is not None and status.is_served:
            return LifecycleState.SERVED
        return LifecycleState.PLACED

    def _remember(self, order_id: str, status: OrderStatus) -> None:
        self.store.save(CURRENT_ORDER_KEY, order_id, CURRENT_ORDER_TTL)
        self._cache_status(status)

    def _cache_status(self, status: OrderStatus) -> None:
        self.store.save(ORDER_STATUS_KEY, status.model_dump(), ORDER_STATUS_TTL)

    def _collapse(self) -> None:
        """Paid: forget the order, its status and the cart."""
        self.store.clear(CURRENT_ORDER_KEY)
        self.store.clear(ORDER_STATUS_KEY)
        self.cart.clear()

    def _require_order_id(self, order_id: str | None) -> str:
        order_id = order_id or self.order_id
        if not order_id:
            raise ValidationError("No open order for this session")
        return order_id

    @asynccontextmanager
    async def _exclusive(self, action: str) -> AsyncIterator[None]:
        """Reject a second mutating call while one is pending."""
        if not cache.add(self._in_flight_key, action, timeout=IN_FLIGHT_TIMEOUT):
            pending = cache.get(self._in_flight_key, "another request")
            raise PreconditionError(
                f"Cannot {action} while '{pending}' is still in progress"
            )
        try:
            yield
        finally:
            cache.delete(self._in_flight_key)

    # =========================================================================
    # Transitions
    # =========================================================================

    async def place_order(self, table_no: str, customer_id: str) -> Order:
        """
        Submit the cart as a new order for table_no.

        Raises:
            ValidationError: Empty cart, blank table number or customer id.
                The backend is not contacted.
            PreconditionError: The session already has an open order, or
                another submission is in flight.
            RemoteError: The backend rejected or failed the request. The
                cart is kept for a retry.
        """
        table_no = str(table_no or "").strip()
        customer_id = str(customer_id or "").strip()

        if self.cart.is_empty():
            raise ValidationError("Cart is empty")
        if not table_no:
            raise ValidationError("Table number is required")
        if not customer_id:
            raise ValidationError("Customer ID is required")

        async with self._exclusive("place order"):
            # Checked under the guard so a concurrent placement that just
            # finished is seen
            existing = self.order_id
            if existing:
                raise PreconditionError(
                    "An order is already open for this table; "
                    "add items to it instead",
                    order_id=existing,
                )

            now = timezone.localtime(self._clock())
            new_order = NewOrder(
                customer_id=customer_id,
                table_no=table_no,
                lines=[OrderLine.from_cart_item(item) for item in self.cart],
                amount=self.cart.total(),
                date=now.strftime("%Y-%m-%d"),
                time=now.strftime("%H:%M"),
            )

            try:
                order = await self.backend.create_order(new_order)
            except BackendError as e:
                logger.error("Placing order for table %s failed: %s", table_no, e)
                raise _remote_error("Could not place order", e, None) from e

            self._remember(order.order_id, OrderStatus())
            self.cart.clear()

        logger.info(
            "Order %s placed: table=%s amount=%s",
            order.order_id,
            table_no,
            new_order.amount,
        )
        return order

    async def add_items_to_open_order(self, order_id: str | None = None) -> Order:
        """
        Append the cart to the open order.

        New items restart preparation, so the order goes back to unserved.

        Raises:
            ValidationError: No open order, or the cart is empty.
            PreconditionError: Another submission is in flight.
            RemoteError: The backend call failed; the cart is kept.
        """
        order_id = self._require_order_id(order_id)
        if self.cart.is_empty():
            raise ValidationError("No items to add", order_id=order_id)

        async with self._exclusive("add items"):
            lines = [OrderLine.from_cart_item(item) for item in self.cart]
            try:
                order = await self.backend.update_order(
                    order_id,
                    OrderUpdate(lines=lines, is_served=False),
                )
            except BackendError as e:
                logger.error("Adding items to order %s failed: %s", order_id, e)
                raise _remote_error("Could not add items", e, order_id) from e

            if order_id == self.order_id:
                cached = self.status or OrderStatus()
                self._remember(
                    order_id, cached.model_copy(update={"is_served": False})
                )
            self.cart.clear()

        logger.info("Added %d line(s) to order %s", len(lines), order_id)
        return order

    async def refresh_status(self, order_id: str | None = None) -> StatusReport:
        """
        Fetch the authoritative status of an order.

        Updates the cached status when order_id is the session's order; a
        paid order collapses the session to NO_ORDER.

        Raises:
            ValidationError: No order id given and none in session.
            RemoteError: The backend call failed.
        """
        order_id = self._require_order_id(order_id)

        try:
            order = await self.backend.get_order(order_id)
        except BackendError as e:
            raise _remote_error("Could not check order status", e, order_id) from e

        report = StatusReport(
            order_id=order_id,
            status=order.status,
            amount=order.amount,
            lines=order.lines,
            order=order,
        )
        self.last_report = report

        if order_id == self.order_id:
            if order.is_paid:
                logger.info("Order %s reported paid, clearing session", order_id)
                self._collapse()
            else:
                self._cache_status(order.status)

        return report

    async def process_payment(self, order_id: str | None = None) -> Order:
        """
        Settle the bill for a served order.

        Serving status is checked against the backend first; the payment
        update is only sent for a served order. After payment the table is
        released (best effort) and the session returns to NO_ORDER.

        Raises:
            ValidationError: No open order.
            PreconditionError: The order is not served yet, or another
                submission is in flight.
            RemoteError: The backend call failed; nothing is cleared.
        """
        order_id = self._require_order_id(order_id)

        async with self._exclusive("pay"):
            try:
                order = await self.backend.get_order(order_id)
            except BackendError as e:
                raise _remote_error("Could not load order", e, order_id) from e

            if order.is_paid:
                logger.info("Order %s already paid", order_id)
                self._finish_paid(order_id)
                return order

            if not order.is_served:
                self._cache_status(order.status)
                raise PreconditionError(
                    "Cannot process payment until food is served",
                    order_id=order_id,
                )

            try:
                paid = await self.backend.update_order(
                    order_id, OrderUpdate(is_paid=True)
                )
            except BackendError as e:
                logger.error("Payment for order %s failed: %s", order_id, e)
                raise _remote_error("Payment failed", e, order_id) from e

            await self._release_table(order.table_no, order_id)
            self._finish_paid(order_id)

        logger.info("Order %s paid", order_id)
        return paid

    def _finish_paid(self, order_id: str) -> None:
        if order_id == self.order_id or self.order_id is None:
            self.poller.stop()
            self._collapse()

    async def _release_table(self, table_no: str, order_id: str) -> None:
        """Clear the table's customer/order association; failures are logged."""
        if not table_no:
            return
        try:
            await self.backend.update_table(
                table_no, TableUpdate(customer_id=None, order_id=None)
            )
        except BackendError as e:
            logger.warning(
                "Could not release table %s after paying order %s: %s",
                table_no,
                order_id,
                e,
            )

    # =========================================================================
    # Reconciliation and polling
    # =========================================================================

    async def restore_session(self, customer_id: str | None = None) -> LifecycleState:
        """
        Reconcile the cached order with the backend on session load.

        A stored order that the backend reports paid, or no longer knows, is
        discarded. If the backend cannot be reached the cached state is kept.

        With no stored order and a known customer, the customer's latest
        unpaid order is adopted, so an expired order cookie does not orphan
        an open bill.
        """
        order_id = self.order_id
        if order_id is None:
            if customer_id:
                await self._adopt_open_order(customer_id)
            return self.state

        try:
            await self.refresh_status(order_id)
        except RemoteError as e:
            if e.status_code == 404:
                logger.info("Stored order %s no longer exists, clearing", order_id)
                self.store.clear(CURRENT_ORDER_KEY)
                self.store.clear(ORDER_STATUS_KEY)
                return LifecycleState.NO_ORDER
            logger.warning(
                "Could not reconcile order %s, keeping cached state: %s",
                order_id,
                e,
            )

        return self.state

    async def _adopt_open_order(self, customer_id: str) -> None:
        try:
            orders = await self.backend.list_orders_for_customer(customer_id)
        except BackendError as e:
            logger.warning("Could not look up orders for %s: %s", customer_id, e)
            return

        latest = latest_order(orders)
        if latest is not None and not latest.is_paid:
            logger.info("Adopting open order %s for %s", latest.order_id, customer_id)
            self._remember(latest.order_id, latest.status)

    def start_polling(
        self,
        on_update: UpdateCallback,
        base_interval: float,
        order_id: str | None = None,
    ) -> Callable[[], None]:
        """Poll the open order's status; see StatusPoller.start."""
        order_id = self._require_order_id(order_id)
        return self.poller.start(order_id, on_update, base_interval)

    def stop_polling(self) -> None:
        self.poller.stop()
