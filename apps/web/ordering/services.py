"""
Ordering services - customer session, tables, history and feedback.

These sit around the order lifecycle: they hold no lifecycle state of their
own beyond the customer record kept in the session store.
"""

import logging

from pydantic import ValidationError as PydanticValidationError
from tableside_schemas import (
    Customer,
    Feedback,
    NewCustomer,
    Order,
    Table,
    TableUpdate,
)

from apps.web.backend import (
    BackendAPIError,
    BackendAuthError,
    BackendError,
    BackendNotFoundError,
    RestaurantBackend,
)
from apps.web.ordering.exceptions import RemoteError, ValidationError
from apps.web.ordering.session_store import (
    CURRENT_ORDER_KEY,
    CUSTOMER_KEY,
    CUSTOMER_TTL,
    SessionStore,
    clear_session_state,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Customer session
# =============================================================================


def current_customer(store: SessionStore) -> Customer | None:
    """The customer signed in to this session, if any."""
    raw = store.load(CUSTOMER_KEY)
    if raw is None:
        return None
    try:
        return Customer.model_validate(raw)
    except PydanticValidationError:
        logger.warning("Ignoring unreadable customer in session")
        return None


async def login(
    backend: RestaurantBackend, store: SessionStore, email: str, password: str
) -> Customer:
    """
    Authenticate and remember the customer for CUSTOMER_TTL.

    Raises:
        ValidationError: Email or password missing.
        BackendAuthError: Credentials rejected (left for the caller to map).
        RemoteError: The backend call failed.
    """
    if not email or not password:
        raise ValidationError("Please fill in all fields")

    try:
        customer = await backend.login(email, password)
    except BackendAuthError:
        raise
    except BackendError as e:
        raise RemoteError(f"Login failed: {e.message}") from e

    store.save(CUSTOMER_KEY, customer.model_dump(mode="json"), CUSTOMER_TTL)
    logger.info("Customer %s signed in", customer.customer_id)
    return customer


async def refresh_customer(
    backend: RestaurantBackend, store: SessionStore, customer: Customer
) -> Customer:
    """
    Reload the signed-in customer's record and update the session copy.

    The session copy is returned unchanged when the backend cannot be
    reached.
    """
    try:
        fresh = await backend.get_customer(customer.customer_id)
    except BackendError as e:
        logger.warning(
            "Could not refresh customer %s, using session copy: %s",
            customer.customer_id,
            e,
        )
        return customer

    store.save(CUSTOMER_KEY, fresh.model_dump(mode="json"), CUSTOMER_TTL)
    return fresh


async def register(backend: RestaurantBackend, registration: NewCustomer) -> Customer:
    """
    Create a customer account. The new customer still has to sign in.

    Raises:
        ValidationError: The backend refused the details (e.g. the email is
            already registered).
        RemoteError: The backend call failed.
    """
    try:
        customer = await backend.register_customer(registration)
    except BackendAPIError as e:
        if e.status_code in (400, 409):
            raise ValidationError(f"Registration failed: {e.message}") from e
        raise RemoteError(
            f"Registration failed: {e.message}", status_code=e.status_code
        ) from e
    except BackendError as e:
        raise RemoteError(f"Registration failed: {e.message}") from e

    logger.info("Registered customer %s", customer.customer_id)
    return customer


async def logout(backend: RestaurantBackend, store: SessionStore) -> None:
    """
    Release the customer's tables and forget all session state.

    Table release is best effort: the session is cleared even if the backend
    cannot be reached.
    """
    customer = current_customer(store)
    if customer is not None:
        try:
            tables = await backend.list_tables_for_customer(customer.customer_id)
        except BackendError as e:
            logger.warning("Could not list tables for %s: %s", customer.customer_id, e)
            tables = []

        for table in tables:
            try:
                await backend.update_table(
                    table.table_no, TableUpdate(customer_id=None, order_id=None)
                )
            except BackendError as e:
                logger.warning("Failed to clear table %s: %s", table.table_no, e)

    clear_session_state(store)
    logger.info(
        "Session cleared%s",
        f" for customer {customer.customer_id}" if customer else "",
    )


# =============================================================================
# Tables
# =============================================================================


async def available_tables(backend: RestaurantBackend) -> list[Table]:
    """Tables with nobody assigned."""
    try:
        tables = await backend.list_tables()
    except BackendError as e:
        raise RemoteError(f"Could not load tables: {e.message}") from e
    return [t for t in tables if t.is_available]


async def table_details(backend: RestaurantBackend, table_no: str) -> Table:
    try:
        return await backend.get_table(str(table_no))
    except BackendNotFoundError as e:
        raise RemoteError(f"Table {table_no} does not exist", status_code=404) from e
    except BackendError as e:
        raise RemoteError(f"Could not load table {table_no}: {e.message}") from e


async def claim_table(
    backend: RestaurantBackend, table_no: str, customer: Customer
) -> Table:
    """Assign a table to the signed-in customer."""
    if not str(table_no).strip():
        raise ValidationError("Table number is required")
    try:
        return await backend.update_table(
            str(table_no), TableUpdate(customer_id=customer.customer_id)
        )
    except BackendError as e:
        raise RemoteError(f"Could not assign table {table_no}: {e.message}") from e


# =============================================================================
# History and feedback
# =============================================================================


async def order_history(backend: RestaurantBackend, customer: Customer) -> list[Order]:
    """All of a customer's orders, most recent first."""
    try:
        orders = await backend.list_orders_for_customer(customer.customer_id)
    except BackendError as e:
        raise RemoteError(f"Could not load orders: {e.message}") from e
    return sorted(orders, key=lambda o: (o.date, o.time), reverse=True)


async def submit_feedback(
    backend: RestaurantBackend,
    store: SessionStore,
    customer: Customer,
    text: str,
    order_id: str | None = None,
) -> Feedback:
    """
    Leave feedback on an order (the session's open order by default).

    Raises:
        ValidationError: Blank feedback, or no order to attach it to.
        RemoteError: The backend call failed.
    """
    text = (text or "").strip()
    order_id = order_id or store.load(CURRENT_ORDER_KEY)
    if not text:
        raise ValidationError("Feedback cannot be empty")
    if not order_id:
        raise ValidationError("Missing order for feedback")

    feedback = Feedback(
        order_id=str(order_id),
        customer_id=customer.customer_id,
        feedback=text,
    )
    try:
        return await backend.submit_feedback(feedback)
    except BackendError as e:
        raise RemoteError(
            f"Could not submit feedback: {e.message}", order_id=str(order_id)
        ) from e


async def order_feedback(
    backend: RestaurantBackend, order_id: str, customer: Customer
) -> list[Feedback]:
    """
    Feedback left on one of the customer's orders.

    Another customer's order is reported as not found (RemoteError with
    status_code 404), the same as an order that does not exist.
    """
    try:
        order = await backend.get_order(order_id)
    except BackendNotFoundError as e:
        raise RemoteError(
            f"Order not found: {order_id}", order_id=order_id, status_code=404
        ) from e
    except BackendError as e:
        raise RemoteError(
            f"Could not load order: {e.message}", order_id=order_id
        ) from e

    if order.customer_id != customer.customer_id:
        raise RemoteError(
            f"Order not found: {order_id}", order_id=order_id, status_code=404
        )

    try:
        return await backend.list_feedback_for_order(order_id)
    except BackendError as e:
        raise RemoteError(
            f"Could not load feedback: {e.message}", order_id=order_id
        ) from e


async def customer_feedback(
    backend: RestaurantBackend, customer: Customer
) -> list[Feedback]:
    """Everything the customer has written, across all their orders."""
    try:
        return await backend.list_feedback_for_customer(customer.customer_id)
    except BackendError as e:
        raise RemoteError(f"Could not load feedback: {e.message}") from e
