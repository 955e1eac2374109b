"""Base restaurant backend protocol - interface for the remote REST service."""

from typing import Protocol, runtime_checkable

from tableside_schemas import (
    Customer,
    DishRef,
    Feedback,
    NewCustomer,
    NewOrder,
    Order,
    OrderUpdate,
    Table,
    TableUpdate,
)


@runtime_checkable
class RestaurantBackend(Protocol):
    """
    Protocol defining the interface to the restaurant backend.

    The HTTP adapter and the in-memory mock both implement this interface.
    Methods are async so remote calls never block the event loop.
    """

    async def close(self) -> None:
        """Release any underlying connections."""
        ...

    # =========================================================================
    # Customers
    # =========================================================================

    async def login(self, email: str, password: str) -> Customer:
        """
        Authenticate a customer.

        Raises:
            BackendAuthError: If the credentials are rejected.
            BackendAPIError: If the request fails.
        """
        ...

    async def register_customer(self, customer: NewCustomer) -> Customer:
        """
        Create a customer account.

        Raises:
            BackendAPIError: If the backend rejects the sign-up (e.g. the
                email is already registered).
        """
        ...

    async def get_customer(self, customer_id: str) -> Customer:
        """
        Fetch a customer record.

        Raises:
            BackendNotFoundError: If no such customer exists.
        """
        ...

    # =========================================================================
    # Catalog (read)
    # =========================================================================

    async def list_dishes(self) -> list[DishRef]:
        """Fetch the full dish catalog."""
        ...

    async def get_dish(self, dish_id: str) -> DishRef:
        """
        Fetch a single dish.

        Raises:
            BackendNotFoundError: If the dish does not exist.
        """
        ...

    # =========================================================================
    # Tables
    # =========================================================================

    async def list_tables(self) -> list[Table]:
        """Fetch every table with its current assignment."""
        ...

    async def get_table(self, table_no: str) -> Table:
        """
        Fetch one table.

        Raises:
            BackendNotFoundError: If there is no such table.
        """
        ...

    async def list_tables_for_customer(self, customer_id: str) -> list[Table]:
        """Fetch the tables currently assigned to a customer."""
        ...

    async def update_table(self, table_no: str, update: TableUpdate) -> Table:
        """
        Assign or clear the customer/order association of a table.

        Only the fields set on ``update`` are sent.
        """
        ...

    # =========================================================================
    # Orders
    # =========================================================================

    async def create_order(self, order: NewOrder) -> Order:
        """
        Create an order.

        Returns:
            The created order, carrying its backend-assigned identifier.

        Raises:
            BackendAPIError: If the request fails.
        """
        ...

    async def get_order(self, order_id: str) -> Order:
        """
        Fetch an order with its status flags and lines.

        Raises:
            BackendNotFoundError: If the order does not exist.
        """
        ...

    async def update_order(self, order_id: str, update: OrderUpdate) -> Order:
        """
        Partially update an order; the backend merges the given fields.

        Line items sent here are additive.
        """
        ...

    async def list_orders_for_customer(self, customer_id: str) -> list[Order]:
        """Fetch every order a customer has placed."""
        ...

    # =========================================================================
    # Feedback
    # =========================================================================

    async def submit_feedback(self, feedback: Feedback) -> Feedback:
        """Record customer feedback for an order."""
        ...

    async def list_feedback_for_order(self, order_id: str) -> list[Feedback]:
        """Fetch the feedback left on an order."""
        ...

    async def list_feedback_for_customer(self, customer_id: str) -> list[Feedback]:
        """Fetch every piece of feedback a customer has left."""
        ...
