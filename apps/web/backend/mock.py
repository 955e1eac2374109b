"""Mock restaurant backend for development and testing."""

import asyncio
import itertools
from decimal import Decimal

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

from apps.web.backend.exceptions import (
    BackendAPIError,
    BackendAuthError,
    BackendNotFoundError,
)


def _default_dishes() -> list[DishRef]:
    """Generate a default test catalog."""
    return [
        DishRef(
            dish_id="D1",
            name="Paneer Tikka",
            price=Decimal("100"),
            description="Chargrilled cottage cheese with peppers",
            dish_types=["Starter", "Veg"],
            cooking_time="15 min",
            rating=Decimal("4.5"),
        ),
        DishRef(
            dish_id="D2",
            name="Masala Dosa",
            price=Decimal("50"),
            description="Crisp rice crepe with spiced potato",
            dish_types=["Main", "Veg"],
            cooking_time="10 min",
            rating=Decimal("4.7"),
        ),
        DishRef(
            dish_id="D3",
            name="Butter Chicken",
            price=Decimal("220"),
            description="Tandoori chicken in tomato butter gravy",
            dish_types=["Main", "Non-Veg"],
            cooking_time="25 min",
            rating=Decimal("4.8"),
        ),
        DishRef(
            dish_id="D4",
            name="Gulab Jamun",
            price=Decimal("60"),
            description="Milk dumplings in rose syrup",
            dish_types=["Dessert", "Veg"],
            cooking_time="5 min",
            rating=Decimal("4.3"),
        ),
    ]


class MockBackend:
    """
    Mock restaurant backend for development and testing.

    Keeps customers, tables, orders and feedback in memory and can be told
    to fail specific operations.

    Usage:
        backend = MockBackend(fail_orders=True)
        backend.mark_served("ORD-1001")
    """

    DEFAULT_PASSWORD = "password"
    # Most recent calls kept in the calls log
    CALL_LOG_LIMIT = 1000

    def __init__(
        self,
        dishes: list[DishRef] | None = None,
        table_numbers: list[str] | None = None,
        fail_orders: bool = False,
        fail_status: bool = False,
        fail_tables: bool = False,
        api_delay_ms: int = 0,
    ) -> None:
        """
        Initialize the mock backend.

        Args:
            dishes: Custom catalog. Uses the default test dishes if None.
            table_numbers: Table numbers to create. Defaults to "1".."6".
            fail_orders: If True, creating or updating orders fails.
            fail_status: If True, fetching an order fails.
            fail_tables: If True, table updates fail.
            api_delay_ms: Simulated API delay in milliseconds.
        """
        self._dishes = {d.dish_id: d for d in (dishes or _default_dishes())}
        self._tables = {
            no: Table(table_no=no)
            for no in (table_numbers or [str(n) for n in range(1, 7)])
        }
        self._customers: dict[str, tuple[Customer, str]] = {
            "guest@example.com": (
                Customer(customer_id="C1", name="Guest", email="guest@example.com"),
                self.DEFAULT_PASSWORD,
            ),
        }
        self._orders: dict[str, Order] = {}
        self._feedback: list[Feedback] = []
        self._ids = itertools.count(1001)

        self.fail_orders = fail_orders
        self.fail_status = fail_status
        self.fail_tables = fail_tables
        self._api_delay_ms = api_delay_ms

        # Recent calls as "<method> <arg>" (oldest dropped past CALL_LOG_LIMIT)
        self.calls: list[str] = []

    async def close(self) -> None:
        """Nothing to release."""

    async def _simulate(self, call: str) -> None:
        self.calls.append(call)
        if len(self.calls) > self.CALL_LOG_LIMIT:
            del self.calls[: -self.CALL_LOG_LIMIT]
        if self._api_delay_ms > 0:
            await asyncio.sleep(self._api_delay_ms / 1000)

    # =========================================================================
    # Configuration methods (for test setup)
    # =========================================================================

    def add_customer(self, customer: Customer, password: str) -> None:
        self._customers[customer.email] = (customer, password)

    def add_order(self, order: Order) -> None:
        self._orders[order.order_id] = order

    def mark_served(self, order_id: str, served: bool = True) -> None:
        """Simulate the kitchen delivering (or un-delivering) an order."""
        self._orders[order_id] = self._orders[order_id].model_copy(
            update={"is_served": served}
        )

    def mark_paid(self, order_id: str) -> None:
        """Simulate the bill being settled outside this session."""
        self._orders[order_id] = self._orders[order_id].model_copy(
            update={"is_paid": True}
        )

    def table(self, table_no: str) -> Table:
        return self._tables[table_no]

    # =========================================================================
    # Customers
    # =========================================================================

    async def login(self, email: str, password: str) -> Customer:
        await self._simulate(f"login {email}")
        record = self._customers.get(email)
        if record is None or record[1] != password:
            raise BackendAuthError("Invalid email or password", path="/Customer/login")
        return record[0]

    async def register_customer(self, customer: NewCustomer) -> Customer:
        await self._simulate(f"register_customer {customer.email}")
        if customer.email in self._customers:
            raise BackendAPIError(
                "Email already registered", path="/Customer", status_code=409
            )
        created = Customer(
            customer_id=f"C{len(self._customers) + 1}",
            name=customer.name,
            email=customer.email,
            phone=customer.phone,
        )
        self._customers[customer.email] = (created, customer.password)
        return created

    async def get_customer(self, customer_id: str) -> Customer:
        await self._simulate(f"get_customer {customer_id}")
        for customer, _password in self._customers.values():
            if customer.customer_id == customer_id:
                return customer
        raise BackendNotFoundError(
            f"Customer not found: {customer_id}", path="/Customer", status_code=404
        )

    # =========================================================================
    # Catalog
    # =========================================================================

    async def list_dishes(self) -> list[DishRef]:
        await self._simulate("list_dishes")
        return list(self._dishes.values())

    async def get_dish(self, dish_id: str) -> DishRef:
        await self._simulate(f"get_dish {dish_id}")
        try:
            return self._dishes[dish_id]
        except KeyError as e:
            raise BackendNotFoundError(
                f"Dish not found: {dish_id}", path="/Dish", status_code=404
            ) from e

    # =========================================================================
    # Tables
    # =========================================================================

    async def list_tables(self) -> list[Table]:
        await self._simulate("list_tables")
        return list(self._tables.values())

    async def get_table(self, table_no: str) -> Table:
        await self._simulate(f"get_table {table_no}")
        try:
            return self._tables[table_no]
        except KeyError as e:
            raise BackendNotFoundError(
                f"Table not found: {table_no}", path="/Table", status_code=404
            ) from e

    async def list_tables_for_customer(self, customer_id: str) -> list[Table]:
        await self._simulate(f"list_tables_for_customer {customer_id}")
        return [t for t in self._tables.values() if t.customer_id == customer_id]

    async def update_table(self, table_no: str, update: TableUpdate) -> Table:
        await self._simulate(f"update_table {table_no}")
        if self.fail_tables:
            raise BackendAPIError("Mock table update failure", path="/Table")
        if table_no not in self._tables:
            raise BackendNotFoundError(
                f"Table not found: {table_no}", path="/Table", status_code=404
            )
        table = self._tables[table_no].model_copy(
            update=update.model_dump(exclude_unset=True)
        )
        self._tables[table_no] = table
        return table

    # =========================================================================
    # Orders
    # =========================================================================

    async def create_order(self, order: NewOrder) -> Order:
        await self._simulate(f"create_order {order.table_no}")
        if self.fail_orders:
            raise BackendAPIError("Mock order creation failure", path="/Order")

        created = Order(
            order_id=f"ORD-{next(self._ids)}",
            customer_id=order.customer_id,
            table_no=order.table_no,
            amount=order.amount,
            date=order.date,
            time=order.time,
            lines=list(order.lines),
            is_served=order.is_served,
            is_paid=order.is_paid,
        )
        self._orders[created.order_id] = created
        return created

    async def get_order(self, order_id: str) -> Order:
        await self._simulate(f"get_order {order_id}")
        if self.fail_status:
            raise BackendAPIError("Mock status failure", path="/Order")
        try:
            return self._orders[order_id]
        except KeyError as e:
            raise BackendNotFoundError(
                f"Order not found: {order_id}", path="/Order", status_code=404
            ) from e

    async def update_order(self, order_id: str, update: OrderUpdate) -> Order:
        await self._simulate(f"update_order {order_id}")
        if self.fail_orders:
            raise BackendAPIError("Mock order update failure", path="/Order")
        if order_id not in self._orders:
            raise BackendNotFoundError(
                f"Order not found: {order_id}", path="/Order", status_code=404
            )

        order = self._orders[order_id]
        changes: dict[str, object] = {}
        if update.lines is not None:
            # Dishes are appended and the amount recomputed server-side
            added = sum(
                (line.price or Decimal("0")) * line.quantity for line in update.lines
            )
            changes["lines"] = [*order.lines, *update.lines]
            changes["amount"] = order.amount + added
        if update.amount is not None:
            changes["amount"] = update.amount
        if update.is_served is not None:
            changes["is_served"] = update.is_served
        if update.is_paid is not None:
            changes["is_paid"] = update.is_paid

        order = order.model_copy(update=changes)
        self._orders[order_id] = order
        return order

    async def list_orders_for_customer(self, customer_id: str) -> list[Order]:
        await self._simulate(f"list_orders_for_customer {customer_id}")
        return [o for o in self._orders.values() if o.customer_id == customer_id]

    # =========================================================================
    # Feedback
    # =========================================================================

    async def submit_feedback(self, feedback: Feedback) -> Feedback:
        await self._simulate(f"submit_feedback {feedback.order_id}")
        stored = feedback.model_copy(
            update={
                "feedback_id": f"FB-{next(self._ids)}",
                "feedback": feedback.feedback.strip(),
            }
        )
        self._feedback.append(stored)
        return stored

    async def list_feedback_for_order(self, order_id: str) -> list[Feedback]:
        await self._simulate(f"list_feedback_for_order {order_id}")
        return [f for f in self._feedback if f.order_id == order_id]

    async def list_feedback_for_customer(self, customer_id: str) -> list[Feedback]:
        await self._simulate(f"list_feedback_for_customer {customer_id}")
        return [f for f in self._feedback if f.customer_id == customer_id]
