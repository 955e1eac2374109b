"""Ordering schemas - canonical data contracts for the dine-in order lifecycle.

These models use one internal naming scheme. Translation to and from the
restaurant backend's wire format lives in apps.web.backend.wire.
"""

from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, Field

# =============================================================================
# Enums
# =============================================================================


class LifecycleState(str, Enum):
    """Where a session sits in the order lifecycle."""

    NO_ORDER = "no_order"
    PLACED = "placed"
    SERVED = "served"


# =============================================================================
# Catalog
# =============================================================================


class DishRef(BaseModel):
    """A dish from the restaurant catalog."""

    dish_id: str
    name: str
    price: Decimal
    description: str = ""
    dish_types: list[str] = Field(default_factory=list)
    cooking_time: str = ""
    rating: Decimal | None = None


# =============================================================================
# Cart
# =============================================================================


class CartItem(BaseModel):
    """A dish and how many of it the customer wants."""

    dish: DishRef
    quantity: int = Field(default=1, ge=1)

    @property
    def line_total(self) -> Decimal:
        return self.dish.price * self.quantity


# =============================================================================
# Orders
# =============================================================================


class OrderStatus(BaseModel):
    """Serving and payment flags for an order."""

    is_served: bool = False
    is_paid: bool = False


class OrderLine(BaseModel):
    """Line item on an order, snapshotting name and unit price."""

    dish_id: str
    name: str = ""
    quantity: int = Field(default=1, ge=1)
    price: Decimal | None = None

    @classmethod
    def from_cart_item(cls, item: CartItem) -> "OrderLine":
        return cls(
            dish_id=item.dish.dish_id,
            name=item.dish.name,
            quantity=item.quantity,
            price=item.dish.price,
        )


class NewOrder(BaseModel):
    """Order to create on the backend."""

    customer_id: str
    table_no: str
    lines: list[OrderLine]
    amount: Decimal
    date: str  # YYYY-MM-DD
    time: str  # HH:MM
    is_served: bool = False
    is_paid: bool = False


class OrderUpdate(BaseModel):
    """
    Partial order update.

    Only fields that were explicitly set are sent; the backend merges them.
    """

    lines: list[OrderLine] | None = None
    amount: Decimal | None = None
    is_served: bool | None = None
    is_paid: bool | None = None


class Order(BaseModel):
    """An order as recorded by the backend."""

    order_id: str
    customer_id: str = ""
    table_no: str = ""
    amount: Decimal = Decimal("0")
    date: str = ""
    time: str = ""
    lines: list[OrderLine] = Field(default_factory=list)
    is_served: bool = False
    is_paid: bool = False

    @property
    def status(self) -> OrderStatus:
        return OrderStatus(is_served=self.is_served, is_paid=self.is_paid)


class StatusReport(BaseModel):
    """Result of one status check against the backend."""

    order_id: str
    status: OrderStatus
    amount: Decimal = Decimal("0")
    lines: list[OrderLine] = Field(default_factory=list)
    order: Order | None = None


# =============================================================================
# Tables, customers, feedback
# =============================================================================


class Table(BaseModel):
    """A physical table and whoever is currently seated at it."""

    table_no: str
    customer_id: str | None = None
    order_id: str | None = None

    @property
    def is_available(self) -> bool:
        return not self.customer_id


class TableUpdate(BaseModel):
    """
    Assignment change for a table.

    Fields left unset are not sent; setting a field to None clears it.
    """

    customer_id: str | None = None
    order_id: str | None = None


class Customer(BaseModel):
    """A registered customer."""

    customer_id: str
    name: str = ""
    email: str = ""
    phone: str = ""


class NewCustomer(BaseModel):
    """Sign-up details for a new customer."""

    name: str = Field(min_length=1)
    email: str = Field(min_length=3)
    phone: str = ""
    password: str = Field(min_length=6)


class Feedback(BaseModel):
    """Free-text feedback a customer left for an order."""

    feedback_id: str | None = None
    order_id: str
    customer_id: str
    feedback: str
