"""
Pydantic schemas for the ordering API.

Request bodies are validated with these models; responses are built from
them and dumped in JSON mode.
"""

from decimal import Decimal

from pydantic import BaseModel, Field
from tableside_schemas import (
    CartItem,
    Customer,
    DishRef,
    Feedback,
    LifecycleState,
    NewCustomer,
    Order,
    OrderStatus,
    Table,
)

# =============================================================================
# Requests
# =============================================================================


class LoginRequest(BaseModel):
    """Body of POST /api/login."""

    email: str
    password: str


class RegisterRequest(NewCustomer):
    """Body of POST /api/register."""


class CartItemRequest(BaseModel):
    """Body of POST /api/cart/items."""

    dish_id: str = Field(min_length=1)
    quantity: int = 1


class QuantityRequest(BaseModel):
    """Body of POST /api/cart/items/<dish_id>."""

    quantity: int


class PlaceOrderRequest(BaseModel):
    """Body of POST /api/orders."""

    table_no: str


class FeedbackRequest(BaseModel):
    """Body of POST /api/feedback."""

    feedback: str
    order_id: str | None = None


# =============================================================================
# Responses
# =============================================================================


class ValidationErrorDetail(BaseModel):
    """Single field validation error."""

    field: str
    message: str


class ValidationErrorResponse(BaseModel):
    """Response for malformed request bodies."""

    error: str = "validation_error"
    details: list[ValidationErrorDetail]


class CustomerResponse(BaseModel):
    customer: Customer


class MenuResponse(BaseModel):
    dishes: list[DishRef]


class TableResponse(BaseModel):
    table: Table


class TablesResponse(BaseModel):
    tables: list[Table]


class CartResponse(BaseModel):
    """Cart contents and derived totals."""

    items: list[CartItem]
    item_count: int
    total: Decimal


class OrderSessionResponse(BaseModel):
    """Where the session is in the order lifecycle."""

    state: LifecycleState
    order_id: str | None = None
    status: OrderStatus | None = None
    order: Order | None = None
    cart: CartResponse


class OrderResponse(BaseModel):
    order: Order


class OrderHistoryResponse(BaseModel):
    orders: list[Order]


class FeedbackResponse(BaseModel):
    feedback: Feedback


class FeedbackListResponse(BaseModel):
    feedback: list[Feedback]
