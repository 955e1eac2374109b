"""
Wire format adapter for the restaurant backend.

The backend's JSON uses display-style field names ("Dish Id", "Serving
Status") and has changed spelling between versions ("Dish Id" vs "DishId").
Everything outside this module works with the canonical tableside_schemas
models; only the functions here know the wire names.
"""

from decimal import Decimal, InvalidOperation
from typing import Any

from tableside_schemas import (
    Customer,
    DishRef,
    Feedback,
    NewCustomer,
    NewOrder,
    Order,
    OrderLine,
    OrderUpdate,
    Table,
    TableUpdate,
)

# Accepted spellings, preferred first
DISH_ID_KEYS = ("Dish Id", "DishId", "dishId", "dish_id")
ORDER_ID_KEYS = ("Order Id", "OrderId", "orderId", "order_id")
CUSTOMER_ID_KEYS = ("Customer Id", "Customer ID", "CustomerId", "customerId")
TABLE_NO_KEYS = ("Table No", "TableNo", "tableNo", "table_no")
FEEDBACK_ID_KEYS = ("Feedback Id", "feedbackId", "_id", "id")


def _first(raw: dict[str, Any], keys: tuple[str, ...], default: Any = None) -> Any:
    """Return the value of the first key present in raw."""
    for key in keys:
        if key in raw and raw[key] is not None:
            return raw[key]
    return default


def _text(value: Any) -> str:
    return "" if value is None else str(value)


def _optional_text(value: Any) -> str | None:
    if value is None or value == "" or value == 0:
        return None
    return str(value)


def _decimal(value: Any, default: str = "0") -> Decimal:
    try:
        return Decimal(str(value)) if value is not None else Decimal(default)
    except InvalidOperation:
        return Decimal(default)


def _number(value: Decimal) -> int | float:
    """JSON number for a Decimal; integral amounts go out as ints."""
    if value == value.to_integral_value():
        return int(value)
    return float(value)


# =============================================================================
# Parsing (wire -> canonical)
# =============================================================================


def customer_id_of(raw: dict[str, Any]) -> str:
    """Customer identifier of any backend record, whatever its spelling."""
    return _text(_first(raw, CUSTOMER_ID_KEYS))


def dish_from_wire(raw: dict[str, Any]) -> DishRef:
    """Convert a backend dish record to DishRef."""
    dish_types = raw.get("Type of Dish") or []
    if isinstance(dish_types, str):
        dish_types = [dish_types]

    rating = raw.get("Rating")
    return DishRef(
        dish_id=_text(_first(raw, DISH_ID_KEYS)),
        name=_text(raw.get("Name")),
        price=_decimal(raw.get("Price")),
        # The backend has shipped both spellings
        description=_text(raw.get("Description", raw.get("Discription"))),
        dish_types=[str(t) for t in dish_types],
        cooking_time=_text(raw.get("Cooking Time")),
        rating=_decimal(rating) if rating not in (None, "") else None,
    )


def line_from_wire(raw: dict[str, Any]) -> OrderLine:
    """Convert a backend order dish entry to OrderLine."""
    price = raw.get("Price")
    return OrderLine(
        dish_id=_text(_first(raw, DISH_ID_KEYS)),
        name=_text(raw.get("Name")),
        quantity=max(int(raw.get("Quantity") or 1), 1),
        price=_decimal(price) if price is not None else None,
    )


def order_from_wire(raw: dict[str, Any]) -> Order:
    """Convert a backend order record to Order."""
    return Order(
        order_id=_text(_first(raw, ORDER_ID_KEYS)),
        customer_id=_text(_first(raw, CUSTOMER_ID_KEYS)),
        table_no=_text(_first(raw, TABLE_NO_KEYS)),
        amount=_decimal(raw.get("Amount")),
        date=_text(raw.get("Date")),
        time=_text(raw.get("Time")),
        lines=[line_from_wire(d) for d in raw.get("Dishes") or []],
        is_served=bool(raw.get("Serving Status")),
        is_paid=bool(raw.get("Payment Status")),
    )


def table_from_wire(raw: dict[str, Any]) -> Table:
    """Convert a backend table record to Table."""
    return Table(
        table_no=_text(_first(raw, TABLE_NO_KEYS)),
        customer_id=_optional_text(_first(raw, CUSTOMER_ID_KEYS)),
        order_id=_optional_text(_first(raw, ORDER_ID_KEYS)),
    )


def customer_from_wire(raw: dict[str, Any]) -> Customer:
    """Convert a backend customer record to Customer."""
    return Customer(
        customer_id=_text(_first(raw, CUSTOMER_ID_KEYS)),
        name=_text(raw.get("Customer Name", raw.get("Name"))),
        email=_text(raw.get("Email", raw.get("email"))),
        phone=_optional_text(raw.get("Contact Number", raw.get("Phone"))) or "",
    )


def feedback_from_wire(raw: dict[str, Any]) -> Feedback:
    """Convert a backend feedback record to Feedback."""
    return Feedback(
        feedback_id=_optional_text(_first(raw, FEEDBACK_ID_KEYS)),
        order_id=_text(_first(raw, ORDER_ID_KEYS)),
        customer_id=_text(_first(raw, CUSTOMER_ID_KEYS)),
        feedback=_text(raw.get("feedback", raw.get("Feedback"))),
    )


# =============================================================================
# Serialization (canonical -> wire)
# =============================================================================


def line_to_wire(line: OrderLine) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "DishId": line.dish_id,
        "Quantity": line.quantity,
        "Name": line.name,
    }
    if line.price is not None:
        payload["Price"] = _number(line.price)
    return payload


def new_order_to_wire(order: NewOrder) -> dict[str, Any]:
    """Build the POST /Order body."""
    return {
        "Customer Id": order.customer_id,
        "Table No": order.table_no,
        "Amount": _number(order.amount),
        "Time": order.time,
        "Date": order.date,
        "Dishes": [line_to_wire(line) for line in order.lines],
        "Payment Status": order.is_paid,
        "Serving Status": order.is_served,
    }


def order_update_to_wire(update: OrderUpdate) -> dict[str, Any]:
    """Build a PUT /Order/{id} body containing only the fields being changed."""
    payload: dict[str, Any] = {}
    if update.lines is not None:
        payload["Dishes"] = [line_to_wire(line) for line in update.lines]
    if update.amount is not None:
        payload["Amount"] = _number(update.amount)
    if update.is_served is not None:
        payload["Serving Status"] = update.is_served
    if update.is_paid is not None:
        payload["Payment Status"] = update.is_paid
    return payload


def table_update_to_wire(update: TableUpdate) -> dict[str, Any]:
    """Build a PUT /Table/{no} body; explicitly set None fields become null."""
    fields = update.model_dump(exclude_unset=True)
    payload: dict[str, Any] = {}
    if "customer_id" in fields:
        payload["Customer ID"] = fields["customer_id"]
    if "order_id" in fields:
        payload["Order Id"] = fields["order_id"]
    return payload


def new_customer_to_wire(customer: NewCustomer) -> dict[str, Any]:
    """Build the POST /Customer body."""
    digits = "".join(c for c in customer.phone if c.isdigit())
    return {
        "Customer Name": customer.name.strip(),
        # The backend stores the number as an integer
        "Contact Number": int(digits) if digits else 0,
        "Email": customer.email.strip().lower(),
        "Password": customer.password,
    }


def feedback_to_wire(feedback: Feedback) -> dict[str, Any]:
    """Build the POST /feedback body."""
    return {
        "feedback": feedback.feedback.strip(),
        "orderId": feedback.order_id,
        "customerId": feedback.customer_id,
    }
