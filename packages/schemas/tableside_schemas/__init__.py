"""Tableside Schemas - Pydantic models for data contracts."""

from tableside_schemas.ordering import (
    CartItem,
    Customer,
    DishRef,
    Feedback,
    LifecycleState,
    NewCustomer,
    NewOrder,
    Order,
    OrderLine,
    OrderStatus,
    OrderUpdate,
    StatusReport,
    Table,
    TableUpdate,
)

__all__ = [
    # Catalog
    "DishRef",
    # Cart
    "CartItem",
    # Orders
    "LifecycleState",
    "NewOrder",
    "Order",
    "OrderLine",
    "OrderStatus",
    "OrderUpdate",
    "StatusReport",
    # Tables, customers, feedback
    "Customer",
    "Feedback",
    "NewCustomer",
    "Table",
    "TableUpdate",
]
