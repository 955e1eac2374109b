"""Factory classes for ordering schemas."""

from decimal import Decimal

import factory
from tableside_schemas import CartItem, DishRef, Order


class DishFactory(factory.Factory):
    """Factory for DishRef."""

    class Meta:
        model = DishRef

    dish_id = factory.Sequence(lambda n: f"DISH-{n}")
    name = factory.Sequence(lambda n: f"Dish {n}")
    price = Decimal("100")
    description = factory.Faker("sentence")
    dish_types = factory.LazyFunction(lambda: ["Main"])
    cooking_time = "15 min"


class CartItemFactory(factory.Factory):
    """Factory for CartItem."""

    class Meta:
        model = CartItem

    dish = factory.SubFactory(DishFactory)
    quantity = 1


class OrderFactory(factory.Factory):
    """Factory for backend Order records."""

    class Meta:
        model = Order

    order_id = factory.Sequence(lambda n: f"ORD-{500 + n}")
    customer_id = "C1"
    table_no = "1"
    amount = Decimal("100")
    date = "2024-03-01"
    time = factory.Sequence(lambda n: f"{12 + n % 10:02d}:00")
    is_served = False
    is_paid = False
