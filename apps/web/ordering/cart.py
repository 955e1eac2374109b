"""Cart aggregate - the dishes a session has picked but not yet ordered."""

import logging
from collections.abc import Iterator
from decimal import Decimal

from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError
from tableside_schemas import CartItem, DishRef

from apps.web.ordering.session_store import CART_KEY, CART_TTL, SessionStore

logger = logging.getLogger(__name__)

_cart_items = TypeAdapter(list[CartItem])


class Cart:
    """
    In-memory cart mirrored to a SessionStore.

    Every mutation builds the new item list, writes it to the store, and only
    then replaces the in-memory list. Holds at most one entry per dish id.
    """

    def __init__(self, store: SessionStore) -> None:
        self._store = store
        self._items = self._load()

    def _load(self) -> list[CartItem]:
        raw = self._store.load(CART_KEY)
        if raw is None:
            return []
        try:
            items = _cart_items.validate_python(raw)
        except PydanticValidationError as e:
            logger.warning("Ignoring unreadable stored cart: %s", e)
            return []
        return self._merge_duplicates(items)

    @staticmethod
    def _merge_duplicates(items: list[CartItem]) -> list[CartItem]:
        merged: dict[str, CartItem] = {}
        for item in items:
            existing = merged.get(item.dish.dish_id)
            if existing:
                item = existing.model_copy(
                    update={"quantity": existing.quantity + item.quantity}
                )
            merged[item.dish.dish_id] = item
        return list(merged.values())

    def _commit(self, items: list[CartItem]) -> None:
        self._store.save(
            CART_KEY,
            [item.model_dump(mode="json") for item in items],
            CART_TTL,
        )
        self._items = items

    # =========================================================================
    # Reads
    # =========================================================================

    @property
    def items(self) -> list[CartItem]:
        return list(self._items)

    def __iter__(self) -> Iterator[CartItem]:
        return iter(list(self._items))

    def __len__(self) -> int:
        return len(self._items)

    def is_empty(self) -> bool:
        return not self._items

    def get(self, dish_id: str) -> CartItem | None:
        for item in self._items:
            if item.dish.dish_id == dish_id:
                return item
        return None

    def total(self) -> Decimal:
        """Sum of price x quantity; 0 for an empty cart."""
        return sum((item.line_total for item in self._items), Decimal("0"))

    # =========================================================================
    # Mutations
    # =========================================================================

    def add_item(self, dish: DishRef, quantity: int = 1) -> None:
        """
        Add quantity of dish, merging into an existing entry.

        A non-positive quantity is treated as a decrement; an entry that drops
        to zero or below is removed.
        """
        existing = self.get(dish.dish_id)
        if existing is None:
            if quantity <= 0:
                return
            self._commit([*self._items, CartItem(dish=dish, quantity=quantity)])
            return

        self.update_quantity(dish.dish_id, existing.quantity + quantity)

    def remove_item(self, dish_id: str) -> None:
        """Drop the entry for dish_id. No-op if absent."""
        self._commit([i for i in self._items if i.dish.dish_id != dish_id])

    def update_quantity(self, dish_id: str, quantity: int) -> None:
        """Set the quantity exactly; <= 0 removes the entry."""
        if quantity <= 0:
            self.remove_item(dish_id)
            return

        self._commit(
            [
                i.model_copy(update={"quantity": quantity})
                if i.dish.dish_id == dish_id
                else i
                for i in self._items
            ]
        )

    def clear(self) -> None:
        """Empty the cart and remove the persisted entry."""
        self._store.clear(CART_KEY)
        self._items = []
