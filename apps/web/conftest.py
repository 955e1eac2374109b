"""
Pytest configuration for Django app tests.
"""

from django.core.cache import cache

import pytest
from tableside_schemas import Customer

from apps.web.backend import MockBackend
from apps.web.ordering.cart import Cart
from apps.web.ordering.lifecycle import OrderLifecycleController
from apps.web.ordering.session_store import CacheSessionStore


class MemoryStore:
    """SessionStore kept in a plain dict, with no expiry."""

    def __init__(self) -> None:
        self.data: dict = {}

    def load(self, key):
        return self.data.get(key)

    def save(self, key, value, ttl):
        self.data[key] = value

    def clear(self, key):
        self.data.pop(key, None)


@pytest.fixture(autouse=True)
def _clear_cache():
    """Idempotency keys and cache-backed stores must not leak between tests."""
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def backend() -> MockBackend:
    """Fresh in-memory restaurant backend."""
    return MockBackend()


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def cache_store() -> CacheSessionStore:
    return CacheSessionStore("test-session")


@pytest.fixture
def customer() -> Customer:
    """The mock backend's built-in customer."""
    return Customer(customer_id="C1", name="Guest", email="guest@example.com")


@pytest.fixture
def controller(backend: MockBackend, store: MemoryStore) -> OrderLifecycleController:
    return OrderLifecycleController(backend, store)


@pytest.fixture
def cart(controller: OrderLifecycleController) -> Cart:
    """The controller's cart, so orders see what tests add."""
    return controller.cart
