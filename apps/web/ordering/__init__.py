"""Ordering module - cart, order lifecycle and status polling for a dine-in session."""

from apps.web.ordering.cart import Cart
from apps.web.ordering.exceptions import (
    OrderingError,
    PreconditionError,
    RemoteError,
    ValidationError,
)
from apps.web.ordering.lifecycle import OrderLifecycleController
from apps.web.ordering.poller import StatusPoller
from apps.web.ordering.session_store import (
    CacheSessionStore,
    DjangoSessionStore,
    SessionStore,
)

__all__ = [
    "CacheSessionStore",
    "Cart",
    "DjangoSessionStore",
    "OrderLifecycleController",
    "OrderingError",
    "PreconditionError",
    "RemoteError",
    "SessionStore",
    "StatusPoller",
    "ValidationError",
]
