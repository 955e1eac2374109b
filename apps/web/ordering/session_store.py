"""
Session state store - per-key expiring storage that survives page reloads.

The lifecycle only needs load/save/clear with a TTL per key. Two backings:

- DjangoSessionStore: the request's session (a signed cookie in this
  project), with an expiry envelope per key.
- CacheSessionStore: the Django cache framework, whose per-key timeout is
  the TTL. Used where there is no request, e.g. background polling.
"""

import json
import logging
from collections.abc import Callable
from datetime import datetime, timedelta
from typing import Any, Protocol

from django.contrib.sessions.backends.base import SessionBase
from django.core.cache import BaseCache, cache
from django.core.serializers.json import DjangoJSONEncoder
from django.utils import timezone

logger = logging.getLogger(__name__)

# Keys and lifetimes
CART_KEY = "cart"
CURRENT_ORDER_KEY = "currentOrderId"
ORDER_STATUS_KEY = "orderStatus"
CUSTOMER_KEY = "customer"

CART_TTL = timedelta(days=7)
CURRENT_ORDER_TTL = timedelta(days=1)
ORDER_STATUS_TTL = timedelta(days=1)
CUSTOMER_TTL = timedelta(days=7)

SESSION_KEYS = (CUSTOMER_KEY, CURRENT_ORDER_KEY, ORDER_STATUS_KEY, CART_KEY)


class SessionStore(Protocol):
    """Key-value persistence with an independent expiry per key."""

    def load(self, key: str) -> Any | None:
        """Return the stored value, or None if missing, expired or unreadable."""
        ...

    def save(self, key: str, value: Any, ttl: timedelta) -> None:
        """Serialize and store value for ttl, replacing any prior value."""
        ...

    def clear(self, key: str) -> None:
        """Remove the value now. Clearing a missing key is a no-op."""
        ...


def _dumps(value: Any) -> str:
    return json.dumps(value, cls=DjangoJSONEncoder)


class DjangoSessionStore:
    """
    SessionStore backed by a Django session.

    Each key holds {"payload": <json text>, "expires_at": <epoch seconds>}.
    The session cookie itself lives for SESSION_COOKIE_AGE; the envelope
    gives each key its own shorter or equal lifetime.
    """

    def __init__(
        self,
        session: SessionBase,
        clock: Callable[[], datetime] = timezone.now,
    ) -> None:
        self._session = session
        self._clock = clock

    def load(self, key: str) -> Any | None:
        envelope = self._session.get(key)
        if envelope is None:
            return None

        try:
            if self._clock().timestamp() >= float(envelope["expires_at"]):
                self.clear(key)
                return None
            return json.loads(envelope["payload"])
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("Discarding unreadable session key %s: %s", key, e)
            return None

    def save(self, key: str, value: Any, ttl: timedelta) -> None:
        self._session[key] = {
            "payload": _dumps(value),
            "expires_at": (self._clock() + ttl).timestamp(),
        }

    def clear(self, key: str) -> None:
        self._session.pop(key, None)


class CacheSessionStore:
    """
    SessionStore backed by the Django cache.

    Keys are namespaced so several sessions can share one cache.
    """

    def __init__(self, namespace: str, backend: BaseCache | None = None) -> None:
        self.namespace = namespace
        self._cache = backend if backend is not None else cache

    def _key(self, key: str) -> str:
        return f"session:{self.namespace}:{key}"

    def load(self, key: str) -> Any | None:
        raw = self._cache.get(self._key(key))
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except (TypeError, ValueError) as e:
            logger.warning("Discarding unreadable cached key %s: %s", key, e)
            return None

    def save(self, key: str, value: Any, ttl: timedelta) -> None:
        self._cache.set(self._key(key), _dumps(value), timeout=ttl.total_seconds())

    def clear(self, key: str) -> None:
        self._cache.delete(self._key(key))


def clear_session_state(store: SessionStore) -> None:
    """Drop everything the ordering flow keeps for a session (logout)."""
    for key in SESSION_KEYS:
        store.clear(key)
