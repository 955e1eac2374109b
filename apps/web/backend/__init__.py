"""Restaurant backend adapters - clients for the remote REST service."""

from typing import Any

from django.conf import settings

from apps.web.backend.base import RestaurantBackend
from apps.web.backend.exceptions import (
    BackendAPIError,
    BackendAuthError,
    BackendError,
    BackendNotFoundError,
)
from apps.web.backend.http import HttpBackend
from apps.web.backend.mock import MockBackend

HTTP = "http"
MOCK = "mock"

# The mock keeps its state in memory, so every caller in the process shares one
_shared_mock: MockBackend | None = None


def get_backend(kind: str | None = None, **kwargs: Any) -> RestaurantBackend:
    """
    Get a restaurant backend instance.

    This is the main entry point for obtaining a backend. Use this factory
    function rather than instantiating adapters directly.

    Args:
        kind: "http" or "mock". Defaults to settings.RESTAURANT_BACKEND.
        **kwargs: Additional arguments passed to HttpBackend
            (e.g. http_client for testing).

    Returns:
        An adapter implementing the RestaurantBackend protocol.

    Raises:
        ValueError: If the kind is not supported.

    Example:
        backend = get_backend()
        try:
            dishes = await backend.list_dishes()
        finally:
            await backend.close()
    """
    global _shared_mock

    kind = kind or settings.RESTAURANT_BACKEND
    if kind == MOCK:
        if _shared_mock is None:
            _shared_mock = MockBackend()
        return _shared_mock
    elif kind == HTTP:
        return HttpBackend(
            base_url=kwargs.pop("base_url", settings.RESTAURANT_API_URL),
            timeout=kwargs.pop("timeout", settings.RESTAURANT_API_TIMEOUT),
            **kwargs,
        )
    else:
        raise ValueError(
            f"Unsupported restaurant backend: {kind}. Supported: {HTTP}, {MOCK}"
        )


__all__ = [
    "BackendAPIError",
    "BackendAuthError",
    "BackendError",
    "BackendNotFoundError",
    "HttpBackend",
    "MockBackend",
    "RestaurantBackend",
    "get_backend",
]
