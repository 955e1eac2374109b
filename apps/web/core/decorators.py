"""
Decorators for request handling and validation.
"""

import json
import logging
from collections.abc import Callable
from functools import wraps
from typing import Any

from django.core.cache import cache
from django.http import HttpRequest, JsonResponse

from apps.web.backend import BackendAuthError
from apps.web.ordering.exceptions import (
    OrderingError,
    PreconditionError,
    RemoteError,
    ValidationError,
)

logger = logging.getLogger(__name__)

IDEMPOTENCY_TTL = 86400  # 24 hours


def idempotency_key_required(view_func: Callable[..., Any]) -> Callable[..., Any]:
    """
    Decorator that requires an Idempotency-Key header for POST requests.

    The restaurant backend has no idempotency key of its own, so a replayed
    submission (double click, retry after a dropped response) would create a
    second order. If the same key is seen again for the same customer, the
    cached response from the first request is returned instead.

    Usage:
        @idempotency_key_required
        def place_order(request):
            ...
    """

    @wraps(view_func)
    def wrapper(request: HttpRequest, *args: Any, **kwargs: Any) -> Any:
        if request.method != "POST":
            return view_func(request, *args, **kwargs)

        key = request.headers.get("Idempotency-Key")

        if not key:
            return JsonResponse(
                {"error": "Idempotency-Key header is required"},
                status=400,
            )

        customer = getattr(request, "customer", None)
        scope = customer.customer_id if customer else "anonymous"
        cache_key = f"idempotency:{scope}:{request.path}:{key}"
        cached = cache.get(cache_key)

        if cached:
            return JsonResponse(
                cached["data"],
                status=cached["status"],
            )

        response = view_func(request, *args, **kwargs)

        # Only successful responses are replayed; failures may be retried
        if response.status_code < 400:
            cache.set(
                cache_key,
                {
                    "data": json.loads(response.content),
                    "status": response.status_code,
                },
                timeout=IDEMPOTENCY_TTL,
            )

        return response

    return wrapper


def customer_required(view_func: Callable[..., Any]) -> Callable[..., Any]:
    """Reject requests without a signed-in customer with a JSON 401."""

    @wraps(view_func)
    def wrapper(request: HttpRequest, *args: Any, **kwargs: Any) -> Any:
        if getattr(request, "customer", None) is None:
            return JsonResponse({"error": "Please sign in first"}, status=401)
        return view_func(request, *args, **kwargs)

    return wrapper


def ordering_errors_as_json(view_func: Callable[..., Any]) -> Callable[..., Any]:
    """
    Translate ordering errors into JSON responses.

    ValidationError -> 400, PreconditionError -> 409, RemoteError -> 502,
    rejected credentials -> 401.
    """

    @wraps(view_func)
    def wrapper(request: HttpRequest, *args: Any, **kwargs: Any) -> Any:
        try:
            return view_func(request, *args, **kwargs)
        except BackendAuthError as e:
            return JsonResponse({"error": e.message}, status=401)
        except OrderingError as e:
            if isinstance(e, ValidationError):
                status = 400
            elif isinstance(e, PreconditionError):
                status = 409
            elif isinstance(e, RemoteError):
                status = 502
                logger.warning("%s %s: %s", request.method, request.path, e)
            else:
                status = 400

            payload: dict[str, Any] = {
                "error": e.message,
                "error_type": type(e).__name__,
                "is_retryable": e.is_retryable,
            }
            if e.order_id:
                payload["order_id"] = e.order_id
            return JsonResponse(payload, status=status)

    return wrapper
