"""
Customer middleware - attaches the signed-in customer to the request.
"""

from collections.abc import Callable

from django.http import HttpRequest, HttpResponse

from apps.web.ordering.services import current_customer
from apps.web.ordering.session_store import DjangoSessionStore


class CustomerMiddleware:
    """
    Middleware that attaches the current customer to the request.

    The customer record is whatever login stored in the session; it expires
    with the session key. Sets request.customer to a Customer or None.

    Must run after SessionMiddleware.
    """

    def __init__(self, get_response: Callable[[HttpRequest], HttpResponse]) -> None:
        self.get_response = get_response

    def __call__(self, request: HttpRequest) -> HttpResponse:
        store = DjangoSessionStore(request.session)
        request.customer = current_customer(store)  # type: ignore[attr-defined]
        return self.get_response(request)
