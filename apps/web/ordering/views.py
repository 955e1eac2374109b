"""
Ordering API views - JSON endpoints for a dine-in session.

Session state (customer, cart, open order and its cached status) lives in
the Django session. Every view builds a fresh backend for the request and
closes it before returning.
"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from django.http import HttpRequest, JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import (
    require_GET,
    require_http_methods,
    require_POST,
)

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from apps.web.backend import (
    BackendError,
    BackendNotFoundError,
    RestaurantBackend,
    get_backend,
)
from apps.web.core.decorators import (
    customer_required,
    idempotency_key_required,
    ordering_errors_as_json,
)
from apps.web.ordering import services
from apps.web.ordering.cart import Cart
from apps.web.ordering.exceptions import RemoteError, ValidationError
from apps.web.ordering.lifecycle import OrderLifecycleController
from apps.web.ordering.serializers import (
    CartItemRequest,
    CartResponse,
    CustomerResponse,
    FeedbackListResponse,
    FeedbackRequest,
    FeedbackResponse,
    LoginRequest,
    MenuResponse,
    OrderHistoryResponse,
    OrderResponse,
    OrderSessionResponse,
    PlaceOrderRequest,
    QuantityRequest,
    RegisterRequest,
    TableResponse,
    TablesResponse,
    ValidationErrorDetail,
    ValidationErrorResponse,
)
from apps.web.ordering.session_store import DjangoSessionStore

T = TypeVar("T")
M = TypeVar("M", bound=BaseModel)


def _cors_headers() -> dict[str, str]:
    """CORS headers for the table-side frontend."""
    return {
        "Access-Control-Allow-Origin": "*",
        "Access-Control-Allow-Methods": "GET, POST, DELETE, OPTIONS",
        "Access-Control-Allow-Headers": "Content-Type, Idempotency-Key",
    }


def _json_response(data: dict[str, Any], status: int = 200) -> JsonResponse:
    """Create a JSON response with CORS headers."""
    response = JsonResponse(data, status=status)
    for key, value in _cors_headers().items():
        response[key] = value
    return response


def _parse_body(request: HttpRequest, model: type[M]) -> M | JsonResponse:
    """Validate the JSON body against model, or return a 400 response."""
    try:
        return model.model_validate_json(request.body or b"{}")
    except PydanticValidationError as e:
        errors = [
            ValidationErrorDetail(
                field=".".join(str(loc) for loc in err["loc"]) or "body",
                message=err["msg"],
            )
            for err in e.errors()
        ]
        response = ValidationErrorResponse(details=errors)
        return _json_response(response.model_dump(), status=400)


def _call_backend(work: Callable[[RestaurantBackend], Awaitable[T]]) -> T:
    """Run work against a fresh backend, closing it afterwards."""

    async def runner() -> T:
        backend = get_backend()
        try:
            return await work(backend)
        finally:
            await backend.close()

    return asyncio.run(runner())


def _store(request: HttpRequest) -> DjangoSessionStore:
    return DjangoSessionStore(request.session)


def _cart_response(cart: Cart) -> CartResponse:
    return CartResponse(
        items=cart.items,
        item_count=sum(item.quantity for item in cart),
        total=cart.total(),
    )


def _session_response(
    controller: OrderLifecycleController, include_order: bool = False
) -> dict[str, Any]:
    order = None
    report = controller.last_report
    if include_order and report is not None and report.order_id == controller.order_id:
        order = report.order
    response = OrderSessionResponse(
        state=controller.state,
        order_id=controller.order_id,
        status=controller.status,
        order=order,
        cart=_cart_response(controller.cart),
    )
    return response.model_dump(mode="json")


# =============================================================================
# Customer session
# =============================================================================


@csrf_exempt
@require_POST
@ordering_errors_as_json
def login(request: HttpRequest) -> JsonResponse:
    """
    POST /api/login

    Authenticate against the restaurant backend and remember the customer
    in the session.
    """
    body = _parse_body(request, LoginRequest)
    if isinstance(body, JsonResponse):
        return body

    store = _store(request)
    customer = _call_backend(
        lambda backend: services.login(backend, store, body.email, body.password)
    )
    return _json_response(CustomerResponse(customer=customer).model_dump(mode="json"))


@csrf_exempt
@require_POST
def logout(request: HttpRequest) -> JsonResponse:
    """
    POST /api/logout

    Release the customer's tables and clear all session state.
    """
    store = _store(request)
    _call_backend(lambda backend: services.logout(backend, store))
    return _json_response({"status": "signed_out"})


@require_GET
@customer_required
@ordering_errors_as_json
def profile(request: HttpRequest) -> JsonResponse:
    """
    GET /api/profile

    The signed-in customer, reloaded from the backend.
    """
    customer = request.customer  # type: ignore[attr-defined]
    store = _store(request)
    fresh = _call_backend(
        lambda backend: services.refresh_customer(backend, store, customer)
    )
    return _json_response(CustomerResponse(customer=fresh).model_dump(mode="json"))


@csrf_exempt
@require_POST
@ordering_errors_as_json
def register(request: HttpRequest) -> JsonResponse:
    """
    POST /api/register

    Create a customer account. Does not sign the new customer in.
    """
    body = _parse_body(request, RegisterRequest)
    if isinstance(body, JsonResponse):
        return body

    customer = _call_backend(lambda backend: services.register(backend, body))
    return _json_response(
        CustomerResponse(customer=customer).model_dump(mode="json"), status=201
    )


# =============================================================================
# Menu and tables
# =============================================================================


@require_GET
@ordering_errors_as_json
def menu(request: HttpRequest) -> JsonResponse:
    """
    GET /api/menu?category=<dish type>

    The category filter matches any of a dish's types, case-insensitively.
    """

    async def load(backend: RestaurantBackend) -> list:
        try:
            return await backend.list_dishes()
        except BackendError as e:
            raise RemoteError(f"Could not load menu: {e.message}") from e

    dishes = _call_backend(load)
    category = request.GET.get("category", "").strip().lower()
    if category:
        dishes = [
            d for d in dishes if category in (t.lower() for t in d.dish_types)
        ]
    return _json_response(MenuResponse(dishes=dishes).model_dump(mode="json"))


@require_GET
@ordering_errors_as_json
def available_tables(_request: HttpRequest) -> JsonResponse:
    """GET /api/tables/available"""
    tables = _call_backend(services.available_tables)
    return _json_response(TablesResponse(tables=tables).model_dump(mode="json"))


@csrf_exempt
@require_POST
@customer_required
@ordering_errors_as_json
def claim_table(request: HttpRequest, table_no: str) -> JsonResponse:
    """POST /api/tables/<table_no>/claim"""
    customer = request.customer  # type: ignore[attr-defined]
    table = _call_backend(
        lambda backend: services.claim_table(backend, table_no, customer)
    )
    return _json_response(TableResponse(table=table).model_dump(mode="json"))


@require_GET
@ordering_errors_as_json
def table_detail(_request: HttpRequest, table_no: str) -> JsonResponse:
    """GET /api/tables/<table_no>"""
    try:
        table = _call_backend(
            lambda backend: services.table_details(backend, table_no)
        )
    except RemoteError as e:
        if e.status_code == 404:
            return _json_response({"error": "Table not found"}, status=404)
        raise
    return _json_response(TableResponse(table=table).model_dump(mode="json"))


# =============================================================================
# Cart
# =============================================================================


@csrf_exempt
@require_http_methods(["GET", "DELETE"])
def cart(request: HttpRequest) -> JsonResponse:
    """
    GET /api/cart - Current cart contents
    DELETE /api/cart - Empty the cart
    """
    session_cart = Cart(_store(request))
    if request.method == "DELETE":
        session_cart.clear()
    return _json_response(_cart_response(session_cart).model_dump(mode="json"))


@csrf_exempt
@require_POST
@ordering_errors_as_json
def cart_add(request: HttpRequest) -> JsonResponse:
    """
    POST /api/cart/items

    Add a dish to the cart, merging with an existing line. The dish is
    looked up on the backend so the cart keeps its current name and price.
    """
    body = _parse_body(request, CartItemRequest)
    if isinstance(body, JsonResponse):
        return body

    async def lookup(backend: RestaurantBackend):
        try:
            return await backend.get_dish(body.dish_id)
        except BackendNotFoundError as e:
            raise ValidationError(f"Dish {body.dish_id} not found") from e
        except BackendError as e:
            raise RemoteError(f"Could not load dish: {e.message}") from e

    dish = _call_backend(lookup)
    session_cart = Cart(_store(request))
    session_cart.add_item(dish, body.quantity)
    return _json_response(_cart_response(session_cart).model_dump(mode="json"))


@csrf_exempt
@require_http_methods(["POST", "DELETE"])
def cart_item(request: HttpRequest, dish_id: str) -> JsonResponse:
    """
    POST /api/cart/items/<dish_id> - Set the quantity (0 or less removes)
    DELETE /api/cart/items/<dish_id> - Remove the line
    """
    session_cart = Cart(_store(request))
    if request.method == "DELETE":
        session_cart.remove_item(dish_id)
    else:
        body = _parse_body(request, QuantityRequest)
        if isinstance(body, JsonResponse):
            return body
        session_cart.update_quantity(dish_id, body.quantity)
    return _json_response(_cart_response(session_cart).model_dump(mode="json"))


# =============================================================================
# Orders
# =============================================================================


@csrf_exempt
@require_http_methods(["GET", "POST"])
@customer_required
@idempotency_key_required
@ordering_errors_as_json
def orders(request: HttpRequest) -> JsonResponse:
    """
    GET /api/orders - Order history for the signed-in customer
    POST /api/orders - Place the cart as a new order

    POST requires an Idempotency-Key header.
    """
    customer = request.customer  # type: ignore[attr-defined]

    if request.method == "GET":
        history = _call_backend(
            lambda backend: services.order_history(backend, customer)
        )
        return _json_response(
            OrderHistoryResponse(orders=history).model_dump(mode="json")
        )

    body = _parse_body(request, PlaceOrderRequest)
    if isinstance(body, JsonResponse):
        return body

    store = _store(request)
    order = _call_backend(
        lambda backend: OrderLifecycleController(
            backend, store, owner=customer.customer_id
        ).place_order(body.table_no, customer.customer_id)
    )
    return _json_response(
        OrderResponse(order=order).model_dump(mode="json"), status=201
    )


@require_GET
@customer_required
@ordering_errors_as_json
def current_order(request: HttpRequest) -> JsonResponse:
    """
    GET /api/orders/current

    Reconcile the session's order with the backend and report where the
    session stands in the lifecycle.
    """
    customer = request.customer  # type: ignore[attr-defined]
    store = _store(request)

    async def restore(backend: RestaurantBackend) -> dict[str, Any]:
        controller = OrderLifecycleController(backend, store)
        await controller.restore_session(customer.customer_id)
        return _session_response(controller, include_order=True)

    return _json_response(_call_backend(restore))


@csrf_exempt
@require_POST
@customer_required
@ordering_errors_as_json
def current_order_add_items(request: HttpRequest) -> JsonResponse:
    """
    POST /api/orders/current/items

    Append the cart to the open order. The order goes back to unserved.
    """
    customer = request.customer  # type: ignore[attr-defined]
    store = _store(request)
    order = _call_backend(
        lambda backend: OrderLifecycleController(
            backend, store, owner=customer.customer_id
        ).add_items_to_open_order()
    )
    return _json_response(OrderResponse(order=order).model_dump(mode="json"))


@csrf_exempt
@require_POST
@customer_required
@idempotency_key_required
@ordering_errors_as_json
def current_order_pay(request: HttpRequest) -> JsonResponse:
    """
    POST /api/orders/current/pay

    Pay the open order once it has been served. Requires an Idempotency-Key
    header.
    """
    customer = request.customer  # type: ignore[attr-defined]
    store = _store(request)
    order = _call_backend(
        lambda backend: OrderLifecycleController(
            backend, store, owner=customer.customer_id
        ).process_payment()
    )
    return _json_response(OrderResponse(order=order).model_dump(mode="json"))


@require_GET
@customer_required
@ordering_errors_as_json
def order_detail(request: HttpRequest, order_id: str) -> JsonResponse:
    """
    GET /api/orders/<order_id>

    Only the customer who placed the order can see it.
    """
    customer = request.customer  # type: ignore[attr-defined]
    store = _store(request)

    async def fetch(backend: RestaurantBackend):
        return await OrderLifecycleController(backend, store).refresh_status(order_id)

    try:
        report = _call_backend(fetch)
    except RemoteError as e:
        if e.status_code == 404:
            return _json_response({"error": "Order not found"}, status=404)
        raise

    if report.order is None or report.order.customer_id != customer.customer_id:
        return _json_response({"error": "Order not found"}, status=404)

    return _json_response(OrderResponse(order=report.order).model_dump(mode="json"))


# =============================================================================
# Feedback
# =============================================================================


@csrf_exempt
@require_http_methods(["GET", "POST"])
@customer_required
@ordering_errors_as_json
def feedback(request: HttpRequest) -> JsonResponse:
    """
    GET /api/feedback - everything the customer has written
    POST /api/feedback - leave feedback on an order; defaults to the
    session's open order
    """
    customer = request.customer  # type: ignore[attr-defined]

    if request.method == "GET":
        entries = _call_backend(
            lambda backend: services.customer_feedback(backend, customer)
        )
        return _json_response(
            FeedbackListResponse(feedback=entries).model_dump(mode="json")
        )

    body = _parse_body(request, FeedbackRequest)
    if isinstance(body, JsonResponse):
        return body

    store = _store(request)
    saved = _call_backend(
        lambda backend: services.submit_feedback(
            backend, store, customer, body.feedback, body.order_id
        )
    )
    return _json_response(
        FeedbackResponse(feedback=saved).model_dump(mode="json"), status=201
    )


@require_GET
@customer_required
@ordering_errors_as_json
def order_feedback(request: HttpRequest, order_id: str) -> JsonResponse:
    """
    GET /api/orders/<order_id>/feedback

    Only the customer who placed the order can read its feedback.
    """
    customer = request.customer  # type: ignore[attr-defined]
    try:
        entries = _call_backend(
            lambda backend: services.order_feedback(backend, order_id, customer)
        )
    except RemoteError as e:
        if e.status_code == 404:
            return _json_response({"error": "Order not found"}, status=404)
        raise
    return _json_response(
        FeedbackListResponse(feedback=entries).model_dump(mode="json")
    )
