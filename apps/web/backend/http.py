"""HTTP restaurant backend - httpx client for the remote REST service."""

import asyncio
import logging
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import httpx
from tableside_schemas import (
    Customer,
    DishRef,
    Feedback,
    NewCustomer,
    NewOrder,
    Order,
    OrderUpdate,
    Table,
    TableUpdate,
)

from apps.web.backend import wire
from apps.web.backend.exceptions import (
    BackendAPIError,
    BackendAuthError,
    BackendNotFoundError,
)

logger = logging.getLogger(__name__)


@contextmanager
def _decoding(path: str) -> Iterator[None]:
    """Raise BackendAPIError for records the wire adapter cannot read."""
    try:
        yield
    except (ValueError, TypeError, AttributeError) as e:
        # pydantic.ValidationError is a ValueError
        raise BackendAPIError(
            f"Malformed response from {path}: {e}", path=path
        ) from e


class HttpBackend:
    """
    Restaurant backend adapter speaking the REST contract over httpx.

    Only GET requests are retried. POST /Order has no idempotency key and
    PUT /Order/{id} appends dishes, so replaying either could duplicate
    items on the backend.
    """

    # Retry configuration
    MAX_RETRIES = 3
    RETRY_BACKOFF_BASE = 2.0  # Exponential backoff base
    RETRY_BACKOFF_SCALE = 0.5  # Seconds for the first backoff step

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """
        Initialize the backend adapter.

        Args:
            base_url: Root URL of the REST service, e.g. "http://localhost:3000".
            timeout: Per-request timeout in seconds.
            http_client: Optional HTTP client for dependency injection (testing).
        """
        self.base_url = base_url.rstrip("/")
        self._client = http_client or httpx.AsyncClient(
            timeout=timeout,
            headers={"Content-Type": "application/json"},
        )
        self._owns_client = http_client is None

    async def close(self) -> None:
        """Close the HTTP client if we own it."""
        if self._owns_client:
            await self._client.aclose()

    def url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    # =========================================================================
    # HTTP Helpers
    # =========================================================================

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        """
        Make a request and return the decoded JSON body.

        GETs are retried with exponential backoff on transport errors and
        5xx responses; everything else is attempted once.

        Raises:
            BackendNotFoundError: On 404.
            BackendAPIError: On any other failure.
        """
        attempts = self.MAX_RETRIES if method == "GET" else 1
        last_error: Exception | None = None

        for attempt in range(attempts):
            try:
                response = await self._client.request(method, self.url(path), **kwargs)

                if response.status_code == 404:
                    raise BackendNotFoundError(
                        f"{method} {path} not found",
                        path=path,
                        status_code=404,
                        response_body=response.text,
                    )

                if 400 <= response.status_code < 500:
                    raise BackendAPIError(
                        self._error_message(response, method, path),
                        path=path,
                        status_code=response.status_code,
                        response_body=response.text,
                    )

                response.raise_for_status()
                if not response.content:
                    return None
                return response.json()

            except (httpx.RequestError, httpx.HTTPStatusError) as e:
                last_error = e
                if attempt < attempts - 1:
                    backoff = (
                        self.RETRY_BACKOFF_SCALE * self.RETRY_BACKOFF_BASE**attempt
                    )
                    logger.warning(
                        "Backend %s %s failed (attempt %d/%d), retry in %.1fs: %s",
                        method,
                        path,
                        attempt + 1,
                        attempts,
                        backoff,
                        str(e),
                    )
                    await asyncio.sleep(backoff)
            except ValueError as e:
                raise BackendAPIError(
                    f"Invalid JSON from {method} {path}: {e}",
                    path=path,
                ) from e

        status_code = None
        if isinstance(last_error, httpx.HTTPStatusError):
            status_code = last_error.response.status_code

        logger.error("Backend %s %s failed: %s", method, path, last_error)
        raise BackendAPIError(
            f"{method} {path} failed after {attempts} attempt(s): {last_error}",
            path=path,
            status_code=status_code,
        )

    def _error_message(self, response: httpx.Response, method: str, path: str) -> str:
        """Prefer the backend's own message when it sends one."""
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict) and body.get("message"):
            return str(body["message"])
        return f"{method} {path} returned {response.status_code}"

    async def _get_list(self, path: str) -> list[dict[str, Any]]:
        data = await self._request("GET", path)
        return data if isinstance(data, list) else []

    # =========================================================================
    # Customers
    # =========================================================================

    async def login(self, email: str, password: str) -> Customer:
        """POST /Customer/login; 401/403 become BackendAuthError."""
        try:
            data = await self._request(
                "POST",
                "/Customer/login",
                json={"email": email, "password": password},
            )
        except BackendAPIError as e:
            if e.status_code in (400, 401, 403, 404):
                raise BackendAuthError(
                    "Invalid email or password",
                    path="/Customer/login",
                ) from e
            raise

        if not isinstance(data, dict):
            raise BackendAuthError(
                "No customer in login response", path="/Customer/login"
            )

        # Some backend versions wrap the record
        with _decoding("/Customer/login"):
            return wire.customer_from_wire(data.get("customer", data))

    async def register_customer(self, customer: NewCustomer) -> Customer:
        payload = wire.new_customer_to_wire(customer)
        logger.info("Registering customer %s", payload["Email"])
        data = await self._request("POST", "/Customer", json=payload)
        if not isinstance(data, dict):
            raise BackendAPIError(
                "Empty response from POST /Customer", path="/Customer"
            )

        payload.pop("Password")
        with _decoding("/Customer"):
            return wire.customer_from_wire({**payload, **data.get("customer", data)})

    async def get_customer(self, customer_id: str) -> Customer:
        path = f"/Customer/{customer_id}"
        data = await self._request("GET", path)
        if not isinstance(data, dict):
            raise BackendNotFoundError(
                f"Customer not found: {customer_id}", path="/Customer"
            )
        with _decoding(path):
            return wire.customer_from_wire({"Customer Id": customer_id, **data})

    # =========================================================================
    # Catalog
    # =========================================================================

    async def list_dishes(self) -> list[DishRef]:
        raws = await self._get_list("/Dish")
        with _decoding("/Dish"):
            return [wire.dish_from_wire(raw) for raw in raws]

    async def get_dish(self, dish_id: str) -> DishRef:
        path = f"/Dish/{dish_id}"
        data = await self._request("GET", path)
        with _decoding(path):
            return wire.dish_from_wire(data)

    # =========================================================================
    # Tables
    # =========================================================================

    async def list_tables(self) -> list[Table]:
        raws = await self._get_list("/Table")
        with _decoding("/Table"):
            return [wire.table_from_wire(raw) for raw in raws]

    async def get_table(self, table_no: str) -> Table:
        data = await self._request("GET", f"/Table/{table_no}")
        if not isinstance(data, dict):
            raise BackendNotFoundError(f"Table not found: {table_no}", path="/Table")
        with _decoding(f"/Table/{table_no}"):
            return wire.table_from_wire({"Table No": table_no, **data})

    async def list_tables_for_customer(self, customer_id: str) -> list[Table]:
        path = f"/Table/customer/{customer_id}"
        raws = await self._get_list(path)
        with _decoding(path):
            return [wire.table_from_wire(raw) for raw in raws]

    async def update_table(self, table_no: str, update: TableUpdate) -> Table:
        payload = wire.table_update_to_wire(update)
        logger.info("Updating table %s with %s", table_no, payload)
        data = await self._request("PUT", f"/Table/{table_no}", json=payload)
        if isinstance(data, dict):
            with _decoding(f"/Table/{table_no}"):
                return wire.table_from_wire({"Table No": table_no, **data})
        return Table(table_no=table_no, **update.model_dump(exclude_unset=True))

    # =========================================================================
    # Orders
    # =========================================================================

    async def create_order(self, order: NewOrder) -> Order:
        payload = wire.new_order_to_wire(order)
        logger.info(
            "Creating order: table=%s dishes=%d amount=%s",
            order.table_no,
            len(order.lines),
            order.amount,
        )
        data = await self._request("POST", "/Order", json=payload)
        if not isinstance(data, dict):
            raise BackendAPIError("Empty response from POST /Order", path="/Order")

        with _decoding("/Order"):
            created = wire.order_from_wire({**payload, **data})
        if not created.order_id:
            raise BackendAPIError(
                "No order identifier in POST /Order response",
                path="/Order",
                response_body=str(data),
            )
        return created

    async def get_order(self, order_id: str) -> Order:
        data = await self._request("GET", f"/Order/{order_id}")
        if not isinstance(data, dict):
            raise BackendNotFoundError(f"Order not found: {order_id}", path="/Order")
        with _decoding(f"/Order/{order_id}"):
            return wire.order_from_wire({"Order Id": order_id, **data})

    async def update_order(self, order_id: str, update: OrderUpdate) -> Order:
        payload = wire.order_update_to_wire(update)
        logger.info("Updating order %s fields=%s", order_id, sorted(payload))
        data = await self._request("PUT", f"/Order/{order_id}", json=payload)
        if isinstance(data, dict):
            with _decoding(f"/Order/{order_id}"):
                return wire.order_from_wire({"Order Id": order_id, **data})
        return await self.get_order(order_id)

    async def list_orders_for_customer(self, customer_id: str) -> list[Order]:
        """
        GET /Order/customer/{id}, falling back to filtering GET /Order.

        Older backends do not expose the per-customer route.
        """
        try:
            raws = await self._get_list(f"/Order/customer/{customer_id}")
        except BackendAPIError as e:
            logger.warning(
                "Per-customer order lookup failed, filtering all orders: %s", e
            )
            everything = await self._get_list("/Order")
            with _decoding("/Order"):
                raws = [
                    raw
                    for raw in everything
                    if wire.customer_id_of(raw) == customer_id
                ]
        with _decoding(f"/Order/customer/{customer_id}"):
            return [wire.order_from_wire(raw) for raw in raws]

    # =========================================================================
    # Feedback
    # =========================================================================

    async def submit_feedback(self, feedback: Feedback) -> Feedback:
        payload = wire.feedback_to_wire(feedback)
        data = await self._request("POST", "/feedback", json=payload)
        if isinstance(data, dict):
            with _decoding("/feedback"):
                return wire.feedback_from_wire({**payload, **data})
        return feedback

    async def list_feedback_for_order(self, order_id: str) -> list[Feedback]:
        path = f"/feedback/order/{order_id}"
        raws = await self._get_list(path)
        with _decoding(path):
            return [wire.feedback_from_wire(raw) for raw in raws]

    async def list_feedback_for_customer(self, customer_id: str) -> list[Feedback]:
        path = f"/feedback/customer/{customer_id}"
        raws = await self._get_list(path)
        with _decoding(path):
            return [wire.feedback_from_wire(raw) for raw in raws]
