"""Ordering exceptions."""


class OrderingError(Exception):
    """Base exception for order lifecycle errors."""

    is_retryable = False

    def __init__(self, message: str, order_id: str | None = None) -> None:
        self.message = message
        self.order_id = order_id
        super().__init__(message)


class ValidationError(OrderingError):
    """Caller supplied missing or invalid input (empty cart, no table, ...)."""


class PreconditionError(OrderingError):
    """Action is blocked until the order reaches another state."""


class RemoteError(OrderingError):
    """
    The restaurant backend call failed.

    Local state is left untouched so the same action can be retried.
    """

    is_retryable = True

    def __init__(
        self,
        message: str,
        order_id: str | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message, order_id)
        self.status_code = status_code
