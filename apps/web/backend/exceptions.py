"""Restaurant backend exceptions."""


class BackendError(Exception):
    """Base exception for restaurant backend errors."""

    def __init__(self, message: str, path: str | None = None) -> None:
        self.message = message
        self.path = path
        super().__init__(message)


class BackendAuthError(BackendError):
    """Customer credentials were rejected."""


class BackendAPIError(BackendError):
    """Request to the restaurant backend failed."""

    def __init__(
        self,
        message: str,
        path: str | None = None,
        status_code: int | None = None,
        response_body: str | None = None,
    ) -> None:
        super().__init__(message, path)
        self.status_code = status_code
        self.response_body = response_body


class BackendNotFoundError(BackendAPIError):
    """The requested record does not exist on the backend."""
