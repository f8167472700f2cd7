from typing import Any


class ApiError(Exception):
    """Error returned by, or raised while talking to, the admin API."""

    def __init__(self, message: str, status_code: int = 500, errors: dict[str, Any] | None = None):
        self.message = message
        self.status_code = status_code
        self.errors = errors or {}
        super().__init__(self.message)


class NotFoundError(ApiError):
    """Raised on 404 responses."""
    pass


class ValidationFailed(ApiError):
    """Raised on 400/422 responses; `errors` maps field to message."""
    pass
