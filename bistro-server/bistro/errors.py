from __future__ import annotations


class MenuError(Exception):
    """Base class for failures raised by the menu and rating services.

    Each subclass carries a stable ``code`` and the HTTP status the API maps it
    to; ``message`` is the user-facing reason.
    """

    code = "menu_error"
    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFound(MenuError):
    code = "not_found"
    status_code = 404


class InvalidArgument(MenuError):
    code = "invalid_argument"
    status_code = 400


class InvalidState(MenuError):
    code = "invalid_state"
    status_code = 400


class Unauthorized(MenuError):
    code = "unauthorized"
    status_code = 401


class StorageFailure(MenuError):
    code = "storage_failure"
    status_code = 503
