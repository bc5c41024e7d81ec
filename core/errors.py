"""
core/errors.py -- Base error taxonomy shared by every layer.

Every expected failure is an AppError subclass carrying the HTTP status and
the public message. The class name is the internal error kind: it is logged,
never sent to clients. api/main.py turns any AppError into the uniform
{"success": false, "message": ...} envelope.

Layer rule: core/ is the kernel. No imports from api/, auth/, blog/, client/.
"""

from __future__ import annotations


class AppError(Exception):
    """Base class for errors that map onto a client-facing response."""

    status_code: int = 500
    message: str = "An unexpected error occurred."

    def __init__(self, message: str | None = None) -> None:
        if message is not None:
            self.message = message
        super().__init__(self.message)

    @property
    def kind(self) -> str:
        return type(self).__name__


class ValidationFailed(AppError):
    status_code = 400
    message = "Request validation failed."

    def __init__(self, message: str | None = None, errors: list[dict] | None = None) -> None:
        super().__init__(message)
        self.errors = errors or []


class NotFound(AppError):
    status_code = 404
    message = "Resource not found."


class Forbidden(AppError):
    status_code = 403
    message = "You do not have permission to perform this action."
