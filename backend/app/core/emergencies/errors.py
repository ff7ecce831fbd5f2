"""Domain errors raised by the dispatch core.

Each carries the HTTP status it maps to; the handlers in ``app.main`` turn
them into the ``{success, message, errors}`` envelope.
"""
from typing import Any


class DispatchError(Exception):
    status_code = 500
    default_message = "Dispatch error"

    def __init__(self, message: str | None = None, errors: dict[str, Any] | None = None):
        self.message = message or self.default_message
        self.errors = errors
        super().__init__(self.message)


class ValidationError(DispatchError):
    status_code = 400
    default_message = "Validation failed"


class InvalidIncidentType(DispatchError):
    status_code = 400
    default_message = "Invalid emergency type"


class InvalidStatus(DispatchError):
    status_code = 400
    default_message = "Invalid status"


class InvalidPriority(DispatchError):
    status_code = 400
    default_message = "Invalid priority level"


class IllegalTransition(DispatchError):
    status_code = 400
    default_message = "Illegal status transition"


class ResponderNotEligible(DispatchError):
    status_code = 400
    default_message = "Responder role is not eligible for this emergency type"


class ResponderNotFound(DispatchError):
    status_code = 404
    default_message = "Assigned user not found"


class IncidentNotFound(DispatchError):
    status_code = 404
    default_message = "Emergency not found"


class Forbidden(DispatchError):
    status_code = 403
    default_message = "Forbidden"


class ConcurrentModification(DispatchError):
    status_code = 409
    default_message = "Emergency was modified concurrently, reload and retry"
