"""Typed errors raised by the draw and winner service clients."""

from __future__ import annotations

from typing import Any, Optional


class DrawServiceError(Exception):
    """Base error carrying the name of the operation that failed."""

    code = "draw_service_error"

    def __init__(
        self,
        operation: str,
        message: str,
        *,
        status_code: Optional[int] = None,
        details: Any = None,
    ) -> None:
        super().__init__(f"{operation}: {message}")
        self.operation = operation
        self.message = message
        self.status_code = status_code
        self.details = details

    def to_json(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "operation": self.operation,
            "message": self.message,
            "status_code": self.status_code,
        }


class TransportError(DrawServiceError):
    """The remote service was unreachable or answered with an unexpected error."""

    code = "transport_error"


class NotFoundError(DrawServiceError):
    """No draw or winner exists for the requested key."""

    code = "not_found"


class ConflictError(DrawServiceError):
    """A draw already exists for the requested date."""

    code = "conflict"


class InvalidTransitionError(DrawServiceError):
    """A winner claim status outside Pending/Paid/Failed was requested."""

    code = "invalid_transition"


class DegradedDefaultsError(DrawServiceError):
    """The default-digit source was unavailable. Never raised, only reported."""

    code = "degraded_defaults"


__all__ = [
    "DrawServiceError",
    "TransportError",
    "NotFoundError",
    "ConflictError",
    "InvalidTransitionError",
    "DegradedDefaultsError",
]
