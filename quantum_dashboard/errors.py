"""
Exception types raised by the loaders, the cache and the request layer.

The HTTP layer maps InvalidRequestError to 400 and UpstreamUnavailableError
to 503; UnitLoadError never leaves the cache refresher.
"""

from typing import Any


class QuantumDashboardError(Exception):
    """Base error carrying a message and structured context for logging."""

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.context = context or {}
        self.cause = cause

    def to_dict(self) -> dict[str, Any]:
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "context": self.context,
            "cause": str(self.cause) if self.cause else None,
        }


class UnitLoadError(QuantumDashboardError):
    """Download or parse failure for a single unit export."""

    def __init__(self, unit: str, message: str, cause: Exception | None = None):
        super().__init__(message, context={"unit": unit}, cause=cause)
        self.unit = unit


class InvalidRequestError(QuantumDashboardError):
    """Missing or malformed request parameter."""


class UpstreamUnavailableError(QuantumDashboardError):
    """No unit could be loaded and there is no cached data to fall back on."""
