"""Console error types.

Three failure categories reach callers:
- RequestCancelled: a newer request for the same concern superseded this one.
  Benign; never surfaced to users.
- ValidationError: rejected client-side before any network call.
- UpstreamError: the records API answered with a failure (or was unreachable).
"""
from __future__ import annotations

from typing import Any, Dict, Optional


class ConsoleError(Exception):
    """Base class for console errors."""


class RequestCancelled(ConsoleError):
    """Raised when a response arrives for a superseded request."""

    def __init__(self, concern: str | None = None):
        self.concern = concern
        super().__init__(f"Request cancelled: {concern or 'unknown'}")


class ValidationError(ConsoleError):
    """Client-side validation failure tied to an optional form field."""

    def __init__(self, message: str, field: str | None = None):
        self.message = message
        self.field = field
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        payload = {'error': self.message}
        if self.field:
            payload['field'] = self.field
        return payload


class UpstreamError(ConsoleError):
    """Failure reported by (or while reaching) the records API."""

    def __init__(
        self,
        message: str,
        status_code: int = 502,
        code: Optional[str] = None,
        payload: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.code = code
        self.payload = payload or {}
        super().__init__(message)

    @classmethod
    def from_response(cls, response, fallback: str = 'Request to records API failed') -> 'UpstreamError':
        """Build an error from a failed HTTP response, preferring the server's message."""
        payload: Dict[str, Any] = {}
        try:
            data = response.json()
            if isinstance(data, dict):
                payload = data
        except ValueError:
            pass

        message = payload.get('message') or payload.get('error') or fallback
        return cls(
            str(message),
            status_code=getattr(response, 'status_code', 502) or 502,
            code=payload.get('code'),
            payload=payload,
        )


class ExportError(ConsoleError):
    """An export could not be produced."""


class ExportValidationError(ExportError):
    """Export input contained a malformed row."""
