"""
Exception classes for the PocketBase SDK.
"""

from typing import Any, Optional


class PocketBaseError(Exception):
    """Base exception for all PocketBase SDK errors."""
    pass


class InvalidEndpointError(PocketBaseError):
    """Raised when a request URL cannot be built from the configured base URL."""
    pass


class ClientResponseError(PocketBaseError):
    """Raised when the server answers with an error status."""

    def __init__(self, status: int, url: str, data: Optional[Any] = None):
        message = data.get("message") if isinstance(data, dict) else None
        super().__init__(f"API error {status} for {url}: {message or data}")
        self.status = status
        self.url = url
        self.data = data


class RealtimeDecodeError(PocketBaseError):
    """Raised when a realtime message payload cannot be decoded."""
    pass


class InvalidFilterError(PocketBaseError):
    """Raised when a filter expression is malformed."""
    pass
