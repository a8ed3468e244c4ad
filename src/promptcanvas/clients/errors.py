"""Exceptions raised by the backend clients."""

from __future__ import annotations


class ClientError(Exception):
    """Base exception for failed backend calls.

    Attributes:
        message: Human-readable error description
        method: HTTP method of the failed call
        url: Request URL
        status_code: HTTP status code, when a response was received
    """

    def __init__(
        self,
        message: str,
        *,
        method: str,
        url: str,
        status_code: int | None = None,
    ) -> None:
        self.message = message
        self.method = method
        self.url = url
        self.status_code = status_code
        super().__init__(str(self))

    def __str__(self) -> str:
        parts = [self.message, f"{self.method} {self.url}"]
        if self.status_code is not None:
            parts.append(f"status={self.status_code}")
        return " | ".join(parts)


class GenerationError(ClientError):
    """Image generation failed (transport, status or payload)."""


class FavoritesError(ClientError):
    """Adding or removing a favorite failed."""
