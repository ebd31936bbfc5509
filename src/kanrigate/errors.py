"""
Exception types raised by kanrigate.
"""
from typing import Optional


class KanriGateError(Exception):
    """Base exception for all kanrigate errors."""

    def __init__(self, message: str, status: Optional[int] = None) -> None:
        super().__init__(message)
        self.status = status


class NotFound(KanriGateError):
    """Raised when an object is absent on delete or lookup."""
    pass


class AlreadyExists(KanriGateError):
    """Raised when an object is already present on create."""
    pass


class MalformedCredential(KanriGateError):
    """Raised when a credential secret lacks a required payload field."""
    pass


class EncodingError(KanriGateError):
    """Raised when a credential payload is not valid text."""
    pass


class RemoteUnavailable(KanriGateError):
    """Raised for any other failure talking to the cluster API."""
    pass


class InvalidName(KanriGateError, ValueError):
    """Raised when a name segment cannot be encoded unambiguously."""
    pass


class ConfigError(KanriGateError):
    """Raised when the configuration cannot be loaded or is invalid."""
    pass
