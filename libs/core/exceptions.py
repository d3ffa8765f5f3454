"""Base exceptions for the domain layer."""

from __future__ import annotations


class DomainError(Exception):
    """Base class for all domain level exceptions."""


class TransientRemoteError(DomainError):
    """Raised when the remote store or blob storage fails.

    Local state is left untouched; the caller may repeat the operation.
    """


class NotFoundError(DomainError):
    """Raised when an entity cannot be located."""


class ValidationError(DomainError):
    """Raised when data fails domain validation rules."""


class UnauthenticatedError(DomainError):
    """Raised when an operation needs a signed-in user and there is none."""


class InvalidStateError(DomainError):
    """Raised when the editor is asked for a transition its state forbids."""


# Alias to keep a generic name for error type hints
Error = DomainError

__all__ = [
    "DomainError",
    "TransientRemoteError",
    "NotFoundError",
    "ValidationError",
    "UnauthenticatedError",
    "InvalidStateError",
    "Error",
]
