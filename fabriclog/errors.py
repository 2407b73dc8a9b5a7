"""Error kinds shared by the service and transport layers."""

from __future__ import annotations

from typing import Optional


class AppError(Exception):
    """Base class for application errors with a default message."""

    default_message = "application error"

    def __init__(self, message: Optional[str] = None) -> None:
        super().__init__(message if message is not None else self.default_message)


class NotFoundError(AppError):
    """The requested entity does not exist."""

    default_message = "not found"


class InvalidArgumentError(AppError):
    """The caller supplied an invalid argument."""

    default_message = "invalid argument"


class ConflictError(AppError):
    """The operation conflicts with existing state."""

    default_message = "conflict"