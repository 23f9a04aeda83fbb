"""Exception hierarchy for deltasync.

Conditions a caller is expected to handle (an unknown context, a missing
export callback or restore provider) raise a subclass of
:class:`DeltaSyncError`. Failures coming from a storage backend are not
wrapped and reach the caller unchanged.
"""
from __future__ import annotations

from typing import Any


class DeltaSyncError(Exception):
    """Base class for all deltasync errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": type(self).__name__,
            "message": self.message,
            "details": self.details,
        }


class ContextNotFoundError(DeltaSyncError):
    """No snapshot exists for the requested context id."""

    def __init__(self, context_id: Any) -> None:
        super().__init__(
            f"Context {context_id!r} not found",
            details={"context_id": context_id},
        )
        self.context_id = context_id


class MissingCollaboratorError(DeltaSyncError):
    """An operation needs a callback that was never configured."""


class NoExportCallbackError(MissingCollaboratorError):
    def __init__(self) -> None:
        super().__init__("No export callback configured")


class NoRestoreProviderError(MissingCollaboratorError):
    def __init__(self) -> None:
        super().__init__("No restore provider configured")


class InvalidStateError(DeltaSyncError, TypeError):
    """A state or delta does not have the required shape."""
