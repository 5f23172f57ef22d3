"""Failure taxonomy shared by the store, graph and facade.

Every failure carries a ``kind`` string; the tool layer turns it into an
``{"error": kind, "message": ...}`` payload.
"""

from __future__ import annotations


class ThinkError(Exception):
    """Base class for every failure an operation reports to its caller."""

    kind = "ThinkError"

    def __init__(self, message: str, **context: object) -> None:
        super().__init__(message)
        self.message = message
        self.context = context

    def to_payload(self) -> dict:
        return {"error": self.kind, "message": self.message, **self.context}


class InvalidName(ThinkError):
    kind = "InvalidName"


class InvalidArgument(ThinkError):
    kind = "InvalidArgument"


class NotFound(ThinkError):
    kind = "NotFound"


class LinkError(ThinkError):
    """A relationship could not be recorded."""


class SelfReference(LinkError):
    kind = "SelfReference"


class TargetNotFound(LinkError):
    kind = "TargetNotFound"


class FutureReference(LinkError):
    kind = "FutureReference"


class StorageFailure(ThinkError):
    kind = "StorageFailure"


class CorruptSession(StorageFailure):
    """A session file exists but does not hold a thought list."""
