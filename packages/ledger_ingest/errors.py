"""Exceptions that abort a whole ingestion.

Only structural problems surface to the caller. Individual malformed rows are
skipped by the adapters and remote failures degrade to local rules, so neither
has an exception type here.
"""

from __future__ import annotations


class IngestError(ValueError):
    """Base class for failures that abort an import batch."""


class EmptyInputError(IngestError):
    """Raised when the raw import text is missing or blank."""


class UnknownSourceError(IngestError):
    """Raised when a non-empty source tag matches no known format.

    Attributes:
        source_tag: The tag exactly as supplied by the caller.
    """

    def __init__(self, source_tag: str) -> None:
        self.source_tag = source_tag
        super().__init__(f"unknown import source: {source_tag!r}")


__all__ = ["IngestError", "EmptyInputError", "UnknownSourceError"]
