"""Exception hierarchy for view-search.

Callers can discriminate request problems from storage problems while the
original cause stays chained on ``__cause__``.
"""

from __future__ import annotations


class ViewSearchError(Exception):
    """Base class for all view-search exceptions."""


class BadRequestError(ViewSearchError, ValueError):
    """Raised when search options are missing or malformed."""


class DocumentNotFoundError(ViewSearchError, KeyError):
    """Raised by document stores when a requested id does not exist."""

    def __init__(self, doc_id: str) -> None:
        super().__init__(doc_id)
        self.doc_id = doc_id

    def __str__(self) -> str:
        return f"Document not found: {self.doc_id}"


class ViewEngineError(ViewSearchError):
    """Raised when the persisted view engine fails to read or update an index."""
