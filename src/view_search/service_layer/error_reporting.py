"""Out-of-band reporting of per-document indexing failures.

A failing document filter must not abort an indexing pass; the failure is
handed to an :class:`ErrorReporter` and the document is left out of the index.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Protocol

from view_search.observability.metrics import FILTER_ERRORS


logger = logging.getLogger(__name__)


class ErrorReporter(Protocol):
    """Receives errors that were isolated instead of raised."""

    def report(self, error: Exception, *, document_id: str, context: str) -> None:  # pragma: no cover - interface definition
        ...


class LoggingErrorReporter:
    """Log isolated failures and count them."""

    def report(self, error: Exception, *, document_id: str, context: str) -> None:
        FILTER_ERRORS.labels(context=context).inc()
        logger.warning(
            "Excluded document %s from the index: %s failed: %s",
            document_id,
            context,
            error,
            exc_info=error,
        )


@dataclass(frozen=True)
class ReportedError:
    error: Exception
    document_id: str
    context: str


class CollectingErrorReporter:
    """Keep reported failures in memory so callers can surface them."""

    def __init__(self) -> None:
        self.errors: list[ReportedError] = []

    def report(self, error: Exception, *, document_id: str, context: str) -> None:
        FILTER_ERRORS.labels(context=context).inc()
        self.errors.append(ReportedError(error=error, document_id=document_id, context=context))

    def clear(self) -> None:
        self.errors.clear()
