"""Service layer - orchestrates search requests over the view engine and document store."""

from view_search.service_layer.error_reporting import (
    CollectingErrorReporter,
    ErrorReporter,
    LoggingErrorReporter,
    ReportedError,
)
from view_search.service_layer.search_service import SearchService, search


__all__ = [
    "CollectingErrorReporter",
    "ErrorReporter",
    "LoggingErrorReporter",
    "ReportedError",
    "SearchService",
    "search",
]
