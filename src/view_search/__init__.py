"""Full-text search over a persisted view engine.

Documents are indexed into content-addressed views (postings plus per-field
length norms) and queried with TF-IDF dismax scoring, minimum-should-match and
optional highlighting.
"""

from view_search.domain.search import AckResponse, FieldSpec, SearchOptions, SearchResponse, SearchRow
from view_search.exceptions import BadRequestError, DocumentNotFoundError, ViewEngineError, ViewSearchError
from view_search.service_layer.search_service import SearchService, search


__version__ = "0.1.0"

__all__ = [
    "AckResponse",
    "BadRequestError",
    "DocumentNotFoundError",
    "FieldSpec",
    "SearchOptions",
    "SearchResponse",
    "SearchRow",
    "SearchService",
    "ViewEngineError",
    "ViewSearchError",
    "__version__",
    "search",
]
