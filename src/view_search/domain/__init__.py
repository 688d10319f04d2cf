"""Domain layer - request and result value objects with no infrastructure dependencies.

Key principles:
1. No dependencies on infrastructure (no database drivers, no view engines)
2. Type safety with Pydantic
3. Immutability for value objects
"""

from view_search.domain.search import (
    AckResponse,
    DocumentFilter,
    FieldSpec,
    SearchOptions,
    SearchResponse,
    SearchRow,
    parse_fields,
    parse_min_should_match,
)


__all__ = [
    "AckResponse",
    "DocumentFilter",
    "FieldSpec",
    "SearchOptions",
    "SearchResponse",
    "SearchRow",
    "parse_fields",
    "parse_min_should_match",
]
