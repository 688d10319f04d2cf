"""Index mapping function handed to the view engine.

For every document the mapper returns an ordered list of emissions:

* one posting per token occurrence, keyed ``"a" + term``; the value is the
  field index, or ``None`` when only one field is indexed
* exactly one doc-info entry keyed ``"b" + doc_id`` whose value holds the
  per-field length norms (``sqrt(token_count)``, ``0.0`` for empty fields)
  in field declaration order

The mapper is a pure function of (document, fields, filter, analyzer); the
view engine relies on that to maintain persisted indexes incrementally.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from enum import Enum
import logging
import math
from typing import TYPE_CHECKING, Any

from view_search.domain.search import DocumentFilter, FieldSpec
from view_search.search.analyzers import AnalyzerPipeline
from view_search.search.fields import extract_text


if TYPE_CHECKING:
    from view_search.service_layer.error_reporting import ErrorReporter


logger = logging.getLogger(__name__)

TYPE_TOKEN = "a"
TYPE_DOC_INFO = "b"


def token_key(term: str) -> str:
    return TYPE_TOKEN + term


def doc_info_key(doc_id: str) -> str:
    return TYPE_DOC_INFO + doc_id


def term_from_key(key: str) -> str:
    return key[len(TYPE_TOKEN) :]


@dataclass(frozen=True, slots=True)
class Emission:
    """A single (key, value) row produced by the mapping function."""

    key: str
    value: Any = None


class FilterOutcome(str, Enum):
    """Result of evaluating a document filter."""

    ACCEPTED = "accepted"
    REJECTED = "rejected"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class FilterResult:
    outcome: FilterOutcome
    error: Exception | None = None

    @property
    def keeps_document(self) -> bool:
        return self.outcome is FilterOutcome.ACCEPTED


_ACCEPTED = FilterResult(FilterOutcome.ACCEPTED)
_REJECTED = FilterResult(FilterOutcome.REJECTED)


def evaluate_filter(predicate: DocumentFilter | None, document: Mapping[str, Any]) -> FilterResult:
    """Run ``predicate`` and capture failures instead of raising them."""

    if predicate is None:
        return _ACCEPTED
    try:
        keep = bool(predicate(document))
    except Exception as exc:
        return FilterResult(FilterOutcome.FAILED, exc)
    return _ACCEPTED if keep else _REJECTED


def field_norm(token_count: int) -> float:
    """Length norm of a field, following Lucene's DefaultSimilarity convention."""
    if token_count <= 0:
        return 0.0
    return math.sqrt(token_count)


class IndexMapper:
    """Turns documents into postings and doc-info rows for one field configuration."""

    def __init__(
        self,
        fields: Sequence[FieldSpec],
        analyzer: AnalyzerPipeline,
        *,
        document_filter: DocumentFilter | None = None,
        error_reporter: ErrorReporter | None = None,
    ) -> None:
        self.fields = tuple(fields)
        self.analyzer = analyzer
        self.document_filter = document_filter
        self.error_reporter = error_reporter

    def __call__(self, document: Mapping[str, Any]) -> list[Emission]:
        doc_id = str(document["_id"])
        result = evaluate_filter(self.document_filter, document)
        if result.outcome is FilterOutcome.FAILED:
            self._report_filter_failure(doc_id, result.error)
        if not result.keeps_document:
            return []

        multi_field = len(self.fields) > 1
        emissions: list[Emission] = []
        norms: list[float] = []
        for field_idx, field in enumerate(self.fields):
            terms = self.analyzer.terms(extract_text(field, document))
            value = field_idx if multi_field else None
            emissions.extend(Emission(token_key(term), value) for term in terms)
            norms.append(field_norm(len(terms)))
        emissions.append(Emission(doc_info_key(doc_id), norms))
        return emissions

    def _report_filter_failure(self, doc_id: str, error: Exception | None) -> None:
        if error is None:
            return
        if self.error_reporter is None:
            logger.warning("Document filter failed for %s; excluding it from the index", doc_id, exc_info=error)
            return
        self.error_reporter.report(error, document_id=doc_id, context="filter")
