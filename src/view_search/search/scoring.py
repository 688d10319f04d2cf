"""TF-IDF dismax scoring over postings fetched from the view engine.

Scoring follows classic cosine-similarity TF-IDF with two simplifications:

* the query norm is ignored; it is constant for a given query and does not
  change relative order
* field length norms are ``sqrt(token_count)`` (Lucene's DefaultSimilarity)
  and were computed at index time, so documents never need re-analysis

Fields are summed per query term, then the document keeps the *maximum* over
query terms (disjunction-max). Document frequency is the number of postings
carrying a term, not the number of distinct documents.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from view_search.search.mapping import term_from_key


if TYPE_CHECKING:
    from view_search.adapters.view_engine import ViewRow


@dataclass(frozen=True)
class RankedDocument:
    """Represents a scored document produced by the scorer."""

    doc_id: str
    score: float


@dataclass
class CandidateSet:
    """Per-query accumulation of postings.

    ``documents`` maps a document id to one ``term -> occurrence count`` table
    per indexed field, in field declaration order.
    """

    field_count: int
    term_frequencies: dict[str, int] = field(default_factory=dict)
    documents: dict[str, list[dict[str, int]]] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.documents)

    def __contains__(self, doc_id: object) -> bool:
        return doc_id in self.documents

    @property
    def doc_ids(self) -> list[str]:
        return list(self.documents)

    def add_posting(self, doc_id: str, term: str, field_idx: int) -> None:
        self.term_frequencies[term] = self.term_frequencies.get(term, 0) + 1
        per_field = self.documents.get(doc_id)
        if per_field is None:
            per_field = [{} for _ in range(self.field_count)]
            self.documents[doc_id] = per_field
        counts = per_field[field_idx]
        counts[term] = counts.get(term, 0) + 1

    def matched_terms(self, doc_id: str) -> set[str]:
        matched: set[str] = set()
        for counts in self.documents.get(doc_id, []):
            matched.update(counts)
        return matched

    def discard(self, doc_id: str) -> None:
        self.documents.pop(doc_id, None)


def accumulate_candidates(rows: Iterable[ViewRow], field_count: int) -> CandidateSet:
    """Build term document frequencies and per-document field tables from posting rows."""

    candidates = CandidateSet(field_count=field_count)
    for row in rows:
        field_idx = row.value if isinstance(row.value, int) and 0 <= row.value < field_count else 0
        candidates.add_posting(row.id, term_from_key(row.key), field_idx)
    return candidates


def truncated_match_ratio(matched: int, total: int) -> float:
    """Return ``matched / total`` floored to two decimals (1 of 3 -> 0.33)."""
    if total <= 0:
        return 0.0
    return (matched * 100 // total) / 100


def apply_min_should_match(candidates: CandidateSet, query_terms: Sequence[str], min_should_match: float) -> None:
    """Drop candidates matching too small a share of the distinct query terms.

    Single-term queries are never filtered.
    """

    distinct_terms = set(query_terms)
    if len(distinct_terms) <= 1:
        return
    for doc_id in candidates.doc_ids:
        matched = len(candidates.matched_terms(doc_id) & distinct_terms)
        if truncated_match_ratio(matched, len(distinct_terms)) < min_should_match:
            candidates.discard(doc_id)


def term_field_score(term_count: int, doc_frequency: int, boost: float, norm: float) -> float:
    """Score of one term in one field; a zero norm or frequency contributes nothing."""

    if term_count <= 0 or doc_frequency <= 0 or norm <= 0:
        return 0.0
    doc_score = term_count / doc_frequency
    query_score = 1 / doc_frequency  # query term count assumed to be 1
    return doc_score * query_score * boost / norm


def score_candidates(
    query_terms: Sequence[str],
    term_frequencies: Mapping[str, int],
    candidates: Mapping[str, Sequence[Mapping[str, int]]],
    field_norms: Mapping[str, Sequence[float]],
    field_boosts: Sequence[float],
) -> list[RankedDocument]:
    """Return candidates ranked by dismax TF-IDF score, highest first."""

    distinct_terms = list(dict.fromkeys(query_terms))
    ranked: list[RankedDocument] = []
    for doc_id, per_field in candidates.items():
        norms = field_norms.get(doc_id, ())
        best = 0.0
        for term in distinct_terms:
            doc_frequency = term_frequencies.get(term, 0)
            term_score = 0.0
            for field_idx, counts in enumerate(per_field):
                if term not in counts:
                    continue
                norm = norms[field_idx] if field_idx < len(norms) else 0.0
                boost = field_boosts[field_idx] if field_idx < len(field_boosts) else 1.0
                term_score += term_field_score(counts[term], doc_frequency, boost, norm)
            if term_score > best:
                best = term_score
        ranked.append(RankedDocument(doc_id=doc_id, score=best))

    ranked.sort(key=lambda entry: entry.score, reverse=True)
    return ranked
