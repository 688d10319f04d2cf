"""Highlighting of matched query terms in field text.

Modeled on Solr's highlighting response: for every field that matched, the
field text is returned with each occurrence of a matched term wrapped in
markers, e.g. ``{"title": "About <strong>Yoshi</strong>"}``.

A term matches case-insensitively and extends over any directly following
run of lowercase ASCII letters, so ``court`` also marks ``courts`` and
``courthouse``. Only the term itself ignores case: the suffix does not, so
``COURTS`` highlights as ``<strong>COURT</strong>S``. A fully case-insensitive
``term[a-z]*`` pattern would mark the whole word instead.
"""

from __future__ import annotations

from collections.abc import Collection, Mapping, Sequence
import re
from typing import Any

from view_search.domain.search import FieldSpec
from view_search.search.fields import extract_text


DEFAULT_PRE = "<strong>"
DEFAULT_POST = "</strong>"


def build_term_pattern(terms: Collection[str]) -> re.Pattern[str] | None:
    """Compile one alternation for ``terms``; longer terms win at the same position."""

    unique = sorted({term for term in terms if term}, key=lambda term: (-len(term), term))
    if not unique:
        return None
    alternation = "|".join(f"(?i:{re.escape(term)})" for term in unique)
    return re.compile(f"(?:{alternation})[a-z]*")


def highlight_text(text: str, terms: Collection[str], pre: str = DEFAULT_PRE, post: str = DEFAULT_POST) -> str:
    """Wrap every occurrence of ``terms`` in ``text`` with ``pre``/``post``."""

    if not text:
        return text
    pattern = build_term_pattern(terms)
    if pattern is None:
        return text
    return pattern.sub(lambda match: f"{pre}{match.group(0)}{post}", text)


def highlight_document(
    document: Mapping[str, Any],
    fields: Sequence[FieldSpec],
    matched_terms: Sequence[Mapping[str, int]],
    *,
    pre: str = DEFAULT_PRE,
    post: str = DEFAULT_POST,
) -> dict[str, str]:
    """Return ``field name -> highlighted text`` for fields with at least one matched term.

    ``matched_terms`` holds one ``term -> count`` table per field, in field
    declaration order, as accumulated from the query's postings.
    """

    highlighting: dict[str, str] = {}
    for field, terms in zip(fields, matched_terms, strict=False):
        if not terms:
            continue
        text = extract_text(field, document)
        if text is None:
            continue
        highlighting[field.name] = highlight_text(text, list(terms), pre, post)
    return highlighting
