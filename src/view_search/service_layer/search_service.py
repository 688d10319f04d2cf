"""Search service orchestration layer.

Runs a full-text query against a persisted view index in two lookups:

1. term lookup: postings for every distinct query term
2. norm lookup: per-field length norms for the candidates that survived
   minimum-should-match

Everything between and after the lookups (candidate accumulation, scoring,
pagination, highlighting) is request-scoped and pure.
"""

from __future__ import annotations

import asyncio
from collections.abc import Mapping, Sequence
import logging
from typing import Any

from view_search.adapters.document_store import AbstractDocumentStore
from view_search.adapters.view_engine import AbstractViewEngine, ViewQueryOptions, ViewRow
from view_search.config import Settings, get_settings
from view_search.domain.search import AckResponse, SearchOptions, SearchResponse, SearchRow
from view_search.observability.metrics import SEARCH_LATENCY, SEARCH_REQUESTS, track_latency
from view_search.observability.tracing import create_span
from view_search.search.analyzers import get_analyzer
from view_search.search.highlight import highlight_document
from view_search.search.identity import resolve_index_name
from view_search.search.mapping import TYPE_DOC_INFO, IndexMapper, doc_info_key, token_key
from view_search.search.scoring import (
    CandidateSet,
    RankedDocument,
    accumulate_candidates,
    apply_min_should_match,
    score_candidates,
)
from view_search.service_layer.error_reporting import ErrorReporter, LoggingErrorReporter


logger = logging.getLogger(__name__)


class SearchService:
    """High-level search orchestration service.

    Derives the index mapping function and its persisted identity from each
    request, delegates index maintenance to the view engine, and ranks the
    matching documents.
    """

    def __init__(
        self,
        view_engine: AbstractViewEngine,
        document_store: AbstractDocumentStore,
        *,
        error_reporter: ErrorReporter | None = None,
        settings: Settings | None = None,
    ):
        """Initialize search service with dependencies.

        Args:
            view_engine: Persisted view engine holding the search indexes
            document_store: Store used for include_docs and highlighting
            error_reporter: Receives document filter failures (logs them by default)
            settings: Defaults for options a request leaves out
        """
        self.view_engine = view_engine
        self.document_store = document_store
        self.error_reporter = error_reporter or LoggingErrorReporter()
        self.settings = settings or get_settings()

    def parse_options(self, raw_options: Any) -> SearchOptions:
        """Validate caller options, filling gaps from settings."""
        defaults = {
            "language": self.settings.search_default_language,
            "mm": self.settings.search_default_mm,
        }
        return SearchOptions.parse(raw_options, defaults=defaults)

    def index_name(self, options: SearchOptions) -> str:
        return resolve_index_name(
            options.language,
            options.field_names,
            options.filter,
            prefix=self.settings.index_name_prefix,
        )

    async def search(self, raw_options: Any) -> SearchResponse | AckResponse:
        """Execute a search, build or destroy request.

        Args:
            raw_options: Mapping of search options (see :class:`SearchOptions`)

        Returns:
            SearchResponse for queries, AckResponse for build and destroy

        Raises:
            BadRequestError: The options are missing or malformed
            ViewEngineError: The view engine failed
            DocumentNotFoundError: A result document vanished before it could be fetched
        """
        options = self.parse_options(raw_options)
        mode = "destroy" if options.destroy else "build" if options.build else "search"
        status = "error"
        try:
            with track_latency(SEARCH_LATENCY, mode=mode):
                result = await self._dispatch(mode, options)
            status = "ok"
            return result
        finally:
            SEARCH_REQUESTS.labels(mode=mode, status=status).inc()

    async def _dispatch(self, mode: str, options: SearchOptions) -> SearchResponse | AckResponse:
        analyzer = get_analyzer(options.language)
        mapper = IndexMapper(
            options.fields,
            analyzer,
            document_filter=options.filter,
            error_reporter=self.error_reporter,
        )
        index_name = self.index_name(options)

        if mode == "destroy":
            with create_span("search.destroy", attributes={"search.index": index_name}):
                await self.view_engine.query(mapper, ViewQueryOptions(save_as=index_name, destroy=True))
            logger.info("Destroyed search index %s", index_name)
            return AckResponse(ok=True)

        if mode == "build":
            with create_span("search.build", attributes={"search.index": index_name}):
                await self.view_engine.query(mapper, ViewQueryOptions(save_as=index_name, limit=0))
            logger.info("Built search index %s", index_name)
            return AckResponse(ok=True)

        query_terms = analyzer.terms(options.query)
        if not query_terms:
            return SearchResponse.empty()
        distinct_terms = list(dict.fromkeys(query_terms))

        lookup_attributes = {"search.index": index_name, "search.terms": len(distinct_terms)}
        with create_span("search.term_lookup", attributes=lookup_attributes):
            postings = await self.view_engine.query(
                mapper,
                ViewQueryOptions(
                    save_as=index_name,
                    keys=tuple(token_key(term) for term in distinct_terms),
                    stale=options.stale,
                ),
            )
        if not postings.rows:
            return SearchResponse.empty()

        candidates = accumulate_candidates(postings.rows, len(options.fields))
        apply_min_should_match(candidates, distinct_terms, options.mm)
        if not candidates:
            return SearchResponse.empty()

        with create_span("search.norm_lookup", attributes={"search.candidates": len(candidates)}):
            norm_rows = await self.view_engine.query(
                mapper,
                ViewQueryOptions(
                    save_as=index_name,
                    keys=tuple(doc_info_key(doc_id) for doc_id in candidates.doc_ids),
                    stale=options.stale,
                ),
            )

        with create_span("search.score"):
            ranked = score_candidates(
                distinct_terms,
                candidates.term_frequencies,
                candidates.documents,
                _norms_by_document(norm_rows.rows),
                [spec.boost for spec in options.fields],
            )

        total_rows = len(ranked)
        page = _paginate(ranked, options.skip, options.limit)
        logger.debug(
            "Query %r matched %d documents in %s (returning %d)",
            options.query,
            total_rows,
            index_name,
            len(page),
        )

        with create_span("search.augment", attributes={"search.rows": len(page)}):
            rows = await self._augment(page, candidates, options)
        return SearchResponse(total_rows=total_rows, rows=rows)

    async def _augment(
        self,
        page: Sequence[RankedDocument],
        candidates: CandidateSet,
        options: SearchOptions,
    ) -> list[SearchRow]:
        documents: list[dict[str, Any] | None] = [None] * len(page)
        if options.include_docs or options.highlighting:
            documents = list(await asyncio.gather(*(self.document_store.get(entry.doc_id) for entry in page)))

        pre = options.highlighting_pre if options.highlighting_pre is not None else self.settings.highlighting_pre
        post = options.highlighting_post if options.highlighting_post is not None else self.settings.highlighting_post

        rows: list[SearchRow] = []
        for entry, document in zip(page, documents, strict=True):
            highlighting = None
            if options.highlighting and document is not None:
                highlighting = highlight_document(
                    document,
                    options.fields,
                    candidates.documents.get(entry.doc_id, []),
                    pre=pre,
                    post=post,
                )
            rows.append(
                SearchRow(
                    id=entry.doc_id,
                    score=entry.score,
                    doc=document if options.include_docs else None,
                    highlighting=highlighting,
                )
            )
        return rows


def _norms_by_document(rows: Sequence[ViewRow]) -> dict[str, list[float]]:
    norms: dict[str, list[float]] = {}
    for row in rows:
        if not row.key.startswith(TYPE_DOC_INFO):
            continue
        norms[row.id] = [float(value) for value in row.value or []]
    return norms


def _paginate(ranked: Sequence[RankedDocument], skip: int, limit: int | None) -> list[RankedDocument]:
    end = None if limit is None else skip + limit
    return list(ranked[skip:end])


async def search(
    options: Mapping[str, Any],
    *,
    view_engine: AbstractViewEngine,
    document_store: AbstractDocumentStore,
    error_reporter: ErrorReporter | None = None,
    settings: Settings | None = None,
) -> SearchResponse | AckResponse:
    """Run one search request without keeping a :class:`SearchService` around."""
    service = SearchService(
        view_engine,
        document_store,
        error_reporter=error_reporter,
        settings=settings,
    )
    return await service.search(options)
