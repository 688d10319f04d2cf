"""Adapters: document stores and persisted view engines."""

from view_search.adapters.document_store import AbstractDocumentStore, DocumentChange, InMemoryDocumentStore
from view_search.adapters.sqlite_view_engine import SqliteViewEngine
from view_search.adapters.view_engine import (
    AbstractViewEngine,
    MapFunction,
    ViewQueryOptions,
    ViewQueryResult,
    ViewRow,
)


__all__ = [
    "AbstractDocumentStore",
    "AbstractViewEngine",
    "DocumentChange",
    "InMemoryDocumentStore",
    "MapFunction",
    "SqliteViewEngine",
    "ViewQueryOptions",
    "ViewQueryResult",
    "ViewRow",
]
