"""Document store abstractions and an in-memory implementation.

Following Cosmic Python Chapter 2: Repository Pattern. The search layer only
needs ``get`` for include-docs/highlighting; view engines additionally read
the change feed to maintain persisted indexes incrementally.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping
import copy
from dataclasses import dataclass
import logging
from typing import Any
from uuid import uuid4

from view_search.exceptions import DocumentNotFoundError


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DocumentChange:
    """Latest state of one document after update sequence ``seq``."""

    seq: int
    doc_id: str
    document: dict[str, Any] | None

    @property
    def deleted(self) -> bool:
        return self.document is None


class AbstractDocumentStore(ABC):
    """Abstract store of JSON-like documents identified by ``_id``."""

    @abstractmethod
    async def get(self, doc_id: str) -> dict[str, Any]:
        """Return the document, raising :class:`DocumentNotFoundError` if it does not exist."""
        raise NotImplementedError

    @abstractmethod
    async def changes(self, since: int = 0) -> list[DocumentChange]:
        """Return the latest change per document with a sequence greater than ``since``."""
        raise NotImplementedError

    @abstractmethod
    async def update_seq(self) -> int:
        """Return the sequence number of the most recent change."""
        raise NotImplementedError


class InMemoryDocumentStore(AbstractDocumentStore):
    """In-memory document store with a change feed."""

    def __init__(self, documents: Iterable[Mapping[str, Any]] | None = None) -> None:
        self._documents: dict[str, dict[str, Any]] = {}
        self._changes: dict[str, DocumentChange] = {}
        self._seq = 0
        for document in documents or []:
            self._put_sync(document)

    def _put_sync(self, document: Mapping[str, Any]) -> str:
        stored = copy.deepcopy(dict(document))
        doc_id = str(stored.setdefault("_id", uuid4().hex))
        self._seq += 1
        self._documents[doc_id] = stored
        self._changes[doc_id] = DocumentChange(seq=self._seq, doc_id=doc_id, document=stored)
        return doc_id

    async def put(self, document: Mapping[str, Any]) -> str:
        """Insert or replace a document, returning its id."""
        return self._put_sync(document)

    async def bulk_docs(self, documents: Iterable[Mapping[str, Any]]) -> list[str]:
        doc_ids = [self._put_sync(document) for document in documents]
        logger.debug("Stored %d documents (update_seq=%d)", len(doc_ids), self._seq)
        return doc_ids

    async def remove(self, doc_id: str) -> bool:
        """Delete a document; returns False when it did not exist."""
        if doc_id not in self._documents:
            return False
        del self._documents[doc_id]
        self._seq += 1
        self._changes[doc_id] = DocumentChange(seq=self._seq, doc_id=doc_id, document=None)
        return True

    async def get(self, doc_id: str) -> dict[str, Any]:
        document = self._documents.get(doc_id)
        if document is None:
            raise DocumentNotFoundError(doc_id)
        return copy.deepcopy(document)

    async def changes(self, since: int = 0) -> list[DocumentChange]:
        pending = [change for change in self._changes.values() if change.seq > since]
        pending.sort(key=lambda change: change.seq)
        return [
            DocumentChange(change.seq, change.doc_id, copy.deepcopy(change.document)) for change in pending
        ]

    async def update_seq(self) -> int:
        return self._seq

    async def count(self) -> int:
        return len(self._documents)
