"""SQLite-backed reference view engine.

Each view is identified by its ``save_as`` name and keeps the rows its mapping
function emitted for every document, plus the document-store update sequence
the rows reflect. Updates are incremental: only documents changed since that
sequence are re-mapped, and a deleted document simply loses its rows.

SQLite work runs in worker threads through :func:`asyncio.to_thread`; one
connection is shared and guarded by a thread lock, and updates of the same view
are serialized with a per-view :class:`asyncio.Lock`.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Iterable, Sequence
import logging
import sqlite3
import threading
from typing import Any, TypeVar

import orjson

from view_search.adapters.document_store import AbstractDocumentStore, DocumentChange
from view_search.adapters.sqlite_pragmas import apply_write_pragmas
from view_search.adapters.view_engine import (
    AbstractViewEngine,
    MapFunction,
    ViewQueryOptions,
    ViewQueryResult,
    ViewRow,
)
from view_search.config import Settings, get_settings
from view_search.exceptions import ViewEngineError
from view_search.observability.metrics import INDEXED_DOCUMENTS


logger = logging.getLogger(__name__)

T = TypeVar("T")

# Stay well below SQLITE_MAX_VARIABLE_NUMBER on older builds
_KEY_CHUNK_SIZE = 500

_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS views (
        name TEXT PRIMARY KEY,
        update_seq INTEGER NOT NULL DEFAULT 0
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS view_rows (
        view TEXT NOT NULL REFERENCES views(name) ON DELETE CASCADE,
        key TEXT NOT NULL,
        doc_id TEXT NOT NULL,
        ord INTEGER NOT NULL,
        value TEXT NOT NULL,
        PRIMARY KEY (view, key, doc_id, ord)
    ) WITHOUT ROWID
    """,
    "CREATE INDEX IF NOT EXISTS idx_view_rows_doc ON view_rows(view, doc_id)",
)

_RowBatch = list[tuple[str, str, int, str]]


class SqliteViewEngine(AbstractViewEngine):
    """Persist mapping-function output in SQLite and serve exact-key lookups."""

    def __init__(self, document_store: AbstractDocumentStore, db_path: str = ":memory:") -> None:
        self.document_store = document_store
        self.db_path = db_path
        self._db_lock = threading.Lock()
        self._view_locks: dict[str, asyncio.Lock] = {}
        self._pending: set[asyncio.Task[None]] = set()
        self._closed = False
        try:
            self._conn = sqlite3.connect(db_path, check_same_thread=False)
            apply_write_pragmas(self._conn)
            with self._conn:
                for statement in _SCHEMA:
                    self._conn.execute(statement)
        except sqlite3.Error as exc:
            raise ViewEngineError(f"Failed to open view database {db_path}: {exc}") from exc

    @classmethod
    def from_settings(
        cls, document_store: AbstractDocumentStore, settings: Settings | None = None
    ) -> SqliteViewEngine:
        """Open the engine on the database named by ``settings.view_db_path``."""
        settings = settings or get_settings()
        return cls(document_store, db_path=settings.view_db_path)

    async def query(self, map_function: MapFunction, options: ViewQueryOptions) -> ViewQueryResult:
        if self._closed:
            raise ViewEngineError("View engine is closed")
        name = options.save_as
        if options.destroy:
            await self.destroy(name)
            return ViewQueryResult()

        if options.stale is None:
            await self._update(name, map_function)
        if options.limit == 0:
            rows: list[ViewRow] = []
        else:
            rows = await self._run(self._read_sync, name, options.keys, options.limit)
        if options.stale == "update_after":
            self._schedule_update(name, map_function)
        return ViewQueryResult(rows=rows)

    async def destroy(self, name: str) -> None:
        """Remove every row of ``name`` and its update-sequence record."""
        lock = self._lock_for(name)
        async with lock:
            await self._run(self._destroy_sync, name)
        if not lock.locked() and self._view_locks.get(name) is lock:
            del self._view_locks[name]
        logger.info("Destroyed view %s", name)

    async def list_views(self) -> list[str]:
        return await self._run(self._list_views_sync)

    async def prune_views(self, keep: Iterable[str]) -> list[str]:
        """Destroy every persisted view whose name is not in ``keep``; returns the removed names."""
        keep_set = set(keep)
        removed = [name for name in await self.list_views() if name not in keep_set]
        for name in removed:
            await self.destroy(name)
        return removed

    async def row_count(self, name: str) -> int:
        return await self._run(self._row_count_sync, name)

    async def drain(self) -> None:
        """Wait for every scheduled background update to finish."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def aclose(self) -> None:
        """Await background updates, then close the connection."""
        await self.drain()
        if self._closed:
            return
        self._closed = True
        with self._db_lock:
            self._conn.close()

    # ------------------------------------------------------------------
    # Updates
    # ------------------------------------------------------------------

    def _lock_for(self, name: str) -> asyncio.Lock:
        lock = self._view_locks.get(name)
        if lock is None:
            lock = asyncio.Lock()
            self._view_locks[name] = lock
        return lock

    async def _update(self, name: str, map_function: MapFunction) -> None:
        async with self._lock_for(name):
            since = await self._run(self._view_seq_sync, name)
            changes = await self.document_store.changes(since=since or 0)
            if since is not None and not changes:
                return
            target_seq = max((change.seq for change in changes), default=since or 0)
            batches = self._map_changes(changes, map_function)
            await self._run(self._apply_sync, name, changes, batches, target_seq)

        indexed = sum(1 for change in changes if not change.deleted)
        if indexed:
            INDEXED_DOCUMENTS.labels(view=name).inc(indexed)
        logger.debug("Updated view %s to seq %d (%d changes)", name, target_seq, len(changes))

    def _map_changes(self, changes: Sequence[DocumentChange], map_function: MapFunction) -> list[_RowBatch]:
        batches: list[_RowBatch] = []
        for change in changes:
            if change.document is None:
                batches.append([])
                continue
            emissions = map_function(change.document)
            batches.append(
                [
                    (emission.key, change.doc_id, ordinal, orjson.dumps(emission.value).decode())
                    for ordinal, emission in enumerate(emissions)
                ]
            )
        return batches

    def _schedule_update(self, name: str, map_function: MapFunction) -> None:
        task = asyncio.create_task(self._update(name, map_function), name=f"view-update:{name}")
        self._pending.add(task)
        task.add_done_callback(self._on_update_done)

    def _on_update_done(self, task: asyncio.Task[None]) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error("Background view update failed: %s", error, exc_info=error)

    # ------------------------------------------------------------------
    # SQLite (worker thread)
    # ------------------------------------------------------------------

    async def _run(self, func: Callable[..., T], *args: Any) -> T:
        try:
            return await asyncio.to_thread(self._locked, func, *args)
        except sqlite3.Error as exc:
            raise ViewEngineError(f"View storage failed: {exc}") from exc

    def _locked(self, func: Callable[..., T], *args: Any) -> T:
        with self._db_lock:
            return func(*args)

    def _view_seq_sync(self, name: str) -> int | None:
        row = self._conn.execute("SELECT update_seq FROM views WHERE name = ?", (name,)).fetchone()
        return None if row is None else int(row[0])

    def _apply_sync(
        self,
        name: str,
        changes: Sequence[DocumentChange],
        batches: Sequence[_RowBatch],
        target_seq: int,
    ) -> None:
        with self._conn:
            self._conn.execute(
                "INSERT INTO views(name, update_seq) VALUES (?, ?) "
                "ON CONFLICT(name) DO UPDATE SET update_seq = excluded.update_seq",
                (name, target_seq),
            )
            for change, batch in zip(changes, batches, strict=True):
                self._conn.execute("DELETE FROM view_rows WHERE view = ? AND doc_id = ?", (name, change.doc_id))
                if batch:
                    self._conn.executemany(
                        "INSERT INTO view_rows(view, key, doc_id, ord, value) VALUES (?, ?, ?, ?, ?)",
                        [(name, *row) for row in batch],
                    )

    def _read_sync(self, name: str, keys: tuple[str, ...] | None, limit: int | None) -> list[ViewRow]:
        if keys is None:
            cursor = self._conn.execute(
                "SELECT key, doc_id, value FROM view_rows WHERE view = ? ORDER BY key, doc_id, ord",
                (name,),
            )
            rows = [ViewRow(id=doc_id, key=key, value=orjson.loads(value)) for key, doc_id, value in cursor]
            return rows if limit is None else rows[:limit]

        by_key: dict[str, list[ViewRow]] = {}
        unique_keys = list(dict.fromkeys(keys))
        for start in range(0, len(unique_keys), _KEY_CHUNK_SIZE):
            chunk = unique_keys[start : start + _KEY_CHUNK_SIZE]
            placeholders = ",".join("?" * len(chunk))
            cursor = self._conn.execute(
                f"SELECT key, doc_id, value FROM view_rows WHERE view = ? AND key IN ({placeholders}) "
                "ORDER BY key, doc_id, ord",
                (name, *chunk),
            )
            for key, doc_id, value in cursor:
                by_key.setdefault(key, []).append(ViewRow(id=doc_id, key=key, value=orjson.loads(value)))

        rows = [row for key in keys for row in by_key.get(key, [])]
        return rows if limit is None else rows[:limit]

    def _destroy_sync(self, name: str) -> None:
        with self._conn:
            self._conn.execute("DELETE FROM view_rows WHERE view = ?", (name,))
            self._conn.execute("DELETE FROM views WHERE name = ?", (name,))

    def _list_views_sync(self) -> list[str]:
        return [row[0] for row in self._conn.execute("SELECT name FROM views ORDER BY name")]

    def _row_count_sync(self, name: str) -> int:
        row = self._conn.execute("SELECT COUNT(*) FROM view_rows WHERE view = ?", (name,)).fetchone()
        return int(row[0])
