"""Unit tests for the SQLite reference view engine."""

import pytest

from view_search.adapters.document_store import InMemoryDocumentStore
from view_search.adapters.sqlite_view_engine import SqliteViewEngine
from view_search.adapters.view_engine import ViewQueryOptions, ViewRow
from view_search.config import Settings
from view_search.exceptions import ViewEngineError
from view_search.search.mapping import Emission


def emit_words(document):
    """Emit one row per word of ``text`` with its position, then a summary row."""
    words = document.get("text", "").split()
    emissions = [Emission(word, index) for index, word in enumerate(words)]
    emissions.append(Emission("#" + document["_id"], {"words": len(words)}))
    return emissions


def _pairs(rows: list[ViewRow]) -> list[tuple[str, str, object]]:
    return [(row.key, row.id, row.value) for row in rows]


@pytest.fixture
def store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore(
        [
            {"_id": "d1", "text": "red green"},
            {"_id": "d2", "text": "green blue green"},
        ]
    )


@pytest.fixture
def engine(store) -> SqliteViewEngine:
    return SqliteViewEngine(store)


@pytest.mark.unit
class TestQuery:
    @pytest.mark.asyncio
    async def test_keys_are_returned_in_requested_order(self, engine):
        result = await engine.query(emit_words, ViewQueryOptions(save_as="v", keys=("green", "red", "missing")))

        assert _pairs(result.rows) == [
            ("green", "d1", 1),
            ("green", "d2", 0),
            ("green", "d2", 2),
            ("red", "d1", 0),
        ]

    @pytest.mark.asyncio
    async def test_all_rows_without_keys(self, engine):
        result = await engine.query(emit_words, ViewQueryOptions(save_as="v"))

        assert [row.key for row in result.rows] == ["#d1", "#d2", "blue", "green", "green", "green", "red"]
        assert result.rows[0].value == {"words": 2}

    @pytest.mark.asyncio
    async def test_limit(self, engine):
        result = await engine.query(emit_words, ViewQueryOptions(save_as="v", keys=("green",), limit=2))
        assert len(result.rows) == 2

    @pytest.mark.asyncio
    async def test_limit_zero_updates_without_rows(self, engine):
        result = await engine.query(emit_words, ViewQueryOptions(save_as="v", limit=0))

        assert result.rows == []
        assert await engine.list_views() == ["v"]
        assert await engine.row_count("v") == 7


@pytest.mark.unit
class TestStaleness:
    @pytest.mark.asyncio
    async def test_stale_ok_on_unbuilt_view_is_empty_and_creates_nothing(self, engine):
        result = await engine.query(emit_words, ViewQueryOptions(save_as="v", keys=("green",), stale="ok"))

        assert result.rows == []
        assert await engine.list_views() == []

    @pytest.mark.asyncio
    async def test_stale_ok_reads_without_updating(self, engine, store):
        await engine.query(emit_words, ViewQueryOptions(save_as="v", limit=0))
        await store.put({"_id": "d3", "text": "green"})

        stale = await engine.query(emit_words, ViewQueryOptions(save_as="v", keys=("green",), stale="ok"))
        fresh = await engine.query(emit_words, ViewQueryOptions(save_as="v", keys=("green",)))

        assert len(stale.rows) == 3
        assert len(fresh.rows) == 4

    @pytest.mark.asyncio
    async def test_update_after_refreshes_in_background(self, engine):
        first = await engine.query(emit_words, ViewQueryOptions(save_as="v", keys=("red",), stale="update_after"))
        assert first.rows == []

        await engine.drain()
        second = await engine.query(emit_words, ViewQueryOptions(save_as="v", keys=("red",), stale="ok"))

        assert _pairs(second.rows) == [("red", "d1", 0)]


@pytest.mark.unit
class TestMaintenance:
    @pytest.mark.asyncio
    async def test_changed_and_deleted_documents_are_reindexed(self, engine, store):
        await engine.query(emit_words, ViewQueryOptions(save_as="v", limit=0))
        await store.put({"_id": "d1", "text": "blue"})
        await store.remove("d2")

        result = await engine.query(emit_words, ViewQueryOptions(save_as="v"))

        assert _pairs(result.rows) == [("#d1", "d1", {"words": 1}), ("blue", "d1", 0)]

    @pytest.mark.asyncio
    async def test_views_are_independent(self, engine):
        def emit_ids(document):
            return [Emission(document["_id"])]

        await engine.query(emit_words, ViewQueryOptions(save_as="words", limit=0))
        ids = await engine.query(emit_ids, ViewQueryOptions(save_as="ids"))

        assert _pairs(ids.rows) == [("d1", "d1", None), ("d2", "d2", None)]
        assert await engine.list_views() == ["ids", "words"]

    @pytest.mark.asyncio
    async def test_destroy_removes_rows_and_sequence(self, engine):
        await engine.query(emit_words, ViewQueryOptions(save_as="v", limit=0))

        destroyed = await engine.query(emit_words, ViewQueryOptions(save_as="v", destroy=True))
        stale = await engine.query(emit_words, ViewQueryOptions(save_as="v", keys=("green",), stale="ok"))

        assert destroyed.rows == []
        assert stale.rows == []
        assert await engine.list_views() == []
        assert await engine.row_count("v") == 0
        assert "v" not in engine._view_locks

    @pytest.mark.asyncio
    async def test_prune_views_keeps_requested_names(self, engine):
        for name in ("a", "b", "c"):
            await engine.query(emit_words, ViewQueryOptions(save_as=name, limit=0))

        removed = await engine.prune_views({"b"})

        assert removed == ["a", "c"]
        assert await engine.list_views() == ["b"]
        assert set(engine._view_locks) == {"b"}


@pytest.mark.unit
class TestErrors:
    def test_unopenable_database_raises_view_engine_error(self, tmp_path):
        with pytest.raises(ViewEngineError):
            SqliteViewEngine(InMemoryDocumentStore(), str(tmp_path / "missing" / "views.sqlite"))

    @pytest.mark.asyncio
    async def test_closed_engine_rejects_queries(self, engine):
        await engine.aclose()

        with pytest.raises(ViewEngineError, match="closed"):
            await engine.query(emit_words, ViewQueryOptions(save_as="v"))

    @pytest.mark.asyncio
    async def test_file_backed_views_persist_across_engines(self, tmp_path, store):
        db_path = str(tmp_path / "views.sqlite")
        first = SqliteViewEngine(store, db_path)
        await first.query(emit_words, ViewQueryOptions(save_as="v", limit=0))
        await first.aclose()

        second = SqliteViewEngine(store, db_path)
        result = await second.query(emit_words, ViewQueryOptions(save_as="v", keys=("blue",), stale="ok"))
        await second.aclose()

        assert _pairs(result.rows) == [("blue", "d2", 1)]


@pytest.mark.unit
class TestFromSettings:
    @pytest.mark.asyncio
    async def test_database_path_comes_from_settings(self, tmp_path, store):
        settings = Settings(view_db_path=str(tmp_path / "views.sqlite"))
        first = SqliteViewEngine.from_settings(store, settings)
        await first.query(emit_words, ViewQueryOptions(save_as="v", limit=0))
        await first.aclose()

        second = SqliteViewEngine.from_settings(store, settings)
        result = await second.query(emit_words, ViewQueryOptions(save_as="v", keys=("red",), stale="ok"))
        await second.aclose()

        assert first.db_path == settings.view_db_path
        assert _pairs(result.rows) == [("red", "d1", 0)]

    def test_defaults_to_process_settings(self, store):
        engine = SqliteViewEngine.from_settings(store)

        assert engine.db_path == ":memory:"
