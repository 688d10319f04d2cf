"""Shared test fixtures and configuration."""

import os
from pathlib import Path
import sys

import pytest


REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))


# Complete test environment that overrides every search setting
TEST_ENV = {
    "SEARCH_DEFAULT_LANGUAGE": "en",
    "SEARCH_DEFAULT_MM": "100%",
    "HIGHLIGHTING_PRE": "<strong>",
    "HIGHLIGHTING_POST": "</strong>",
    "INDEX_NAME_PREFIX": "search-",
    "VIEW_DB_PATH": ":memory:",
    "LOG_LEVEL": "info",
    "LOG_JSON": "false",
}


# Set environment variables immediately when conftest.py is loaded
for key, value in TEST_ENV.items():
    os.environ[key] = value

# Now we can safely import config-dependent modules
from view_search.adapters.document_store import InMemoryDocumentStore
from view_search.adapters.sqlite_view_engine import SqliteViewEngine
from view_search.config import Settings, get_settings
from view_search.service_layer.error_reporting import CollectingErrorReporter
from view_search.service_layer.search_service import SearchService


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Reset search settings before each test."""
    for key, value in TEST_ENV.items():
        monkeypatch.setenv(key, value)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def settings() -> Settings:
    return Settings()


@pytest.fixture
def document_store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
def view_engine(document_store) -> SqliteViewEngine:
    return SqliteViewEngine(document_store)


@pytest.fixture
def error_reporter() -> CollectingErrorReporter:
    return CollectingErrorReporter()


@pytest.fixture
def search_service(view_engine, document_store, error_reporter, settings) -> SearchService:
    return SearchService(view_engine, document_store, error_reporter=error_reporter, settings=settings)
