"""Unit tests for the config module."""

import os
from unittest.mock import patch

from pydantic import ValidationError
import pytest

from view_search.config import Settings, get_settings


pytestmark = pytest.mark.unit


class TestConfig:
    """Test configuration loading and validation."""

    def test_config_defaults_are_applied(self):
        settings = Settings()
        assert settings.search_default_language == "en"
        assert settings.search_default_mm == "100%"
        assert settings.highlighting_pre == "<strong>"
        assert settings.highlighting_post == "</strong>"
        assert settings.index_name_prefix == "search-"
        assert settings.view_db_path == ":memory:"

    @patch.dict(os.environ, {"SEARCH_DEFAULT_MM": "50%", "HIGHLIGHTING_PRE": "<em>"}, clear=False)
    def test_environment_overrides(self):
        settings = Settings()
        assert settings.search_default_mm == "50%"
        assert settings.highlighting_pre == "<em>"

    @patch.dict(os.environ, {"SEARCH_DEFAULT_MM": "most"}, clear=False)
    def test_invalid_mm_is_rejected(self):
        with pytest.raises(ValidationError, match="search_default_mm"):
            Settings()

    def test_empty_prefix_is_rejected(self):
        with pytest.raises(ValidationError):
            Settings(index_name_prefix="")

    def test_get_settings_is_cached(self):
        assert get_settings() is get_settings()
