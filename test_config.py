"""
Configuration tests.

Settings come from environment variables; every matching threshold and
the per-call timeout can be overridden without touching code.
"""

from pathlib import Path

import pytest

from core.config import DEFAULT_DB_PATH, get_settings
from documents import InMemoryDocumentRepository
from supplier_resolver.models import MatchingConfig
from supplier_resolver.resolver import SupplierResolver


ENV_VARS = [
    "SUPPLIER_DB_PATH",
    "SUPPLIER_IGNORE_DB_PATH",
    "SUPPLIER_SUBSTRING_MIN_LENGTH",
    "SUPPLIER_FUZZY_THRESHOLD",
    "SUPPLIER_MAX_LENGTH_DIFFERENCE",
    "SUPPLIER_CALL_TIMEOUT_SECONDS",
    "LOG_LEVEL",
    "LOG_JSON",
]


@pytest.fixture
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestSettings:
    """Test reading settings from the environment."""

    def test_defaults(self, clean_env):
        settings = get_settings()

        assert settings.db_path == DEFAULT_DB_PATH
        assert settings.ignore_db_path == DEFAULT_DB_PATH
        assert settings.substring_min_length == 5
        assert settings.fuzzy_threshold == 0.85
        assert settings.max_length_difference == 2
        assert settings.call_timeout_seconds == 10.0
        assert settings.log_level == "INFO"
        assert settings.log_json is False

    def test_overrides(self, clean_env, tmp_path):
        clean_env.setenv("SUPPLIER_DB_PATH", str(tmp_path / "docs.db"))
        clean_env.setenv("SUPPLIER_SUBSTRING_MIN_LENGTH", "7")
        clean_env.setenv("SUPPLIER_FUZZY_THRESHOLD", "0.9")
        clean_env.setenv("SUPPLIER_MAX_LENGTH_DIFFERENCE", "1")
        clean_env.setenv("SUPPLIER_CALL_TIMEOUT_SECONDS", "2.5")
        clean_env.setenv("LOG_LEVEL", "debug")
        clean_env.setenv("LOG_JSON", "true")

        settings = get_settings()

        assert settings.db_path == Path(tmp_path / "docs.db")
        assert settings.ignore_db_path == settings.db_path
        assert settings.substring_min_length == 7
        assert settings.fuzzy_threshold == 0.9
        assert settings.max_length_difference == 1
        assert settings.call_timeout_seconds == 2.5
        assert settings.log_level == "DEBUG"
        assert settings.log_json is True

    def test_separate_ignore_db(self, clean_env, tmp_path):
        clean_env.setenv("SUPPLIER_IGNORE_DB_PATH", str(tmp_path / "ignored.db"))
        assert get_settings().ignore_db_path == tmp_path / "ignored.db"

    def test_bad_integer_names_variable(self, clean_env):
        clean_env.setenv("SUPPLIER_SUBSTRING_MIN_LENGTH", "five")
        with pytest.raises(ValueError, match="SUPPLIER_SUBSTRING_MIN_LENGTH"):
            get_settings()

    def test_out_of_range_threshold(self, clean_env):
        clean_env.setenv("SUPPLIER_FUZZY_THRESHOLD", "1.5")
        with pytest.raises(ValueError):
            get_settings()


class TestResolverFromSettings:
    """Test wiring settings into the resolver."""

    def test_matching_config_from_settings(self, clean_env, tmp_path):
        clean_env.setenv("SUPPLIER_IGNORE_DB_PATH", str(tmp_path / "ignored.db"))
        clean_env.setenv("SUPPLIER_FUZZY_THRESHOLD", "0.95")
        clean_env.setenv("SUPPLIER_CALL_TIMEOUT_SECONDS", "3")

        settings = get_settings()
        resolver = SupplierResolver.from_settings(InMemoryDocumentRepository(), settings)

        assert resolver.config == MatchingConfig(fuzzy_threshold=0.95)
        assert resolver.merge_executor.call_timeout == 3.0
        assert resolver.exception_store.db_path == tmp_path / "ignored.db"
