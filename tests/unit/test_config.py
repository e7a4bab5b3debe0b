"""Tests for Settings."""

import pytest

from peopledb.config import DEFAULT_DATABASE_URL, Settings
from peopledb.exceptions import ConfigurationError


class TestSettingsFromEnv:
    def test_table_name_from_environment(self) -> None:
        settings = Settings.from_env({"PEOPLEDB_TABLE_NAME": "people"})
        assert settings.table_name == "people"
        assert settings.database_url == DEFAULT_DATABASE_URL
        assert settings.page_size == 1000
        assert settings.max_retries == 3

    def test_all_variables(self) -> None:
        settings = Settings.from_env(
            {
                "PEOPLEDB_TABLE_NAME": "people",
                "PEOPLEDB_URL": "postgresql://localhost/people",
                "PEOPLEDB_PAGE_SIZE": "25",
                "PEOPLEDB_MAX_RETRIES": "7",
            }
        )
        assert settings.database_url == "postgresql://localhost/people"
        assert settings.page_size == 25
        assert settings.max_retries == 7

    def test_missing_table_name_is_fatal(self) -> None:
        with pytest.raises(ConfigurationError) as exc_info:
            Settings.from_env({})
        assert exc_info.value.setting == "table_name"
        assert "PEOPLEDB_TABLE_NAME" in exc_info.value.message

    def test_blank_table_name_is_fatal(self) -> None:
        with pytest.raises(ConfigurationError):
            Settings.from_env({}, table_name="   ")

    def test_non_integer_variable(self) -> None:
        with pytest.raises(ConfigurationError) as exc_info:
            Settings.from_env({"PEOPLEDB_TABLE_NAME": "people", "PEOPLEDB_PAGE_SIZE": "lots"})
        assert exc_info.value.setting == "page_size"

    def test_overrides_win(self) -> None:
        settings = Settings.from_env(
            {"PEOPLEDB_TABLE_NAME": "people", "PEOPLEDB_URL": "sqlite:///env.db"},
            table_name="override",
            database_url=None,
            echo=True,
        )
        assert settings.table_name == "override"
        assert settings.database_url == "sqlite:///env.db"
        assert settings.echo is True

    def test_reads_process_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("PEOPLEDB_TABLE_NAME", "from-env")
        assert Settings.from_env().table_name == "from-env"

    def test_table_name_is_stripped(self) -> None:
        assert Settings(table_name="  people ").table_name == "people"
