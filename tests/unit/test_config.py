"""Tests for Config module."""

import os

import pytest

from dbmill.config import DEFAULT_DRIVER, Config, load_dbmillcfg, read_patterns
from dbmill.exceptions import ConfigError

ENV_VARS = [
    "DBMILL_CONNECTION",
    "DBMILL_DRIVER",
    "DBMILL_PATH",
    "DBMILL_LAYOUT",
    "DBMILL_INCLUDE",
    "DBMILL_EXCLUDE",
    "DBMILL_INCLUDE_PATH",
    "DBMILL_EXCLUDE_PATH",
    "DBMILL_LOG",
    "DBMILL_LOG_LEVEL",
    "DBMILL_SKIP_PERMISSIONS",
    "DBMILL_TIMEOUT",
    "DBMILL_PROFILE",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("HOME", str(tmp_path))


class TestConfigDefaults:
    """Test Config default values."""

    def test_config_defaults(self):
        config = Config()
        assert config.connection is None
        assert config.driver == DEFAULT_DRIVER
        assert config.path == "."
        assert config.include == []
        assert config.exclude == []
        assert config.log_level == "info"
        assert config.skip_permissions is False
        assert config.timeout == 30
        assert config.queue_size == 64


class TestConfigFromEnv:
    """Test Config.from_env() loading from environment variables."""

    def test_config_loads_from_env(self, monkeypatch):
        monkeypatch.setenv("DBMILL_CONNECTION", "sqlserver://sa@db01")
        monkeypatch.setenv("DBMILL_DRIVER", "FreeTDS")
        monkeypatch.setenv("DBMILL_PATH", "/tmp/scripts")
        monkeypatch.setenv("DBMILL_INCLUDE", f"dbo{os.pathsep}sales")
        monkeypatch.setenv("DBMILL_LOG_LEVEL", "debug")
        monkeypatch.setenv("DBMILL_SKIP_PERMISSIONS", "true")
        monkeypatch.setenv("DBMILL_TIMEOUT", "90")

        config = Config.from_env()

        assert config.connection == "sqlserver://sa@db01"
        assert config.driver == "FreeTDS"
        assert config.path == "/tmp/scripts"
        assert config.include == ["dbo", "sales"]
        assert config.log_level == "debug"
        assert config.skip_permissions is True
        assert config.timeout == 90

    def test_explicit_params_override_env(self, monkeypatch):
        monkeypatch.setenv("DBMILL_CONNECTION", "sqlserver://env@db01")
        monkeypatch.setenv("DBMILL_INCLUDE", "env")

        config = Config.from_env(
            connection="sqlserver://cli@db02", include=["cli"], timeout=5
        )

        assert config.connection == "sqlserver://cli@db02"
        assert config.include == ["cli"]
        assert config.timeout == 5

    def test_invalid_timeout(self, monkeypatch):
        monkeypatch.setenv("DBMILL_TIMEOUT", "soon")
        with pytest.raises(ConfigError, match="Invalid timeout"):
            Config.from_env()


class TestDbmillCfg:
    """Test profiles in ~/.dbmill.cfg."""

    def test_missing_file_returns_empty(self):
        assert load_dbmillcfg() == {}

    def test_profile_values_are_lowest_priority(self, tmp_path, monkeypatch):
        (tmp_path / ".dbmill.cfg").write_text(
            "[DEFAULT]\n"
            "connection = sqlserver://cfg@db01\n"
            "driver = ODBC Driver 17 for SQL Server\n"
            "\n"
            "[prod]\n"
            "connection = sqlserver://cfg@prod01\n"
        )

        assert Config.from_env().connection == "sqlserver://cfg@db01"
        assert Config.from_env(profile="prod").connection == "sqlserver://cfg@prod01"
        assert Config.from_env(profile="prod").driver == "ODBC Driver 17 for SQL Server"

        monkeypatch.setenv("DBMILL_CONNECTION", "sqlserver://env@db01")
        assert Config.from_env(profile="prod").connection == "sqlserver://env@db01"

    def test_unknown_explicit_profile_raises(self, tmp_path):
        (tmp_path / ".dbmill.cfg").write_text("[dev]\nconnection = sqlserver://x@y\n")
        with pytest.raises(ConfigError, match="Profile 'qa' not found"):
            Config.from_env(profile="qa")


class TestPatterns:
    """Test pattern files."""

    def test_read_patterns_skips_blanks_and_comments(self, tmp_path):
        path = tmp_path / "include.txt"
        path.write_text("# procedures\n\\[dbo\\]\\.\\[Get.*\n\n  \\[rpt\\]  \n")
        assert read_patterns(path) == ["\\[dbo\\]\\.\\[Get.*", "\\[rpt\\]"]

    def test_read_patterns_missing_file(self, tmp_path):
        with pytest.raises(ConfigError, match="Cannot read pattern file"):
            read_patterns(tmp_path / "missing.txt")

    def test_patterns_merge_inline_and_files(self, tmp_path):
        (tmp_path / "exclude.txt").write_text("tmp\n")
        config = Config(include=["dbo"], exclude=["old"], exclude_path=str(tmp_path / "exclude.txt"))
        assert config.patterns() == (["dbo"], ["old", "tmp"])


class TestValidateForDbOps:
    """Test validate_for_db_ops()."""

    def test_missing_connection(self):
        with pytest.raises(ConfigError) as exc_info:
            Config().validate_for_db_ops()
        assert "connection (use --db or DBMILL_CONNECTION)" in str(exc_info.value)

    def test_valid_config(self):
        Config(connection="sqlserver://sa@localhost").validate_for_db_ops()

    def test_non_positive_timeout(self):
        with pytest.raises(ConfigError, match="Timeout must be positive"):
            Config(connection="sqlserver://sa@localhost", timeout=0).validate_for_db_ops()
