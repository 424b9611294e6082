"""Tests for configuration management."""

import logging
import os
from pathlib import Path
from unittest.mock import patch

import pytest

from fundfolio.config import Config
from fundfolio.core.exceptions import ConfigurationError


class TestConfigDefaults:
    """Tests for default configuration values."""

    def test_default_paths(self):
        with patch.dict(os.environ, {}, clear=True):
            cfg = Config()
            assert cfg.db_path == Path("./data/fundfolio.db")
            assert cfg.export_dir == Path("./data/exports")

    def test_default_share_decimals(self):
        with patch.dict(os.environ, {}, clear=True):
            assert Config().share_decimals == 2

    def test_default_log_level(self):
        with patch.dict(os.environ, {}, clear=True):
            cfg = Config()
            assert cfg.log_level == "WARNING"
            assert cfg.log_level_value == logging.WARNING


class TestConfigFromEnv:
    """Tests for configuration from environment variables."""

    def test_custom_db_path(self):
        with patch.dict(os.environ, {"FUNDFOLIO_DB_PATH": "/custom/path.db"}):
            assert Config().db_path == Path("/custom/path.db")

    def test_custom_share_decimals(self):
        with patch.dict(os.environ, {"FUNDFOLIO_SHARE_DECIMALS": "4"}):
            assert Config().share_decimals == 4

    def test_log_level_is_uppercased(self):
        with patch.dict(os.environ, {"FUNDFOLIO_LOG_LEVEL": "debug"}):
            cfg = Config()
            assert cfg.log_level == "DEBUG"
            assert cfg.log_level_value == logging.DEBUG

    def test_string_paths_are_converted(self):
        cfg = Config(db_path="a/b.db", export_dir="out")

        assert cfg.db_path == Path("a/b.db")
        assert cfg.export_dir == Path("out")


class TestConfigValidation:
    """Tests for validate() method."""

    def test_defaults_are_valid(self):
        with patch.dict(os.environ, {}, clear=True):
            Config().validate()

    def test_negative_share_decimals(self):
        with patch.dict(os.environ, {"FUNDFOLIO_SHARE_DECIMALS": "-1"}):
            cfg = Config()
            with pytest.raises(ConfigurationError, match="FUNDFOLIO_SHARE_DECIMALS"):
                cfg.validate()

    def test_unknown_log_level(self):
        with patch.dict(os.environ, {"FUNDFOLIO_LOG_LEVEL": "chatty"}):
            cfg = Config()
            with pytest.raises(ConfigurationError, match="Invalid FUNDFOLIO_LOG_LEVEL"):
                cfg.validate()


class TestEnsureDirectories:
    """Tests for directory creation."""

    def test_creates_missing_directories(self, tmp_path):
        cfg = Config(db_path=tmp_path / "db" / "fundfolio.db", export_dir=tmp_path / "exports")

        cfg.ensure_directories()

        assert (tmp_path / "db").is_dir()
        assert (tmp_path / "exports").is_dir()
