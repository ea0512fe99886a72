"""Tests for the environment / file configuration layer."""

from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest

from plandelta.config import (
    Config,
    Environment,
    get_config,
    load_config_from_env,
    load_config_from_file,
    load_config_strict,
    reset_config,
)
from plandelta.exceptions import ConfigurationError


@pytest.fixture(autouse=True)
def clean_config(monkeypatch: pytest.MonkeyPatch):
    """Clear PLANDELTA_* variables and the cached config around each test."""
    for name in (
        "ENVIRONMENT",
        "LARGE_SCAN_ROWS",
        "NESTED_LOOP_ROWS",
        "HIGH_COST",
        "BAD_ESTIMATE_RATIO",
        "TAB_WIDTH",
        "MAX_NODES",
        "LOG_LEVEL",
        "CONFIG_FILE",
    ):
        monkeypatch.delenv(f"PLANDELTA_{name}", raising=False)
    reset_config()
    yield
    reset_config()


class TestDefaults:
    """Configuration with nothing set."""

    def test_defaults(self) -> None:
        config = load_config_from_env()

        assert config.environment == Environment.DEVELOPMENT
        assert config.risk.large_scan_rows == 10_000
        assert config.risk.nested_loop_rows == 10_000
        assert config.risk.high_cost == 10_000.0
        assert config.risk.bad_estimate_ratio == 10.0
        assert config.parser.tab_width == 4
        assert config.log_level == "WARNING"

    def test_config_is_frozen(self) -> None:
        config = Config()

        with pytest.raises(ValueError):
            config.log_level = "DEBUG"

    def test_config_hash_is_stable(self) -> None:
        assert Config().config_hash() == Config().config_hash()
        assert len(Config().config_hash()) == 16

    def test_config_hash_tracks_thresholds(self) -> None:
        changed = Config(risk={"large_scan_rows": 5})
        assert changed.config_hash() != Config().config_hash()


class TestEnvironment:
    """Loading from PLANDELTA_* variables."""

    def test_env_values(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("PLANDELTA_ENVIRONMENT", "Production")
        monkeypatch.setenv("PLANDELTA_LARGE_SCAN_ROWS", "50000")
        monkeypatch.setenv("PLANDELTA_HIGH_COST", "2500.5")
        monkeypatch.setenv("PLANDELTA_TAB_WIDTH", "8")
        monkeypatch.setenv("PLANDELTA_LOG_LEVEL", "debug")

        config = load_config_from_env()

        assert config.environment == Environment.PRODUCTION
        assert config.risk.large_scan_rows == 50_000
        assert config.risk.high_cost == 2500.5
        assert config.parser.tab_width == 8
        assert config.log_level == "DEBUG"

    def test_unparseable_value_falls_back(
        self, monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture
    ) -> None:
        monkeypatch.setenv("PLANDELTA_LARGE_SCAN_ROWS", "lots")

        with caplog.at_level(logging.WARNING, logger="plandelta.config"):
            config = load_config_from_env()

        assert config.risk.large_scan_rows == 10_000
        assert "lots" in caplog.text

    def test_invalid_value_falls_back(
        self, monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture
    ) -> None:
        monkeypatch.setenv("PLANDELTA_BAD_ESTIMATE_RATIO", "0.5")

        with caplog.at_level(logging.WARNING, logger="plandelta.config"):
            config = load_config_from_env()

        assert config.risk.bad_estimate_ratio == 10.0
        assert "Invalid risk thresholds" in caplog.text

    def test_unknown_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("PLANDELTA_ENVIRONMENT", "qa")
        assert load_config_from_env().environment == Environment.DEVELOPMENT

    def test_unknown_log_level(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("PLANDELTA_LOG_LEVEL", "chatty")
        assert load_config_from_env().log_level == "WARNING"


class TestConfigFile:
    """Loading from JSON files."""

    def test_load_file(self, tmp_path: Path) -> None:
        path = tmp_path / "plandelta.json"
        path.write_text(json.dumps({"risk": {"nested_loop_rows": 500}, "parser": {"max_nodes": 100}}))

        config = load_config_from_file(path)

        assert config.risk.nested_loop_rows == 500
        assert config.risk.large_scan_rows == 10_000
        assert config.parser.max_nodes == 100

    def test_load_yaml_file(self, tmp_path: Path) -> None:
        path = tmp_path / "plandelta.yaml"
        path.write_text("environment: staging\nrisk:\n  high_cost: 500\n")

        config = load_config_from_file(path)

        assert config.environment == Environment.STAGING
        assert config.risk.high_cost == 500.0

    def test_strict_yaml_file(self, tmp_path: Path) -> None:
        path = tmp_path / "plandelta.yml"
        path.write_text("parser:\n  tab_width: 2\n")

        assert load_config_strict(path).parser.tab_width == 2

    def test_missing_file_falls_back(self, tmp_path: Path) -> None:
        config = load_config_from_file(tmp_path / "missing.json")
        assert config == load_config_from_env()

    def test_bad_file_falls_back(self, tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
        path = tmp_path / "bad.json"
        path.write_text("{not json")

        with caplog.at_level(logging.ERROR, logger="plandelta.config"):
            config = load_config_from_file(path)

        assert config.risk.large_scan_rows == 10_000
        assert "Failed to load config" in caplog.text

    def test_strict_missing(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigurationError, match="not found"):
            load_config_strict(tmp_path / "missing.json")

    def test_strict_invalid_value(self, tmp_path: Path) -> None:
        path = tmp_path / "plandelta.json"
        path.write_text(json.dumps({"risk": {"large_scan_rows": -1}}))

        with pytest.raises(ConfigurationError) as exc_info:
            load_config_strict(path)

        assert exc_info.value.config_key == "risk.large_scan_rows"

    def test_strict_not_an_object(self, tmp_path: Path) -> None:
        path = tmp_path / "plandelta.json"
        path.write_text("[1, 2]")

        with pytest.raises(ConfigurationError, match="JSON object"):
            load_config_strict(path)


class TestGetConfig:
    """Cached global configuration."""

    def test_cached(self) -> None:
        assert get_config() is get_config()

    def test_reset(self, monkeypatch: pytest.MonkeyPatch) -> None:
        first = get_config()
        monkeypatch.setenv("PLANDELTA_HIGH_COST", "99")
        reset_config()

        assert get_config() is not first
        assert get_config().risk.high_cost == 99.0

    def test_config_file_variable(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        path = tmp_path / "plandelta.json"
        path.write_text(json.dumps({"log_level": "info"}))
        monkeypatch.setenv("PLANDELTA_CONFIG_FILE", str(path))

        assert get_config().log_level == "INFO"
