"""Tests for configuration loading with layered precedence.

defaults < YAML < ENV < CLI
"""

from __future__ import annotations

import os
from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from filmrelay.infrastructure.config.load import load_config


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Drop FILMRELAY_* variables leaking in from the host environment."""
    for key in list(os.environ):
        if key.startswith("FILMRELAY_") or key == "ADDON_HOST":
            monkeypatch.delenv(key, raising=False)


@pytest.fixture()
def yaml_config(tmp_path: Path) -> Path:
    """Write a minimal YAML config and return its path."""
    config = {
        "app_name": "filmrelay-test",
        "environment": "test",
        "server": {"public_url": "https://addon.example/"},
        "plugins": {"plugin_dir": str(tmp_path / "plugins")},
        "http": {"timeout_seconds": 12.0},
        "logging": {"level": "DEBUG"},
        "sources": {"priority": ["xalaflix", "purstream"], "timeout_seconds": 8.0},
        "proxy": {"referer": "https://other.example/"},
    }
    path = tmp_path / "config.yaml"
    path.write_text(yaml.dump(config), encoding="utf-8")
    return path


class TestDefaultsOnly:
    def test_defaults_produce_valid_config(self) -> None:
        config = load_config()
        assert config.app_name == "filmrelay"
        assert config.environment == "dev"
        assert config.public_url == "http://127.0.0.1:7000"
        assert config.plugin_dir == Path("./plugins")
        assert config.log_level == "INFO"
        assert config.log_format == "console"
        assert config.sources.priority == ["purstream", "xalaflix", "frenchstream"]
        assert config.sources.timeout_seconds == 15.0
        assert config.sources.max_concurrent == 5
        assert config.sources.match_threshold == 0.7
        assert config.sources.fallback_max_words == 3
        assert config.sources.episode_tolerance == 1
        assert config.proxy.referer == "https://xalaflix.io/"
        assert config.proxy.origin == "https://xalaflix.io"
        assert config.metadata.base_url == "https://v3-cinemeta.strem.io"


class TestYamlLayer:
    def test_yaml_overrides_defaults(self, yaml_config: Path) -> None:
        config = load_config(config_path=yaml_config)
        assert config.app_name == "filmrelay-test"
        assert config.public_url == "https://addon.example"
        assert config.http_timeout_seconds == 12.0
        assert config.log_level == "DEBUG"
        assert config.sources.priority == ["xalaflix", "purstream"]
        assert config.sources.timeout_seconds == 8.0
        # untouched keys of a section keep their defaults
        assert config.sources.max_concurrent == 5
        assert config.proxy.referer == "https://other.example/"
        assert config.proxy.origin == "https://xalaflix.io"

    def test_missing_yaml(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_config(config_path=tmp_path / "absent.yaml")

    def test_empty_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "empty.yaml"
        path.write_text("", encoding="utf-8")
        assert load_config(config_path=path).app_name == "filmrelay"

    def test_non_mapping_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n", encoding="utf-8")
        with pytest.raises(ValueError, match="mapping"):
            load_config(config_path=path)


class TestEnvLayer:
    def test_env_overrides_yaml(
        self, yaml_config: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("FILMRELAY_LOG_LEVEL", "WARNING")
        monkeypatch.setenv("FILMRELAY_SOURCES_TIMEOUT_SECONDS", "3.5")
        config = load_config(config_path=yaml_config)
        assert config.log_level == "WARNING"
        assert config.sources.timeout_seconds == 3.5

    def test_addon_host_alias(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("ADDON_HOST", "https://relay.example")
        assert load_config().public_url == "https://relay.example"

    def test_priority_from_json(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("FILMRELAY_SOURCES_PRIORITY", '["frenchstream"]')
        assert load_config().sources.priority == ["frenchstream"]

    def test_dotenv_file(self, tmp_path: Path) -> None:
        dotenv = tmp_path / ".env"
        dotenv.write_text("FILMRELAY_PROXY_ORIGIN=https://dotenv.example\n")
        try:
            config = load_config(dotenv_path=dotenv)
        finally:
            os.environ.pop("FILMRELAY_PROXY_ORIGIN", None)
        assert config.proxy.origin == "https://dotenv.example"

    def test_missing_dotenv(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_config(dotenv_path=tmp_path / ".env")


class TestCliLayer:
    def test_cli_overrides_env(
        self, yaml_config: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("FILMRELAY_LOG_LEVEL", "WARNING")
        config = load_config(
            config_path=yaml_config,
            cli_overrides={"log_level": "ERROR", "log_format": "json"},
        )
        assert config.log_level == "ERROR"
        assert config.log_format == "json"

    def test_cli_plugin_dir(self, tmp_path: Path) -> None:
        config = load_config(cli_overrides={"plugin_dir": str(tmp_path)})
        assert config.plugin_dir == tmp_path


class TestValidation:
    def test_prod_defaults_to_json_logs(self) -> None:
        assert load_config(cli_overrides={"environment": "prod"}).log_format == "json"

    @pytest.mark.parametrize(
        "overrides",
        [
            {"sources_timeout_seconds": 0},
            {"sources_max_concurrent": 0},
            {"sources_match_threshold": 1.5},
            {"sources_episode_tolerance": -1},
            {"proxy_chunk_size": 10},
            {"public_url": "ftp://nope"},
            {"http_timeout_seconds": -1},
        ],
    )
    def test_invalid_values(self, overrides: dict) -> None:
        with pytest.raises(ValidationError):
            load_config(cli_overrides=overrides)

    def test_sectioned_dump_round_trips(self, yaml_config: Path) -> None:
        from filmrelay.infrastructure.config.schema import AppConfig

        config = load_config(config_path=yaml_config)
        assert AppConfig.model_validate(config.to_sectioned_dict()) == config
