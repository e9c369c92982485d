from pathlib import Path

import pytest

from opentok.config import (
    ConfigurationError,
    OpenTokConfig,
    TokenPolicy,
    load_opentok_config,
    load_token_policy,
    set_default_config_path,
)
from opentok.constants import API_URL


def test_load_config_prefers_environment_over_yaml(tmp_path: Path) -> None:
    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        """
        opentok:
          api_key: "111"
          api_secret: file_secret
          api_url: https://file.example.test
          timeout: 10
        """
    )

    env_map = {
        "OPENTOK_API_KEY": "222",
        "OPENTOK_API_SECRET": "env_secret",
        "OPENTOK_API_URL": "https://env.example.test/",
        "OPENTOK_TIMEOUT": "4.5",
    }

    config = load_opentok_config(config_path=config_path, env=env_map)

    assert isinstance(config, OpenTokConfig)
    assert config.api_key == "222"
    assert config.api_secret == "env_secret"
    assert config.api_url == "https://env.example.test"
    assert config.timeout == 4.5
    assert "env_secret" not in repr(config)


def test_load_config_reads_yaml_when_env_missing(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    config_path = tmp_path / ".opentok.yaml"
    monkeypatch.setattr("opentok.config.DEFAULT_CONFIG_PATH", config_path)
    config_path.write_text(
        """
        opentok:
          api_key: 12345
          api_secret: yaml_secret
        """
    )

    config = load_opentok_config(env={})

    assert config.api_key == "12345"
    assert config.api_secret == "yaml_secret"
    assert config.api_url == API_URL
    assert config.timeout == 30


def test_overrides_win(tmp_path: Path) -> None:
    config_path = tmp_path / "config.yaml"
    config_path.write_text("opentok:\n  api_key: '1'\n  api_secret: a\n")

    config = load_opentok_config(
        config_path=config_path, env={}, overrides={"api_key": "9", "timeout": 1}
    )

    assert config.api_key == "9"
    assert config.timeout == 1.0


def test_load_config_requires_credentials(tmp_path: Path) -> None:
    config_path = tmp_path / "config.yaml"
    config_path.write_text("opentok: {}\n")

    with pytest.raises(ConfigurationError):
        load_opentok_config(config_path=config_path, env={})


def test_explicit_missing_file_is_an_error(tmp_path: Path) -> None:
    with pytest.raises(ConfigurationError):
        load_opentok_config(config_path=tmp_path / "missing.yaml", env={})


@pytest.mark.parametrize(
    "env_map",
    [
        {"OPENTOK_API_KEY": "1", "OPENTOK_API_SECRET": "x", "OPENTOK_API_URL": "ftp://host"},
        {"OPENTOK_API_KEY": "1", "OPENTOK_API_SECRET": "x", "OPENTOK_TIMEOUT": "soon"},
        {"OPENTOK_API_KEY": "1", "OPENTOK_API_SECRET": "x", "OPENTOK_TIMEOUT": "0"},
    ],
)
def test_invalid_values_are_rejected(tmp_path: Path, monkeypatch: pytest.MonkeyPatch, env_map) -> None:
    monkeypatch.setattr("opentok.config.DEFAULT_CONFIG_PATH", tmp_path / "absent.yaml")

    with pytest.raises(ConfigurationError):
        load_opentok_config(env=env_map)


def test_load_token_policy_from_yaml(tmp_path: Path) -> None:
    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        """
        token:
          default_lifetime: 600
          max_lifetime: 3600
        """
    )

    policy = load_token_policy(config_path=config_path, overrides={"max_connection_data_bytes": 10})

    assert policy == TokenPolicy(default_lifetime=600, max_lifetime=3600, max_connection_data_bytes=10)


def test_token_policy_rejects_inconsistent_limits() -> None:
    with pytest.raises(ConfigurationError):
        TokenPolicy(default_lifetime=7200, max_lifetime=3600)


def test_set_default_config_path_is_used_and_required(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("opentok.config._CONFIG_PATH_OVERRIDE", None)
    monkeypatch.setattr("opentok.config.DEFAULT_CONFIG_PATH", tmp_path / "absent.yaml")
    config_path = tmp_path / "custom.yaml"
    config_path.write_text("opentok:\n  api_key: '777'\n  api_secret: custom_secret\n")

    set_default_config_path(config_path)
    config = load_opentok_config(env={})

    assert config.api_key == "777"
    assert config.api_secret == "custom_secret"

    config_path.unlink()
    with pytest.raises(ConfigurationError):
        load_opentok_config(env={})

    set_default_config_path(None)
    with pytest.raises(ConfigurationError) as excinfo:
        load_opentok_config(env={})
    assert "not found" not in str(excinfo.value)
