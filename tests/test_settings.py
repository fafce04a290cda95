"""Tests for settings configuration loading."""

from __future__ import annotations

from textwrap import dedent

import pytest
from pydantic import ValidationError

from feedlink.chains import resolve_chain
from feedlink.errors import ConfigError
from feedlink.settings import FeedSettings


@pytest.fixture(autouse=True)
def clean_env(tmp_path, monkeypatch):
    """Keep the developer's env, .env and config files out of the tests."""
    for name in (
        "FEEDLINK_CONFIG",
        "FEEDLINK_RPC_URL_ID",
        "FEEDLINK_RPC_URL",
        "FEEDLINK_LOG_LEVEL",
        "FEEDLINK_HISTORY_DEPTH",
        "FEEDLINK_REGISTRY_PATH",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path))


def _write_config(tmp_path, body: str):
    config_path = tmp_path / "config.toml"
    config_path.write_text(dedent(body).strip())
    return config_path


def test_defaults():
    settings = FeedSettings()
    assert settings.rpc_url_id is None
    assert settings.history_depth == 10
    assert settings.multicall_address == "0xcA11bde05977b3631167028862bE2a173976CA11"
    assert settings.log_level == "INFO"


def test_loads_feedlink_table_from_config(tmp_path, monkeypatch):
    config_path = _write_config(
        tmp_path,
        """
        [feedlink]
        history_depth = 25
        request_timeout = 4.5
        log_level = "debug"
        registry_path = "feeds.json"
        """,
    )
    monkeypatch.setenv("FEEDLINK_CONFIG", str(config_path))

    settings = FeedSettings()

    assert settings.history_depth == 25
    assert settings.request_timeout == 4.5
    assert settings.log_level == "DEBUG"
    assert settings.registry_path is not None
    assert settings.registry_path.name == "feeds.json"


def test_local_config_file_is_picked_up(tmp_path):
    (tmp_path / "feedlink.toml").write_text("history_depth = 3\n")
    assert FeedSettings().history_depth == 3


def test_env_overrides_config_and_cli_overrides_env(tmp_path, monkeypatch):
    config_path = _write_config(tmp_path, "history_depth = 25")
    monkeypatch.setenv("FEEDLINK_CONFIG", str(config_path))
    monkeypatch.setenv("FEEDLINK_HISTORY_DEPTH", "40")

    assert FeedSettings().history_depth == 40
    assert FeedSettings(history_depth=7).history_depth == 7


def test_secret_in_config_file_is_rejected(tmp_path, monkeypatch):
    config_path = _write_config(tmp_path, 'rpc_url_id = "abc123"')
    monkeypatch.setenv("FEEDLINK_CONFIG", str(config_path))

    with pytest.raises(ValueError, match="Security violation"):
        FeedSettings()


def test_secret_is_redacted(monkeypatch):
    monkeypatch.setenv("FEEDLINK_RPC_URL_ID", "abc123")

    settings = FeedSettings()

    assert settings.rpc_url_id is not None
    assert settings.rpc_url_id.get_secret_value() == "abc123"
    assert settings.as_safe_dict()["rpc_url_id"] == "***redacted***"
    assert "abc123" not in repr(settings)


def test_non_positive_history_depth_is_invalid():
    with pytest.raises(ValidationError):
        FeedSettings(history_depth=0)


def test_rpc_url_for_prefers_explicit_url():
    settings = FeedSettings(rpc_url="http://localhost:8545")
    assert settings.rpc_url_for(resolve_chain("mainnet")) == "http://localhost:8545"


def test_rpc_url_for_uses_chain_endpoint(monkeypatch):
    monkeypatch.setenv("FEEDLINK_RPC_URL_ID", "abc123")
    settings = FeedSettings()
    assert (
        settings.rpc_url_for(resolve_chain("arbitrum"))
        == "https://arbitrum-mainnet.infura.io/v3/abc123"
    )


def test_rpc_url_for_without_credential_is_a_config_error():
    with pytest.raises(ConfigError):
        FeedSettings().rpc_url_for(resolve_chain("mainnet"))


def test_registry_url_for_chain():
    settings = FeedSettings()
    assert settings.registry_url_for(resolve_chain("polygon")) == (
        "https://reference-data-directory.vercel.app/feeds-matic-mainnet.json"
    )
