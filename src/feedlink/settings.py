"""Settings with precedence CLI > ENV > .env > TOML config file."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

try:
    import tomllib  # py311+
except ModuleNotFoundError:  # pragma: no cover
    import tomli as tomllib  # type: ignore

from dotenv import load_dotenv
from pydantic import Field, SecretStr, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from .chains import ChainInfo
from .constants import (
    DEFAULT_HISTORY_DEPTH,
    DEFAULT_REGISTRY_URL_TEMPLATE,
    DEFAULT_REQUEST_TIMEOUT,
    MULTICALL3_ADDRESS,
)

load_dotenv()

CONFIG_ENV_VAR = "FEEDLINK_CONFIG"
CONFIG_TABLE = "feedlink"
SECRET_FIELDS = frozenset({"rpc_url_id"})


def default_config_paths() -> tuple[Path, ...]:
    """Config files tried, in order, when FEEDLINK_CONFIG is not set."""
    return (
        Path("feedlink.toml"),
        Path.home() / ".config" / "feedlink" / "config.toml",
    )


def find_config_file() -> Path | None:
    explicit = os.environ.get(CONFIG_ENV_VAR)
    if explicit:
        return Path(explicit)
    return next((path for path in default_config_paths() if path.exists()), None)


def read_config_file(path: Path) -> dict[str, Any]:
    """Settings table of a TOML file: ``[feedlink]`` if present, else top level.

    Raises:
        ValueError: If the file holds a secret.
    """
    with path.open("rb") as f:
        data = tomllib.load(f)
    body = data.get(CONFIG_TABLE, data)
    if not isinstance(body, dict):
        return {}

    leaked = sorted(SECRET_FIELDS.intersection(body))
    if leaked:
        raise ValueError(
            f"Security violation: {', '.join(repr(k) for k in leaked)} found in "
            f"config file {path}. Secrets must only be provided via environment "
            "variables or CLI flags."
        )
    return body


class TomlConfigSource(PydanticBaseSettingsSource):
    """Lowest-precedence source reading the feedlink TOML file."""

    def __init__(self, settings_cls: type[BaseSettings], path: Path | None):
        super().__init__(settings_cls)
        self.path = path

    def get_field_value(self, field: Any, field_name: str) -> tuple[Any, str, bool]:
        return None, "", False

    def __call__(self) -> dict[str, Any]:
        if self.path is None or not self.path.exists():
            return {}
        return read_config_file(self.path)


class FeedSettings(BaseSettings):
    """Single source of truth for configuration. Values may come from:
    - CLI (init kwargs)
    - ENV / .env (prefixed with FEEDLINK_)
    - Config file (TOML), lowest precedence

    Do not read os.environ or files elsewhere in the codebase.
    """

    # --- endpoints ---
    rpc_url_id: SecretStr | None = None
    rpc_url: str | None = None
    request_timeout: float = Field(default=DEFAULT_REQUEST_TIMEOUT, gt=0)

    # --- contracts ---
    multicall_address: str = MULTICALL3_ADDRESS

    # --- registry ---
    registry_url_template: str = DEFAULT_REGISTRY_URL_TEMPLATE
    registry_path: Path | None = None

    # --- history ---
    history_depth: int = Field(default=DEFAULT_HISTORY_DEPTH, gt=0)

    # --- logging ---
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_prefix="FEEDLINK_",
        env_file=".env",
        extra="ignore",
    )

    @field_validator("rpc_url_id", mode="before")
    @classmethod
    def wrap_secrets(cls, v: Any) -> SecretStr | None:
        """Wrap string secrets in SecretStr."""
        if v is None or isinstance(v, SecretStr):
            return v
        return SecretStr(v)

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v: Any) -> Any:
        return v.upper() if isinstance(v, str) else v

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,  # CLI (highest)
            env_settings,
            dotenv_settings,
            TomlConfigSource(settings_cls, find_config_file()),
            file_secret_settings,
        )

    def as_safe_dict(self) -> dict[str, Any]:
        """Return the config as a dict with secrets redacted."""
        data = self.model_dump(mode="json")
        for key in SECRET_FIELDS:
            if data.get(key) is not None:
                data[key] = "***redacted***"
        return data

    def rpc_url_for(self, chain: ChainInfo) -> str:
        """Endpoint for ``chain``: the explicit override, else the chain's default.

        Raises:
            ConfigError: If the chain endpoint needs a credential that is not set.
        """
        if self.rpc_url:
            return self.rpc_url
        rpc_url_id = (
            self.rpc_url_id.get_secret_value() if self.rpc_url_id is not None else None
        )
        return chain.rpc_url(rpc_url_id)

    def registry_url_for(self, chain: ChainInfo) -> str:
        return self.registry_url_template.format(network=chain.reference_network)
