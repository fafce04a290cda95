"""Token pair to oracle proxy registry, backed by Chainlink reference data."""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable

import requests
from web3 import Web3

from .errors import ConfigError
from .logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class OracleDescriptor:
    """A price feed as listed in the reference data."""

    name: str
    token: str
    base: str
    proxy_address: str
    decimals: int
    aggregator_address: str | None = None


def _pair_from_entry(entry: dict[str, Any]) -> tuple[str, str] | None:
    docs = entry.get("docs") or {}
    token, base = docs.get("baseAsset"), docs.get("quoteAsset")
    if token and base:
        return token.upper(), base.upper()
    name = entry.get("name") or ""
    if "/" not in name:
        return None
    token, _, base = name.partition("/")
    if not token.strip() or not base.strip():
        return None
    return token.strip().upper(), base.strip().upper()


def parse_entry(entry: dict[str, Any]) -> OracleDescriptor | None:
    """Build a descriptor from one reference-data entry, or None if unusable."""
    proxy = entry.get("proxyAddress")
    pair = _pair_from_entry(entry)
    decimals = entry.get("decimals")
    if not proxy or pair is None or decimals is None:
        return None
    try:
        proxy_address = Web3.to_checksum_address(proxy)
    except ValueError:
        logger.debug("Skipping feed %s with invalid proxy %s", entry.get("name"), proxy)
        return None
    aggregator = entry.get("contractAddress")
    return OracleDescriptor(
        name=entry.get("name") or f"{pair[0]} / {pair[1]}",
        token=pair[0],
        base=pair[1],
        proxy_address=proxy_address,
        decimals=int(decimals),
        aggregator_address=Web3.to_checksum_address(aggregator) if aggregator else None,
    )


class OracleRegistry:
    """Case-insensitive lookup of oracle descriptors by token/base."""

    def __init__(self, descriptors: Iterable[OracleDescriptor]):
        self._by_pair: dict[tuple[str, str], OracleDescriptor] = {}
        for descriptor in descriptors:
            self._by_pair.setdefault((descriptor.token, descriptor.base), descriptor)

    def __len__(self) -> int:
        return len(self._by_pair)

    def lookup(self, token: str, base: str) -> OracleDescriptor | None:
        return self._by_pair.get((token.upper(), base.upper()))

    @classmethod
    def from_entries(cls, entries: Iterable[dict[str, Any]]) -> "OracleRegistry":
        descriptors = [d for d in (parse_entry(e) for e in entries) if d is not None]
        return cls(descriptors)

    @classmethod
    def from_file(cls, path: str | Path) -> "OracleRegistry":
        try:
            with Path(path).open() as f:
                entries = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigError(f"Cannot load feed registry from {path}: {e}") from e
        if not isinstance(entries, list):
            raise ConfigError(f"Feed registry {path} must be a JSON list")
        return cls.from_entries(entries)

    @classmethod
    def from_url(cls, url: str, timeout: float = 10.0) -> "OracleRegistry":
        logger.debug("Fetching feed registry from %s", url)
        try:
            response = requests.get(url, timeout=timeout)
            response.raise_for_status()
            entries = response.json()
        except (requests.RequestException, ValueError) as e:
            raise ConfigError(f"Cannot load feed registry from {url}: {e}") from e
        if not isinstance(entries, list):
            raise ConfigError(f"Feed registry at {url} must be a JSON list")
        registry = cls.from_entries(entries)
        logger.debug("Loaded %d feeds from %s", len(registry), url)
        return registry
