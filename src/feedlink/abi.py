"""Bundled contract ABIs."""

from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path

ABIS_DIR = Path(__file__).parent / "abis"

AGGREGATOR_PROXY_ABI_PATH = ABIS_DIR / "AggregatorProxy.json"
MULTICALL_ABI_PATH = ABIS_DIR / "Multicall3.json"


def load_abi(path: str | Path) -> list[dict]:
    """Read the ``abi`` list out of an ABI JSON document.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the file is not JSON or has no ``abi`` list.
    """
    with Path(path).open() as f:
        data = json.load(f)
    abi = data.get("abi") if isinstance(data, dict) else None
    if not isinstance(abi, list):
        raise ValueError(f"{path} has no 'abi' list")
    return abi


@lru_cache(maxsize=None)
def load_aggregator_proxy_abi() -> list[dict]:
    """Price feed proxy ABI (AggregatorV2V3 plus the phase accessors)."""
    return load_abi(AGGREGATOR_PROXY_ABI_PATH)


@lru_cache(maxsize=None)
def load_multicall_abi() -> list[dict]:
    return load_abi(MULTICALL_ABI_PATH)


def find_function(abi: list[dict], name: str) -> dict:
    """Return the ABI entry of the function called ``name``.

    Raises:
        KeyError: If the ABI has no such function.
    """
    for entry in abi:
        if entry.get("type") == "function" and entry.get("name") == name:
            return entry
    raise KeyError(f"Function {name!r} not found in ABI")
