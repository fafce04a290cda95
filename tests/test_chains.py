from __future__ import annotations

import pytest

from feedlink.chains import SUPPORTED_CHAINS, resolve_chain
from feedlink.errors import ConfigError


@pytest.mark.parametrize("value", ["mainnet", "Ethereum", "eth", "1", " MAINNET "])
def test_resolve_mainnet_by_name_alias_or_id(value):
    assert resolve_chain(value).chain_id == 1


def test_resolve_polygon_alias():
    assert resolve_chain("matic").name == "polygon"


def test_unsupported_chain_lists_supported_ones():
    with pytest.raises(ConfigError, match="Unsupported chain 'solana'") as excinfo:
        resolve_chain("solana")
    assert "mainnet" in str(excinfo.value)


def test_chain_names_and_ids_are_unique():
    names = [chain.name for chain in SUPPORTED_CHAINS]
    ids = [chain.chain_id for chain in SUPPORTED_CHAINS]
    assert len(names) == len(set(names))
    assert len(ids) == len(set(ids))


def test_infura_chain_needs_credential():
    chain = resolve_chain("polygon")
    assert chain.rpc_url("abc123") == "https://polygon-mainnet.infura.io/v3/abc123"
    with pytest.raises(ConfigError, match="FEEDLINK_RPC_URL_ID"):
        chain.rpc_url(None)


def test_public_rpc_chain_needs_no_credential():
    chain = resolve_chain("bsc-testnet")
    assert chain.rpc_url(None).startswith("https://")
