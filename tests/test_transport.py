from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock

import aiohttp
import pytest
from web3 import Web3
from web3.exceptions import ContractLogicError

from feedlink.errors import CallReverted, TransportError
from feedlink.transport import Web3Transport

TARGET = "0x5f4ec3df9cbd43714fe2740f5e3616155c5b8419"
CHECKSUM_TARGET = "0x5f4eC3Df9cbd43714FE2740f5E3616155c5b8419"


def create_mock_web3(call: AsyncMock) -> MagicMock:
    """Helper to create a mock AsyncWeb3 instance."""
    mock = MagicMock()
    mock.to_checksum_address = Web3.to_checksum_address
    mock.to_hex = Web3.to_hex
    mock.eth.call = call
    mock.provider = MagicMock()
    mock.provider.disconnect = AsyncMock()
    return mock


@pytest.mark.asyncio
async def test_call_returns_raw_bytes():
    call = AsyncMock(return_value=b"\x00" * 31 + b"\x2a")
    transport = Web3Transport("https://rpc.example", w3=create_mock_web3(call))

    result = await transport.call(TARGET, b"\x50\xd2\x5b\xcd")

    assert result == b"\x00" * 31 + b"\x2a"
    call.assert_awaited_once_with(
        {"to": CHECKSUM_TARGET, "data": "0x50d25bcd"}, block_identifier="latest"
    )


@pytest.mark.asyncio
async def test_revert_maps_to_call_reverted():
    call = AsyncMock(side_effect=ContractLogicError("execution reverted: No data present"))
    transport = Web3Transport("https://rpc.example", w3=create_mock_web3(call))

    with pytest.raises(CallReverted) as excinfo:
        await transport.call(TARGET, b"\x00")

    assert excinfo.value.target == CHECKSUM_TARGET
    assert "No data present" in excinfo.value.reason


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "error",
    [
        aiohttp.ClientConnectionError("connection refused"),
        asyncio.TimeoutError(),
        ValueError({"code": -32000, "message": "header not found"}),
    ],
)
async def test_transport_failures_map_to_transport_error(error):
    transport = Web3Transport(
        "https://rpc.example", w3=create_mock_web3(AsyncMock(side_effect=error))
    )

    with pytest.raises(TransportError) as excinfo:
        await transport.call(TARGET, b"\x00")

    assert excinfo.value.target == CHECKSUM_TARGET


@pytest.mark.asyncio
async def test_close_disconnects_provider():
    w3 = create_mock_web3(AsyncMock())
    await Web3Transport("https://rpc.example", w3=w3).close()
    w3.provider.disconnect.assert_awaited_once()


@pytest.mark.asyncio
async def test_close_tolerates_provider_without_disconnect():
    w3 = create_mock_web3(AsyncMock())
    w3.provider = object()
    await Web3Transport("https://rpc.example", w3=w3).close()


def test_builds_http_provider():
    transport = Web3Transport("https://rpc.example", timeout=3)
    assert transport.w3.provider.endpoint_uri == "https://rpc.example"
