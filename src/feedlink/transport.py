"""JSON-RPC transport used by the single-call path and the batch aggregator."""

from __future__ import annotations

import asyncio
from typing import Protocol

import aiohttp
from eth_typing import URI
from web3 import AsyncWeb3
from web3.exceptions import ContractLogicError, Web3Exception

from .constants import DEFAULT_REQUEST_TIMEOUT
from .errors import CallReverted, TransportError
from .logger import TRACE, get_logger

logger = get_logger(__name__)


class Transport(Protocol):
    """Read-only contract call against the latest block."""

    async def call(self, target: str, payload: bytes) -> bytes: ...


class Web3Transport:
    """``eth_call`` over an AsyncWeb3 HTTP provider.

    On-chain reverts raise :class:`CallReverted`; every other failure
    (connection, timeout, RPC error) raises :class:`TransportError`.
    Nothing is retried.
    """

    def __init__(
        self,
        rpc_url: str,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
        w3: AsyncWeb3 | None = None,
    ):
        self.rpc_url = rpc_url
        self.w3 = w3 or AsyncWeb3(
            AsyncWeb3.AsyncHTTPProvider(
                URI(rpc_url),
                request_kwargs={"timeout": aiohttp.ClientTimeout(total=timeout)},
            )
        )

    async def call(self, target: str, payload: bytes) -> bytes:
        checksum_target = self.w3.to_checksum_address(target)
        logger.log(
            TRACE, "eth_call to %s with %d payload bytes", checksum_target, len(payload)
        )
        try:
            result = await self.w3.eth.call(
                {"to": checksum_target, "data": self.w3.to_hex(payload)},
                block_identifier="latest",
            )
        except ContractLogicError as e:
            raise CallReverted(checksum_target, str(e)) from e
        except (
            Web3Exception,
            aiohttp.ClientError,
            asyncio.TimeoutError,
            OSError,
            ValueError,
        ) as e:
            raise TransportError(checksum_target, str(e) or type(e).__name__) from e
        return bytes(result)

    async def close(self) -> None:
        try:
            await self.w3.provider.disconnect()  # type: ignore[union-attr]
        except AttributeError as e:
            logger.debug(f"Provider disconnect expected (no disconnect method): {e}")
