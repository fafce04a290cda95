"""Batch aggregator over the Multicall3 contract."""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from typing import Sequence

from web3 import Web3

from .abi import load_multicall_abi
from .codec import FunctionSchema
from .constants import MULTICALL3_ADDRESS
from .errors import CorrelationError, EmptyBatchError
from .logger import get_logger
from .transport import Transport

logger = get_logger(__name__)


@dataclass(frozen=True)
class Call:
    """One read-only call inside an aggregate3 batch."""

    target: str
    allow_failure: bool
    payload: bytes


@dataclass(frozen=True)
class CallResult:
    """Per-call entry of the aggregate3 return envelope."""

    success: bool
    raw_return: bytes


@lru_cache(maxsize=None)
def multicall_schema(name: str) -> FunctionSchema:
    return FunctionSchema.from_abi(load_multicall_abi(), name)


class Multicall:
    """Packs calls into one ``aggregate3`` request and unpacks the envelope.

    Results come back in call order, one per call. Interpreting each
    entry is left to the caller.
    """

    def __init__(self, transport: Transport, address: str = MULTICALL3_ADDRESS):
        self.transport = transport
        self.address = Web3.to_checksum_address(address)

    def encode_batch(self, calls: Sequence[Call]) -> bytes:
        entries = [
            (Web3.to_checksum_address(call.target), call.allow_failure, call.payload)
            for call in calls
        ]
        return multicall_schema("aggregate3").encode([entries])

    def decode_envelope(self, raw: bytes) -> list[CallResult]:
        (entries,) = multicall_schema("aggregate3").decode(raw)
        return [CallResult(bool(success), bytes(data)) for success, data in entries]

    async def aggregate(self, calls: Sequence[Call]) -> list[CallResult]:
        """Execute ``calls`` in a single round trip.

        Args:
            calls: Non-empty ordered sequence of calls.

        Returns:
            One CallResult per call, in the same order.

        Raises:
            EmptyBatchError: If ``calls`` is empty. Nothing is sent.
            TransportError: If the round trip fails. No partial results.
            CallReverted: If the batch itself reverted (a call that does
                not allow failure reverted).
            DecodeError: If the envelope is malformed.
            CorrelationError: If the envelope does not hold one entry per call.
        """
        if not calls:
            raise EmptyBatchError("aggregate3 batch must contain at least one call")

        logger.debug(
            "Submitting aggregate3 batch of %d calls to %s", len(calls), self.address
        )
        raw = await self.transport.call(self.address, self.encode_batch(calls))
        results = self.decode_envelope(raw)

        if len(results) != len(calls):
            raise CorrelationError(
                f"aggregate3 at {self.address} returned {len(results)} results "
                f"for {len(calls)} calls"
            )

        failed = sum(1 for result in results if not result.success)
        if failed:
            logger.debug("aggregate3 batch: %d of %d calls failed", failed, len(calls))
        return results

    async def block_number(self) -> int:
        """Latest block number as seen by the multicall contract."""
        return await self._read_uint("getBlockNumber")

    async def block_timestamp(self) -> int:
        """Latest block timestamp as seen by the multicall contract."""
        return await self._read_uint("getCurrentBlockTimestamp")

    async def _read_uint(self, name: str) -> int:
        schema = multicall_schema(name)
        raw = await self.transport.call(self.address, schema.encode())
        (value,) = schema.decode(raw)
        return value
