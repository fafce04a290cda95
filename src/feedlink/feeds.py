"""Price feed reads over the single-call and batched paths."""

from __future__ import annotations

from typing import Sequence

from .codec import FeedFunction
from .constants import MULTICALL3_ADDRESS
from .correlator import correlate, resolve_outcome
from .errors import CallReverted
from .logger import get_logger
from .multicall import CallResult, Multicall
from .queries import (
    AggregatorContext,
    PairContext,
    QueryContext,
    QueryResult,
    RoundContext,
    build_call,
)
from .registry import OracleDescriptor
from .transport import Transport

logger = get_logger(__name__)


class FeedReader:
    """Issues feed queries and returns one QueryResult per context.

    A single context goes out as a plain ``eth_call``; two or more are
    packed into one aggregate3 batch. Both paths resolve outcomes the same
    way, so a context decodes identically whichever path carried it.
    """

    def __init__(
        self,
        transport: Transport,
        multicall_address: str = MULTICALL3_ADDRESS,
    ):
        self.transport = transport
        self.multicall = Multicall(transport, multicall_address)

    async def call_one(self, target: str, payload: bytes) -> bytes:
        """Raw single call. Raises TransportError or CallReverted."""
        return await self.transport.call(target, payload)

    async def query_one(self, context: QueryContext) -> QueryResult:
        call = build_call(context)
        try:
            raw = await self.call_one(call.target, call.payload)
        except CallReverted as e:
            logger.debug("%s: %s", context.describe(), e)
            return QueryResult(
                context, resolve_outcome(context.function, CallResult(False, b""))
            )
        return QueryResult(
            context, resolve_outcome(context.function, CallResult(True, raw))
        )

    async def query_many(self, contexts: Sequence[QueryContext]) -> list[QueryResult]:
        calls = [build_call(context) for context in contexts]
        results = await self.multicall.aggregate(calls)
        return correlate(contexts, results)

    async def query(self, contexts: Sequence[QueryContext]) -> list[QueryResult]:
        """Dispatch to the single-call path for one context, batch otherwise."""
        if len(contexts) == 1:
            return [await self.query_one(contexts[0])]
        return await self.query_many(contexts)

    async def latest_answers(
        self, oracles: Sequence[OracleDescriptor]
    ) -> list[QueryResult]:
        contexts = [
            PairContext(oracle.token, oracle.base, oracle.proxy_address)
            for oracle in oracles
        ]
        return await self.query(contexts)

    async def latest_round_data(self, oracle: OracleDescriptor) -> QueryResult:
        context = PairContext(
            oracle.token,
            oracle.base,
            oracle.proxy_address,
            function=FeedFunction.LATEST_ROUND_DATA,
        )
        return await self.query_one(context)

    async def description(self, oracle: OracleDescriptor) -> QueryResult:
        context = PairContext(
            oracle.token,
            oracle.base,
            oracle.proxy_address,
            function=FeedFunction.DESCRIPTION,
        )
        return await self.query_one(context)

    async def round_data(
        self, oracle_address: str, round_ids: Sequence[int]
    ) -> list[QueryResult]:
        contexts = [RoundContext(oracle_address, round_id) for round_id in round_ids]
        return await self.query(contexts)

    async def versions(self, aggregator_addresses: Sequence[str]) -> list[QueryResult]:
        contexts = [AggregatorContext(address) for address in aggregator_addresses]
        return await self.query_many(contexts)
