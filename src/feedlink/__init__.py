from __future__ import annotations

from .codec import FeedFunction, RoundData
from .feeds import FeedReader
from .multicall import Call, CallResult, Multicall
from .queries import (
    AggregatorContext,
    CallFailed,
    Decoded,
    DecodeFailed,
    PairContext,
    PhaseContext,
    QueryResult,
    RoundContext,
)

__all__ = [
    "AggregatorContext",
    "Call",
    "CallFailed",
    "CallResult",
    "Decoded",
    "DecodeFailed",
    "FeedFunction",
    "FeedReader",
    "Multicall",
    "PairContext",
    "PhaseContext",
    "QueryResult",
    "RoundContext",
    "RoundData",
]
