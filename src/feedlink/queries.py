"""Query contexts and per-item outcomes.

A context says what was asked and of whom. It travels next to its call so
the decoded value (or the failure) can be handed back with it.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Union

from .codec import FeedFunction, encode_call
from .errors import DecodeError
from .multicall import Call


@dataclass(frozen=True)
class PairContext:
    """A token/base pair resolved to its oracle proxy."""

    token: str
    base: str
    oracle_address: str
    function: FeedFunction = FeedFunction.LATEST_ANSWER

    @property
    def target(self) -> str:
        return self.oracle_address

    @property
    def args(self) -> tuple[Any, ...]:
        return ()

    def describe(self) -> str:
        return f"{self.token}/{self.base} ({self.oracle_address})"


@dataclass(frozen=True)
class RoundContext:
    """A round id requested from an oracle."""

    oracle_address: str
    round_id: int
    function: FeedFunction = FeedFunction.GET_ROUND_DATA

    @property
    def target(self) -> str:
        return self.oracle_address

    @property
    def args(self) -> tuple[Any, ...]:
        return (self.round_id,)

    def describe(self) -> str:
        return f"round {self.round_id} of {self.oracle_address}"


@dataclass(frozen=True)
class AggregatorContext:
    """A zero-argument read against an aggregator (or proxy) address."""

    aggregator_address: str
    function: FeedFunction = FeedFunction.VERSION

    @property
    def target(self) -> str:
        return self.aggregator_address

    @property
    def args(self) -> tuple[Any, ...]:
        return ()

    def describe(self) -> str:
        return f"{self.function.value}() on {self.aggregator_address}"


@dataclass(frozen=True)
class PhaseContext:
    """Lookup of the aggregator behind one phase of a proxy."""

    proxy_address: str
    phase_id: int
    function: FeedFunction = FeedFunction.PHASE_AGGREGATORS

    @property
    def target(self) -> str:
        return self.proxy_address

    @property
    def args(self) -> tuple[Any, ...]:
        return (self.phase_id,)

    def describe(self) -> str:
        return f"phase {self.phase_id} of {self.proxy_address}"


QueryContext = Union[PairContext, RoundContext, AggregatorContext, PhaseContext]


def build_call(context: QueryContext, allow_failure: bool = True) -> Call:
    """Encode the call a context stands for."""
    return Call(
        target=context.target,
        allow_failure=allow_failure,
        payload=encode_call(context.function, *context.args),
    )


@dataclass(frozen=True)
class Decoded:
    value: Any


@dataclass(frozen=True)
class CallFailed:
    """The call reverted or the target returned nothing."""

    reason: str


@dataclass(frozen=True)
class DecodeFailed:
    """The call succeeded but its bytes did not fit the expected schema."""

    error: DecodeError


Outcome = Union[Decoded, CallFailed, DecodeFailed]


@dataclass(frozen=True)
class QueryResult:
    context: QueryContext
    outcome: Outcome

    @property
    def ok(self) -> bool:
        return isinstance(self.outcome, Decoded)

    @property
    def value(self) -> Any:
        """Decoded value; raises for failed entries."""
        if isinstance(self.outcome, Decoded):
            return self.outcome.value
        raise ValueError(f"No value for {self.context.describe()}: {self.error_message}")

    @property
    def error_message(self) -> str | None:
        if isinstance(self.outcome, CallFailed):
            return f"call failed: {self.outcome.reason}"
        if isinstance(self.outcome, DecodeFailed):
            return f"decode failed: {self.outcome.error}"
        return None
