"""ABI encoding and decoding for the price feed calls this tool issues.

Every remote function is pinned to one return schema, taken from the bundled
contract ABIs. Decoding never guesses: a payload that does not fit its
schema raises :class:`DecodeError`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from functools import lru_cache
from typing import Any, Callable, Sequence

from eth_abi import decode
from eth_abi.exceptions import DecodingError
from eth_abi.grammar import BasicType, parse
from eth_utils.abi import (
    function_abi_to_4byte_selector,
    get_abi_input_types,
    get_abi_output_types,
)
from web3 import Web3

from .abi import find_function, load_aggregator_proxy_abi
from .constants import AGGREGATOR_ROUND_MASK, PHASE_OFFSET
from .errors import DecodeError
from .units import format_units

WORD_SIZE = 32


def _static_size(type_str: str) -> int | None:
    """Exact encoded size of a single-word type, or None when it varies."""
    parsed = parse(type_str)
    if isinstance(parsed, BasicType) and not parsed.arrlist and not parsed.is_dynamic:
        return WORD_SIZE
    return None


@dataclass(frozen=True)
class FunctionSchema:
    """Name, argument types and return types of one contract function.

    Calls are encoded by a web3 contract built from the same ABI; return
    data goes through ``eth_abi.decode`` so its size can be checked first.
    """

    name: str
    input_types: tuple[str, ...]
    output_types: tuple[str, ...]
    selector: bytes
    contract: Any = field(default=None, compare=False, repr=False)

    @classmethod
    def from_abi(cls, abi: list[dict], name: str) -> "FunctionSchema":
        entry = find_function(abi, name)
        w3 = Web3()
        return cls(
            name=name,
            input_types=tuple(get_abi_input_types(entry)),
            output_types=tuple(get_abi_output_types(entry)),
            selector=bytes(function_abi_to_4byte_selector(entry)),
            contract=w3.eth.contract(abi=abi),
        )

    @property
    def signature(self) -> str:
        return f"{self.name}({','.join(self.input_types)})"

    @property
    def static_return_size(self) -> int | None:
        """Exact byte length of the return data if every output is one word."""
        sizes = [_static_size(t) for t in self.output_types]
        if any(size is None for size in sizes):
            return None
        return sum(sizes)  # type: ignore[arg-type]

    def encode(self, args: Sequence[Any] = ()) -> bytes:
        """Selector followed by the ABI-encoded arguments."""
        if len(args) != len(self.input_types):
            raise ValueError(
                f"{self.signature} takes {len(self.input_types)} argument(s), got {len(args)}"
            )
        calldata_hex = self.contract.encode_abi(
            abi_element_identifier=self.name,
            args=list(args),
        )
        return bytes.fromhex(calldata_hex.removeprefix("0x"))

    def decode(self, data: bytes) -> tuple[Any, ...]:
        """Decode return data, rejecting empty, truncated or mis-sized payloads."""
        if not data:
            raise DecodeError(f"{self.signature}: empty return data")
        expected = self.static_return_size
        if expected is not None and len(data) != expected:
            raise DecodeError(
                f"{self.signature}: expected {expected} bytes "
                f"({expected // WORD_SIZE} words), got {len(data)}"
            )
        try:
            return tuple(decode(list(self.output_types), bytes(data)))
        except (DecodingError, ValueError, OverflowError) as e:
            raise DecodeError(f"{self.signature}: {e}") from e


@dataclass(frozen=True)
class RoundData:
    """One oracle round as returned by getRoundData / latestRoundData."""

    round_id: int
    answer: int
    started_at: int
    updated_at: int
    answered_in_round: int

    @property
    def phase_id(self) -> int:
        return self.round_id >> PHASE_OFFSET

    @property
    def aggregator_round_id(self) -> int:
        return self.round_id & AGGREGATOR_ROUND_MASK

    def formatted_answer(self, decimals: int) -> str:
        return format_units(self.answer, decimals)


class FeedFunction(str, Enum):
    """Remote functions the feed queries can issue."""

    LATEST_ANSWER = "latestAnswer"
    GET_ROUND_DATA = "getRoundData"
    LATEST_ROUND_DATA = "latestRoundData"
    DESCRIPTION = "description"
    VERSION = "version"
    PHASE_ID = "phaseId"
    PHASE_AGGREGATORS = "phaseAggregators"


def _single(values: tuple[Any, ...]) -> Any:
    return values[0]


def _address(values: tuple[Any, ...]) -> str:
    return Web3.to_checksum_address(values[0])


def _round_data(values: tuple[Any, ...]) -> RoundData:
    return RoundData(*values)


_CONVERTERS: dict[FeedFunction, Callable[[tuple[Any, ...]], Any]] = {
    FeedFunction.LATEST_ANSWER: _single,
    FeedFunction.GET_ROUND_DATA: _round_data,
    FeedFunction.LATEST_ROUND_DATA: _round_data,
    FeedFunction.DESCRIPTION: _single,
    FeedFunction.VERSION: _single,
    FeedFunction.PHASE_ID: _single,
    FeedFunction.PHASE_AGGREGATORS: _address,
}


@lru_cache(maxsize=None)
def schema_for(function: FeedFunction) -> FunctionSchema:
    return FunctionSchema.from_abi(load_aggregator_proxy_abi(), function.value)


def encode_call(function: FeedFunction, *args: Any) -> bytes:
    """Encode a call to ``function`` with ``args``."""
    return schema_for(function).encode(args)


def decode_return(function: FeedFunction, data: bytes) -> Any:
    """Decode the return data of ``function`` into its Python value.

    Raises:
        DecodeError: If ``data`` does not match the function's return schema.
    """
    return _CONVERTERS[function](schema_for(function).decode(data))
