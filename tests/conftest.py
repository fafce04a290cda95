"""Shared fixtures: an in-memory chain that answers eth_call and aggregate3."""

from __future__ import annotations

from dataclasses import astuple
from typing import Any, Callable

import pytest
from eth_abi import decode, encode

from feedlink.codec import FeedFunction, FunctionSchema, RoundData, schema_for
from feedlink.constants import MULTICALL3_ADDRESS
from feedlink.errors import CallReverted
from feedlink.feeds import FeedReader
from feedlink.multicall import multicall_schema


class FakeContract:
    """Scripted contract answering the feed functions it was taught."""

    def __init__(self, address: str):
        self.address = address
        self._handlers: dict[bytes, tuple[FunctionSchema, Callable[..., Any]]] = {}

    def on(self, function: FeedFunction, handler: Callable[..., Any]) -> "FakeContract":
        schema = schema_for(function)
        self._handlers[schema.selector] = (schema, handler)
        return self

    def returns(self, function: FeedFunction, value: Any) -> "FakeContract":
        return self.on(function, lambda *_args: value)

    def reverts(self, function: FeedFunction) -> "FakeContract":
        def _revert(*_args):
            raise CallReverted(self.address, "execution reverted")

        return self.on(function, _revert)

    def __call__(self, payload: bytes) -> bytes:
        selector = bytes(payload[:4])
        if selector not in self._handlers:
            raise CallReverted(self.address, "function selector was not recognized")
        schema, handler = self._handlers[selector]
        args = decode(list(schema.input_types), bytes(payload[4:])) if schema.input_types else ()
        value = handler(*args)
        if isinstance(value, (bytes, bytearray)):
            return bytes(value)
        if isinstance(value, RoundData):
            value = astuple(value)
        if not isinstance(value, tuple):
            value = (value,)
        return encode(list(schema.output_types), list(value))


class FakeTransport:
    """Transport backed by fake contracts and an aggregate3 executor.

    Every request is recorded in ``requests`` as (target, payload).
    Addresses without a contract behave like accounts without code.
    """

    def __init__(self, multicall_address: str = MULTICALL3_ADDRESS):
        self.multicall_address = multicall_address
        self.contracts: dict[str, FakeContract] = {}
        self.requests: list[tuple[str, bytes]] = []
        self.error: Exception | None = None
        self.block_number = 19_000_000
        self.block_timestamp = 1_700_000_000
        self.closed = False

    def contract(self, address: str) -> FakeContract:
        contract = FakeContract(address)
        self.contracts[address.lower()] = contract
        return contract

    async def call(self, target: str, payload: bytes) -> bytes:
        self.requests.append((target, bytes(payload)))
        if self.error is not None:
            raise self.error
        if target.lower() == self.multicall_address.lower():
            return self._multicall(bytes(payload))
        return self._dispatch(target, bytes(payload))

    async def close(self) -> None:
        self.closed = True

    def _dispatch(self, target: str, payload: bytes) -> bytes:
        contract = self.contracts.get(target.lower())
        if contract is None:
            return b""
        return contract(payload)

    def _multicall(self, payload: bytes) -> bytes:
        selector = payload[:4]
        if selector == multicall_schema("getBlockNumber").selector:
            return encode(["uint256"], [self.block_number])
        if selector == multicall_schema("getCurrentBlockTimestamp").selector:
            return encode(["uint256"], [self.block_timestamp])

        schema = multicall_schema("aggregate3")
        assert selector == schema.selector
        (calls,) = decode(list(schema.input_types), payload[4:])
        results = []
        for target, allow_failure, call_data in calls:
            try:
                results.append((True, self._dispatch(target, call_data)))
            except CallReverted:
                if not allow_failure:
                    raise CallReverted(self.multicall_address, "Multicall3: call failed")
                results.append((False, b""))
        return encode(list(schema.output_types), [results])

    @property
    def single_calls(self) -> list[tuple[str, bytes]]:
        return [
            (target, payload)
            for target, payload in self.requests
            if target.lower() != self.multicall_address.lower()
        ]

    @property
    def batches(self) -> list[list[tuple[str, bool, bytes]]]:
        """Decoded (target, allow_failure, payload) lists of every aggregate3 request."""
        schema = multicall_schema("aggregate3")
        decoded = []
        for target, payload in self.requests:
            if target.lower() != self.multicall_address.lower():
                continue
            if payload[:4] != schema.selector:
                continue
            (calls,) = decode(list(schema.input_types), payload[4:])
            decoded.append([(t, bool(a), bytes(d)) for t, a, d in calls])
        return decoded


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def reader(transport: FakeTransport) -> FeedReader:
    return FeedReader(transport)
