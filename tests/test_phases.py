from __future__ import annotations

import pytest
from eth_abi import decode

from feedlink.codec import FeedFunction, schema_for
from feedlink.constants import ZERO_ADDRESS
from feedlink.errors import HistoryUnavailableError
from feedlink.phases import PhaseRecord, above_version, traverse_phases

PROXY = "0x" + "1" * 40
AGGREGATORS = {phase: "0x" + str(phase + 1) * 40 for phase in range(1, 5)}


def _proxy(transport, phase_id: int, slots: dict[int, str]):
    return (
        transport.contract(PROXY)
        .returns(FeedFunction.PHASE_ID, phase_id)
        .on(FeedFunction.PHASE_AGGREGATORS, lambda phase: slots.get(phase, ZERO_ADDRESS))
    )


@pytest.mark.asyncio
async def test_previous_phases_are_fetched_in_one_batch(reader, transport):
    _proxy(transport, 5, AGGREGATORS)
    for phase, address in AGGREGATORS.items():
        transport.contract(address).returns(FeedFunction.VERSION, phase + 1)

    traversal = await traverse_phases(reader, PROXY)

    phase_batch, version_batch = transport.batches
    selector = schema_for(FeedFunction.PHASE_AGGREGATORS).selector
    assert all(target == PROXY for target, _, _ in phase_batch)
    assert all(payload[:4] == selector for _, _, payload in phase_batch)
    assert [decode(["uint16"], payload[4:])[0] for _, _, payload in phase_batch] == [
        1,
        2,
        3,
        4,
    ]
    assert [target for target, _, _ in version_batch] == list(AGGREGATORS.values())
    assert len(transport.requests) == 3

    assert traversal.current_phase == 5
    assert traversal.records == [
        PhaseRecord(phase, address, phase + 1) for phase, address in AGGREGATORS.items()
    ]
    assert traversal.failures == []


@pytest.mark.asyncio
async def test_unset_slots_and_version_failures_are_reported(reader, transport):
    slots = {1: AGGREGATORS[1], 3: AGGREGATORS[3], 4: AGGREGATORS[4]}
    _proxy(transport, 5, slots)
    transport.contract(AGGREGATORS[1]).returns(FeedFunction.VERSION, 2)
    transport.contract(AGGREGATORS[3]).reverts(FeedFunction.VERSION)
    transport.contract(AGGREGATORS[4]).returns(FeedFunction.VERSION, 4)

    traversal = await traverse_phases(reader, PROXY)

    assert traversal.records == [
        PhaseRecord(1, AGGREGATORS[1], 2),
        PhaseRecord(4, AGGREGATORS[4], 4),
    ]
    assert [failure.context.describe() for failure in traversal.failures] == [
        f"phase 2 of {PROXY}",
        f"version() on {AGGREGATORS[3]}",
    ]
    assert traversal.failures[0].error_message == "call failed: phase slot is unset"


@pytest.mark.asyncio
async def test_first_phase_needs_no_batches(reader, transport):
    _proxy(transport, 1, {})

    traversal = await traverse_phases(reader, PROXY)

    assert traversal.records == []
    assert traversal.failures == []
    assert transport.batches == []
    assert len(transport.requests) == 1


@pytest.mark.asyncio
async def test_proxy_without_phase_id_is_unavailable(reader, transport):
    transport.contract(PROXY).reverts(FeedFunction.PHASE_ID)
    with pytest.raises(HistoryUnavailableError, match="phase id"):
        await traverse_phases(reader, PROXY)


def test_version_gate_keeps_only_newer_aggregators():
    records = [
        PhaseRecord(1, AGGREGATORS[1], 1),
        PhaseRecord(2, AGGREGATORS[2], 2),
        PhaseRecord(3, AGGREGATORS[3], 3),
        PhaseRecord(4, AGGREGATORS[4], 4),
    ]
    assert [record.phase_id for record in above_version(records)] == [3, 4]
    assert [record.phase_id for record in above_version(records, 3)] == [4]
    assert above_version(records, 4) == []
