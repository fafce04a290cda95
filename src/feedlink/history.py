"""Historical round ranges spanning a proxy's aggregator generations.

The proxy numbers rounds with composite ids (phase in the upper 16 bits,
aggregator round in the lower 64), while each aggregator counts its own
rounds from 1. The offset between the two spaces is taken from the proxy's
latest round and the latest round of the most recent supported aggregator.
When the current phase holds fewer rounds than requested, the range
continues below that aggregator's latest round in its own phase.

Rounds are always read back through the proxy. Reading old round ids from
an underlying aggregator fails for ids outside its own phase on some
chains, and is not supported here.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from .codec import FeedFunction, RoundData
from .constants import AGGREGATOR_ROUND_MASK, MAX_PHASE_ID, PHASE_OFFSET
from .errors import HistoryUnavailableError
from .feeds import FeedReader
from .logger import get_logger
from .phases import PhaseRecord, PhaseTraversal, traverse_phases
from .queries import AggregatorContext, QueryResult

logger = get_logger(__name__)


def compose_round_id(phase_id: int, aggregator_round_id: int) -> int:
    """Composite proxy round id for a phase and an aggregator-local round."""
    if not 0 <= phase_id <= MAX_PHASE_ID:
        raise ValueError(f"phase id {phase_id} does not fit in 16 bits")
    if not 0 <= aggregator_round_id <= AGGREGATOR_ROUND_MASK:
        raise ValueError(f"aggregator round id {aggregator_round_id} does not fit in 64 bits")
    return (phase_id << PHASE_OFFSET) | aggregator_round_id


def split_round_id(round_id: int) -> tuple[int, int]:
    """(phase id, aggregator round id) of a composite proxy round id."""
    return round_id >> PHASE_OFFSET, round_id & AGGREGATOR_ROUND_MASK


def round_id_offset(proxy_round_id: int, aggregator_round_id: int) -> int:
    """Distance between proxy-space and aggregator-space round ids."""
    if aggregator_round_id > proxy_round_id:
        raise ValueError(
            f"aggregator round {aggregator_round_id} is ahead of proxy round {proxy_round_id}"
        )
    return proxy_round_id - aggregator_round_id


def recent_round_ids(
    latest_round_id: int, count: int, previous_round_id: int | None = None
) -> list[int]:
    """The ``count`` most recent round ids ending at ``latest_round_id``, ascending.

    Ids step down within the phase of ``latest_round_id`` until its local
    round 1. From there the walk continues down from ``previous_round_id``,
    the last composite round of an earlier phase, if one is given. Local
    round 0 never exists and is never returned, so the result can be
    shorter than ``count``.
    """
    if count <= 0:
        raise ValueError(f"count must be positive, got {count}")

    round_ids: list[int] = []
    round_id: int | None = latest_round_id
    while round_id is not None and len(round_ids) < count:
        if split_round_id(round_id)[1] < 1:
            break
        round_ids.append(round_id)
        if split_round_id(round_id)[1] > 1:
            round_id -= 1
        elif previous_round_id is not None and previous_round_id < round_id:
            round_id, previous_round_id = previous_round_id, None
        else:
            round_id = None
    return sorted(round_ids)


@dataclass(frozen=True)
class HistoricalRange:
    """Round ids to read from a proxy, with their aggregator-space anchor."""

    proxy_address: str
    proxy_round: RoundData
    anchor: PhaseRecord
    anchor_round: RoundData
    offset: int
    round_ids: tuple[int, ...]

    def aggregator_round_id(self, proxy_round_id: int) -> int:
        return proxy_round_id - self.offset


@dataclass
class HistoricalSeries:
    traversal: PhaseTraversal
    range: HistoricalRange
    rounds: list[QueryResult] = field(default_factory=list)


async def assemble_history(
    reader: FeedReader, traversal: PhaseTraversal, depth: int
) -> HistoricalRange:
    """Anchor the proxy's latest round to its most recent supported aggregator.

    The proxy and every aggregator with version > 2 are asked for their
    latest round in one batch.

    Raises:
        HistoryUnavailableError: If the proxy has no latest round or no
            supported aggregator answers.
    """
    proxy_address = traversal.proxy_address
    qualifying = traversal.above_version()
    if not qualifying:
        raise HistoryUnavailableError(
            f"No aggregator with version > 2 behind {proxy_address}"
        )

    contexts = [AggregatorContext(proxy_address, FeedFunction.LATEST_ROUND_DATA)]
    contexts += [
        AggregatorContext(record.aggregator_address, FeedFunction.LATEST_ROUND_DATA)
        for record in qualifying
    ]
    proxy_result, *aggregator_results = await reader.query_many(contexts)

    if not proxy_result.ok:
        raise HistoryUnavailableError(
            f"No latest round for {proxy_address}: {proxy_result.error_message}"
        )
    proxy_round: RoundData = proxy_result.value

    anchor: tuple[PhaseRecord, RoundData] | None = None
    for record, result in reversed(list(zip(qualifying, aggregator_results))):
        if result.ok:
            anchor = (record, result.value)
            break
        logger.warning(
            "Phase %d aggregator %s has no latest round: %s",
            record.phase_id,
            record.aggregator_address,
            result.error_message,
        )
    if anchor is None:
        raise HistoryUnavailableError(
            f"No supported aggregator behind {proxy_address} reported a latest round"
        )

    record, anchor_round = anchor
    try:
        offset = round_id_offset(proxy_round.round_id, anchor_round.round_id)
    except ValueError as e:
        raise HistoryUnavailableError(f"{proxy_address}: {e}") from e
    # The anchor's latest round is the last round of its phase
    anchor_last_round_id = compose_round_id(
        record.phase_id, anchor_round.aggregator_round_id
    )
    round_ids = recent_round_ids(proxy_round.round_id, depth, anchor_last_round_id)
    if not round_ids:
        raise HistoryUnavailableError(f"{proxy_address} has not reported any round")
    logger.debug(
        "Anchored %s to phase %d (%s): offset %d, rounds %d..%d",
        proxy_address,
        record.phase_id,
        record.aggregator_address,
        offset,
        round_ids[0],
        round_ids[-1],
    )
    return HistoricalRange(
        proxy_address=proxy_address,
        proxy_round=proxy_round,
        anchor=record,
        anchor_round=anchor_round,
        offset=offset,
        round_ids=tuple(round_ids),
    )


async def fetch_history(
    reader: FeedReader, proxy_address: str, depth: int
) -> HistoricalSeries:
    """Traverse phases, anchor the range and read its rounds from the proxy."""
    traversal = await traverse_phases(reader, proxy_address)
    history_range = await assemble_history(reader, traversal, depth)
    rounds = await reader.round_data(proxy_address, history_range.round_ids)
    return HistoricalSeries(traversal=traversal, range=history_range, rounds=rounds)
