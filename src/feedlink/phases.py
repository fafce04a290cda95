"""Discovery of the aggregator generations behind a price feed proxy.

A proxy forwards to its current aggregator but remembers every previous
one as a numbered phase. Walking them takes a fixed number of round trips:
one call for the current phase id, one batch for the phase aggregators and
one batch for their versions.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import cast

from .codec import FeedFunction
from .constants import LEGACY_AGGREGATOR_MAX_VERSION, ZERO_ADDRESS
from .errors import HistoryUnavailableError
from .feeds import FeedReader
from .logger import get_logger
from .queries import (
    AggregatorContext,
    CallFailed,
    PhaseContext,
    QueryResult,
)

logger = get_logger(__name__)


@dataclass(frozen=True)
class PhaseRecord:
    phase_id: int
    aggregator_address: str
    version: int


@dataclass
class PhaseTraversal:
    """Outcome of walking a proxy's phases.

    ``records`` holds the classified aggregators of phases before the
    current one, ascending. ``failures`` holds every phase slot or version
    lookup that could not be resolved.
    """

    proxy_address: str
    current_phase: int
    records: list[PhaseRecord] = field(default_factory=list)
    failures: list[QueryResult] = field(default_factory=list)

    def above_version(
        self, minimum: int = LEGACY_AGGREGATOR_MAX_VERSION
    ) -> list[PhaseRecord]:
        return above_version(self.records, minimum)


def above_version(
    records: list[PhaseRecord], minimum: int = LEGACY_AGGREGATOR_MAX_VERSION
) -> list[PhaseRecord]:
    """Records whose aggregator version is strictly greater than ``minimum``."""
    return [record for record in records if record.version > minimum]


async def fetch_phase_id(reader: FeedReader, proxy_address: str) -> int:
    """Current phase id of the proxy.

    Raises:
        HistoryUnavailableError: If the proxy does not answer phaseId().
    """
    result = await reader.query_one(
        AggregatorContext(proxy_address, function=FeedFunction.PHASE_ID)
    )
    if not result.ok:
        raise HistoryUnavailableError(
            f"Cannot read phase id of {proxy_address}: {result.error_message}"
        )
    return result.value


async def fetch_phase_aggregators(
    reader: FeedReader, proxy_address: str, current_phase: int
) -> list[QueryResult]:
    """phaseAggregators(phase) for phases 1 up to, not including, the current one."""
    contexts = [PhaseContext(proxy_address, phase) for phase in range(1, current_phase)]
    if not contexts:
        return []
    return await reader.query_many(contexts)


async def traverse_phases(reader: FeedReader, proxy_address: str) -> PhaseTraversal:
    """Walk the phase history of ``proxy_address``.

    Unset phase slots and aggregators that fail their version() call are
    reported in ``failures`` and left out of ``records``. Transport errors
    abort the walk.
    """
    current_phase = await fetch_phase_id(reader, proxy_address)
    traversal = PhaseTraversal(proxy_address=proxy_address, current_phase=current_phase)
    logger.debug("Proxy %s is at phase %d", proxy_address, current_phase)

    discovered: list[tuple[int, str]] = []
    for result in await fetch_phase_aggregators(reader, proxy_address, current_phase):
        context = cast(PhaseContext, result.context)
        if not result.ok:
            logger.warning("%s: %s", context.describe(), result.error_message)
            traversal.failures.append(result)
        elif result.value == ZERO_ADDRESS:
            logger.warning("%s: phase slot is unset", context.describe())
            traversal.failures.append(
                QueryResult(context, CallFailed("phase slot is unset"))
            )
        else:
            discovered.append((context.phase_id, result.value))

    if not discovered:
        return traversal

    versions = await reader.versions([address for _, address in discovered])
    for (phase_id, address), result in zip(discovered, versions):
        if not result.ok:
            logger.warning(
                "Excluding phase %d aggregator %s: %s",
                phase_id,
                address,
                result.error_message,
            )
            traversal.failures.append(result)
            continue
        traversal.records.append(PhaseRecord(phase_id, address, result.value))

    logger.debug(
        "Classified %d of %d previous phases of %s",
        len(traversal.records),
        max(current_phase - 1, 0),
        proxy_address,
    )
    return traversal
