"""Re-associates aggregate3 results with the contexts that produced them."""

from __future__ import annotations

from typing import Sequence

from .codec import FeedFunction, decode_return
from .errors import CorrelationError, DecodeError
from .logger import get_logger
from .multicall import CallResult
from .queries import CallFailed, Decoded, DecodeFailed, Outcome, QueryContext, QueryResult

logger = get_logger(__name__)


def resolve_outcome(function: FeedFunction, result: CallResult) -> Outcome:
    """Turn one raw call result into a typed outcome for ``function``."""
    if not result.success:
        return CallFailed("reverted")
    if not result.raw_return:
        return CallFailed("no return data (target has no code)")
    try:
        return Decoded(decode_return(function, result.raw_return))
    except DecodeError as e:
        return DecodeFailed(e)


def correlate(
    contexts: Sequence[QueryContext], results: Sequence[CallResult]
) -> list[QueryResult]:
    """Pair each context with the outcome of its call.

    Every entry is resolved, in order, whatever happened to earlier ones.

    Raises:
        CorrelationError: If the two sequences differ in length.
    """
    if len(contexts) != len(results):
        raise CorrelationError(
            f"Cannot correlate {len(contexts)} contexts with {len(results)} results"
        )

    correlated = [
        QueryResult(context, resolve_outcome(context.function, result))
        for context, result in zip(contexts, results)
    ]

    for entry in correlated:
        if not entry.ok:
            logger.debug("%s: %s", entry.context.describe(), entry.error_message)
    return correlated
