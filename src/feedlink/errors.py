"""Error taxonomy for feed queries."""

from __future__ import annotations


class FeedError(Exception):
    """Base class for all feedlink errors."""


class ConfigError(FeedError):
    """Unsupported chain, missing credential or unusable registry."""


class TransportError(FeedError):
    """Network, timeout or malformed JSON-RPC failure at the transport boundary."""

    def __init__(self, target: str, message: str):
        super().__init__(f"eth_call to {target} failed: {message}")
        self.target = target


class CallReverted(FeedError):
    """The remote call reverted on-chain."""

    def __init__(self, target: str, reason: str = ""):
        detail = f": {reason}" if reason else ""
        super().__init__(f"call to {target} reverted{detail}")
        self.target = target
        self.reason = reason


class DecodeError(FeedError):
    """Returned bytes do not match the expected schema."""


class CorrelationError(FeedError):
    """Contexts and results were built from different call sets."""


class EmptyBatchError(FeedError, ValueError):
    """An empty batch was submitted to the aggregator."""


class HistoryUnavailableError(FeedError):
    """History for a proxy cannot be anchored to a supported aggregator."""
