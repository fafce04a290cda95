"""Application state container."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from .chains import ChainInfo, resolve_chain
from .registry import OracleRegistry
from .settings import FeedSettings
from .transport import Web3Transport


@dataclass
class AppState:
    """Container for application-wide state and dependencies.

    Passed to every command to avoid global state and enable testing.
    """

    settings: FeedSettings
    logger: logging.Logger

    def chain(self, value: str) -> ChainInfo:
        return resolve_chain(value)

    def registry(self, chain: ChainInfo) -> OracleRegistry:
        """Feed registry for ``chain``, from the configured file or URL."""
        if self.settings.registry_path is not None:
            return OracleRegistry.from_file(self.settings.registry_path)
        return OracleRegistry.from_url(
            self.settings.registry_url_for(chain),
            timeout=self.settings.request_timeout,
        )

    def transport(self, chain: ChainInfo) -> Web3Transport:
        rpc_url = self.settings.rpc_url_for(chain)
        self.logger.debug("Using RPC endpoint for %s (chain id %d)", chain.name, chain.chain_id)
        return Web3Transport(rpc_url, timeout=self.settings.request_timeout)
