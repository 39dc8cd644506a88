"""Static chain registry for the networks exercised by the harness."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Iterator, List, Optional

from ..config import Settings
from .errors import ConfigurationError


@dataclass(frozen=True)
class ChainDescriptor:
    """One configured network.

    ``network_id`` is the bridge protocol's own chain index and is not the
    EVM chain id.
    """

    key: str
    name: str
    chain_id: int
    network_id: int
    rpc_url: str
    bridge_address: Optional[str] = None
    native_symbol: str = "ETH"
    native_decimals: int = 18
    explorer_tx_url: Optional[str] = None

    def explorer_link(self, tx_hash: str) -> Optional[str]:
        if not self.explorer_tx_url:
            return None
        return f"{self.explorer_tx_url.rstrip('/')}/{tx_hash}"


class ChainRegistry:
    """Lookup tables over a fixed set of chain descriptors.

    Usage:
        registry = ChainRegistry.from_settings(settings)

        katana = registry.get("katana")
        registry.by_chain_id(747474)   # same descriptor
        registry.by_network_id(20)     # same descriptor
    """

    def __init__(
        self,
        chains: Iterable[ChainDescriptor],
        *,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._logger = logger or logging.getLogger(__name__)
        self._chains: Dict[str, ChainDescriptor] = {}
        self._by_chain_id: Dict[int, ChainDescriptor] = {}
        self._by_network_id: Dict[int, ChainDescriptor] = {}

        for chain in chains:
            if chain.key in self._chains:
                raise ConfigurationError(f"Duplicate chain key: {chain.key}")
            if chain.chain_id in self._by_chain_id:
                raise ConfigurationError(
                    f"Chain id {chain.chain_id} is used by both "
                    f"{self._by_chain_id[chain.chain_id].key} and {chain.key}"
                )
            if chain.network_id in self._by_network_id:
                raise ConfigurationError(
                    f"Network id {chain.network_id} is used by both "
                    f"{self._by_network_id[chain.network_id].key} and {chain.key}"
                )
            self._chains[chain.key] = chain
            self._by_chain_id[chain.chain_id] = chain
            self._by_network_id[chain.network_id] = chain

    @classmethod
    def from_settings(cls, config: Settings) -> "ChainRegistry":
        return cls(default_chains(config))

    def __iter__(self) -> Iterator[ChainDescriptor]:
        return iter(self._chains.values())

    def __len__(self) -> int:
        return len(self._chains)

    def __contains__(self, key: object) -> bool:
        return key in self._chains

    @property
    def keys(self) -> List[str]:
        return list(self._chains.keys())

    def get(self, key: str) -> ChainDescriptor:
        try:
            return self._chains[key.lower().strip()]
        except KeyError:
            raise ConfigurationError(f"Unknown chain: {key}") from None

    def by_chain_id(self, chain_id: int) -> Optional[ChainDescriptor]:
        return self._by_chain_id.get(int(chain_id))

    def by_network_id(self, network_id: int) -> Optional[ChainDescriptor]:
        return self._by_network_id.get(int(network_id))

    def validate_against_router(self, router_chains: List[Dict[str, Any]]) -> List[str]:
        """Return configured chain keys that the router does not list."""

        listed = set()
        for entry in router_chains:
            raw_id = entry.get("chainId", entry.get("id"))
            try:
                listed.add(int(raw_id))
            except (TypeError, ValueError):
                continue

        missing = [chain.key for chain in self if chain.chain_id not in listed]
        for key in missing:
            self._logger.warning("Chain %s is not listed by the routing API", key)
        return missing


def default_chains(config: Settings) -> List[ChainDescriptor]:
    """The four networks covered by the default scenario suite."""

    return [
        ChainDescriptor(
            key="ethereum",
            name="Ethereum",
            chain_id=1,
            network_id=0,
            rpc_url=config.ethereum_rpc,
            bridge_address=config.ethereum_bridge_address or None,
            explorer_tx_url="https://etherscan.io/tx",
        ),
        ChainDescriptor(
            key="base",
            name="Base",
            chain_id=8453,
            network_id=10,
            rpc_url=config.base_rpc,
            bridge_address=None,
            explorer_tx_url="https://basescan.org/tx",
        ),
        ChainDescriptor(
            key="katana",
            name="Katana",
            chain_id=747474,
            network_id=20,
            rpc_url=config.katana_rpc,
            bridge_address=config.katana_bridge_address or None,
            explorer_tx_url="https://katana-explorer.com/tx",
        ),
        ChainDescriptor(
            key="okx",
            name="OKX X Layer",
            chain_id=196,
            network_id=2,
            rpc_url=config.okx_rpc,
            bridge_address=config.okx_bridge_address or None,
            native_symbol="OKB",
            explorer_tx_url="https://www.oklink.com/xlayer/tx",
        ),
    ]
