"""Token registry: per-chain token addresses, including wrapped tokens discovered at runtime."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from decimal import Decimal, ROUND_DOWN
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from ..config import Settings
from .chains import ChainDescriptor, ChainRegistry
from .errors import ConfigurationError

if TYPE_CHECKING:  # pragma: no cover
    from ..providers.base import RouterProvider


NATIVE_TOKEN_ADDRESS = "0x0000000000000000000000000000000000000000"


@dataclass(frozen=True)
class TokenDescriptor:
    """A logical token on one chain.

    ``address`` is ``None`` while the wrapped representation is unknown; such
    a chain can receive the token but cannot be used as a source.
    """

    symbol: str
    decimals: int
    address: Optional[str] = None
    is_native: bool = False

    def __post_init__(self) -> None:
        if self.is_native and self.address != NATIVE_TOKEN_ADDRESS:
            raise ConfigurationError(f"Native token {self.symbol} must use the zero address")

    @property
    def is_resolved(self) -> bool:
        return self.is_native or self.address is not None

    def to_base_units(self, amount: Decimal) -> int:
        scaled = (Decimal(amount) * (Decimal(10) ** self.decimals)).quantize(Decimal("1"), rounding=ROUND_DOWN)
        return int(scaled)

    def from_base_units(self, amount: int) -> Decimal:
        return Decimal(amount) / (Decimal(10) ** self.decimals)


def native(symbol: str, decimals: int = 18) -> TokenDescriptor:
    return TokenDescriptor(symbol=symbol, decimals=decimals, address=NATIVE_TOKEN_ADDRESS, is_native=True)


def erc20(symbol: str, decimals: int, address: Optional[str]) -> TokenDescriptor:
    return TokenDescriptor(symbol=symbol, decimals=decimals, address=address or None, is_native=False)


class TokenRegistry:
    """Owns the (token, chain) → descriptor table.

    The table is passed explicitly to every consumer; the only mutation is
    :meth:`record`, used once a wrapped address has been discovered.
    """

    def __init__(
        self,
        tokens: Dict[str, Dict[str, TokenDescriptor]],
        *,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._tokens: Dict[str, Dict[str, TokenDescriptor]] = {
            symbol.upper(): dict(per_chain) for symbol, per_chain in tokens.items()
        }
        self._logger = logger or logging.getLogger(__name__)

    @classmethod
    def from_settings(cls, config: Settings) -> "TokenRegistry":
        return cls(default_tokens(config))

    @property
    def symbols(self) -> List[str]:
        return list(self._tokens.keys())

    def chains_for(self, symbol: str) -> List[str]:
        return list(self._tokens.get(symbol.upper(), {}).keys())

    def descriptor(self, symbol: str, chain: str) -> Optional[TokenDescriptor]:
        return self._tokens.get(symbol.upper(), {}).get(chain)

    def resolve(self, symbol: str, chain: str) -> Optional[str]:
        token = self.descriptor(symbol, chain)
        return token.address if token else None

    def record(self, symbol: str, chain: str, address: str) -> TokenDescriptor:
        current = self.descriptor(symbol, chain)
        if current is None:
            raise ConfigurationError(f"Token {symbol} is not configured for {chain}")
        if current.is_native:
            raise ConfigurationError(f"Token {symbol} is native on {chain}; nothing to record")

        updated = replace(current, address=address)
        self._tokens[symbol.upper()][chain] = updated
        if current.address is None:
            self._logger.info("Resolved %s on %s: %s", symbol, chain, address)
        elif current.address.lower() != address.lower():
            self._logger.warning(
                "Replacing %s address on %s: %s -> %s", symbol, chain, current.address, address
            )
        return updated

    def is_deployed(self, symbol: str) -> bool:
        """True when the token exists somewhere (native or with a known address)."""

        return any(token.is_resolved for token in self._tokens.get(symbol.upper(), {}).values())

    def unresolved(self) -> List[tuple]:
        return [
            (symbol, chain)
            for symbol, per_chain in self._tokens.items()
            for chain, token in per_chain.items()
            if not token.is_resolved
        ]

    async def resolve_wrapped(
        self,
        router: "RouterProvider",
        chains: ChainRegistry,
        symbol: str,
        target_chain: str,
    ) -> Optional[str]:
        """Look up the wrapped address of ``symbol`` on ``target_chain`` via token mappings."""

        target = chains.get(target_chain)
        for chain_key, token in self._tokens.get(symbol.upper(), {}).items():
            if chain_key == target_chain or token.is_native or token.address is None:
                continue
            mappings = await router.get_token_mappings(token.address)
            address = _match_mapping(mappings, target)
            if address:
                self.record(symbol, target_chain, address)
                return address
        return None

    async def resolve_all_wrapped(self, router: "RouterProvider", chains: ChainRegistry) -> int:
        """Try to fill in every unknown address. Returns the number resolved."""

        resolved = 0
        for symbol, chain_key in self.unresolved():
            if not self.is_deployed(symbol):
                continue
            try:
                if await self.resolve_wrapped(router, chains, symbol, chain_key):
                    resolved += 1
            except Exception as exc:
                self._logger.warning("Token mapping lookup failed for %s on %s: %s", symbol, chain_key, exc)
        return resolved


def _match_mapping(mappings: List[Dict[str, Any]], target: ChainDescriptor) -> Optional[str]:
    for mapping in mappings or []:
        network = mapping.get("wrappedTokenNetwork")
        address = mapping.get("wrappedTokenAddress")
        if network is None or not address:
            continue
        try:
            if int(network) == target.network_id and address.lower() != NATIVE_TOKEN_ADDRESS:
                return address
        except (TypeError, ValueError):
            continue
    return None


def default_tokens(config: Settings) -> Dict[str, Dict[str, TokenDescriptor]]:
    """Token table for the default suite; ``None`` marks not-yet-bridged wrapped tokens."""

    return {
        "ETH": {
            "ethereum": native("ETH"),
            "base": native("ETH"),
            "katana": native("ETH"),
            "okx": erc20("WETH", 18, "0x5a77f1443d16ee5761d310e38b62f77f726bc71c"),
        },
        "WBTC": {
            "ethereum": erc20("WBTC", 8, "0x2260FAC5E5542a773Aa44fBCfeDf7C193bc2C599"),
            "base": erc20("WBTC", 8, "0x0555E30da8f98308EdB960aa94C0Db47230d2B9c"),
            "katana": erc20("WBTC", 8, None),
            "okx": erc20("WBTC", 8, "0xea034fb02eb1808c2cc3adbc15f447b93cbe08e1"),
        },
        "OKB": {
            "ethereum": erc20("OKB", 18, "0x75231F58b43240C9718Dd58B4967c5114342a86c"),
            "okx": native("OKB"),
            "katana": erc20("OKB", 18, None),
        },
        "ASTEST": {
            "katana": erc20("ASTEST", 18, config.custom_token_katana or None),
            "base": erc20("ASTEST", 18, None),
            "ethereum": erc20("ASTEST", 18, None),
        },
    }
