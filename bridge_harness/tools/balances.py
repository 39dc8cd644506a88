"""Native and ERC20 balances of one wallet across every configured chain."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import List, Optional

from ..core.chains import ChainRegistry
from ..core.tokens import TokenRegistry
from ..providers.base import BridgeProvider


logger = logging.getLogger(__name__)


@dataclass
class BalanceEntry:
    chain: str
    symbol: str
    decimals: int
    balance: int = 0
    address: Optional[str] = None
    error: Optional[str] = None

    @property
    def formatted(self) -> str:
        value = Decimal(self.balance) / (Decimal(10) ** self.decimals)
        return format(value.normalize(), "f") if value else "0"


async def check_balances(
    wallet_address: str,
    chains: ChainRegistry,
    tokens: TokenRegistry,
    bridge: BridgeProvider,
) -> List[BalanceEntry]:
    """Query every (chain, token) pair. Per-entry errors are captured, not raised."""

    entries: List[BalanceEntry] = []
    for chain in chains:
        native = BalanceEntry(chain=chain.key, symbol=chain.native_symbol, decimals=chain.native_decimals)
        try:
            native.balance = await bridge.get_native_balance(wallet_address, chain.chain_id)
        except Exception as exc:
            native.error = str(exc)
        entries.append(native)

        for symbol in tokens.symbols:
            token = tokens.descriptor(symbol, chain.key)
            if token is None or token.is_native:
                continue
            entry = BalanceEntry(chain=chain.key, symbol=token.symbol, decimals=token.decimals, address=token.address)
            if token.address is None:
                entry.error = "not deployed"
                entries.append(entry)
                continue
            try:
                entry.balance = await bridge.erc20(token.address, chain.chain_id).get_balance(wallet_address)
            except Exception as exc:
                logger.debug("balanceOf %s on %s failed: %s", token.address, chain.key, exc)
                entry.error = str(exc)
            entries.append(entry)
    return entries


def format_balances(wallet_address: str, entries: List[BalanceEntry], chains: ChainRegistry) -> str:
    lines = [f"Balances for {wallet_address}", "=" * 70]
    for chain in chains:
        lines.append(f"{chain.name} (chain {chain.chain_id}, network {chain.network_id})")
        for entry in (e for e in entries if e.chain == chain.key):
            if entry.error:
                lines.append(f"  {entry.symbol:<8} error: {entry.error}")
            else:
                lines.append(f"  {entry.symbol:<8} {entry.formatted}")
        lines.append("")
    return "\n".join(lines).rstrip()
