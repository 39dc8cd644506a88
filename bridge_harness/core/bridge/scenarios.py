"""Default scenario suite.

Order matters: a wrapped token only exists on a chain after something was
bridged into it. Each round trip starts from the chain where the token is
already known, so the return leg sends out of a chain it was just sent into.
"""

from typing import List, Tuple

from .models import BridgeScenario


CUSTOM_TOKEN_SYMBOL = "ASTEST"

# (token, chain holding the token, counterpart chain)
_ROUND_TRIPS: List[Tuple[str, str, str]] = [
    ("ETH", "base", "katana"),
    ("WBTC", "base", "katana"),
    (CUSTOM_TOKEN_SYMBOL, "katana", "base"),
    ("ETH", "katana", "okx"),
    ("OKB", "okx", "katana"),
    ("WBTC", "katana", "okx"),
    ("ETH", "katana", "ethereum"),
    ("WBTC", "katana", "ethereum"),
    (CUSTOM_TOKEN_SYMBOL, "katana", "ethereum"),
]

_CHAIN_NAMES = {
    "ethereum": "Ethereum",
    "base": "Base",
    "katana": "Katana",
    "okx": "OKX",
}


def _label(token: str, from_chain: str, to_chain: str) -> str:
    return f"{token}: {_CHAIN_NAMES.get(from_chain, from_chain)} -> {_CHAIN_NAMES.get(to_chain, to_chain)}"


def default_scenarios() -> List[BridgeScenario]:
    """Both directions of every round trip, starting from the holding chain."""

    scenarios: List[BridgeScenario] = []
    for token, home, away in _ROUND_TRIPS:
        scenarios.append(BridgeScenario(home, away, token, label=_label(token, home, away)))
        scenarios.append(BridgeScenario(away, home, token, label=_label(token, away, home)))
    return scenarios
