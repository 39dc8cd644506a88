"""
Transaction normalization.

Router and bridge backends return transaction objects with inconsistent
field names (``gas`` vs ``gasLimit``) and numeric encodings (decimal
strings, ints, serialized BigNumbers). :func:`normalize_transaction`
produces the canonical shape expected by the signing wallet.
"""

from typing import Any, Dict, Mapping, Optional

from ..errors import MalformedTransactionError
from .models import CANONICAL_TX_FIELDS


GAS_LIMIT_ALIASES = ("gasLimit", "gas_limit")
GAS_ALIASES = ("gas",)
CHAIN_ID_ALIASES = ("chainId", "chain_id")


def _is_decimal_string(value: Any) -> bool:
    return isinstance(value, str) and value.isascii() and value.isdigit()


def _to_hex_quantity(value: Any, field_name: str) -> Optional[str]:
    """Encode a numeric value as a 0x-prefixed hex string; ``None`` stays ``None``."""
    if value is None or value == "":
        return None
    if isinstance(value, Mapping):
        # ethers BigNumber serializations: {"_hex": ...} or {"type": "BigNumber", "hex": ...}
        value = value.get("_hex") or value.get("hex")
        if value is None:
            raise MalformedTransactionError(f"Unsupported encoding for {field_name}")
    if isinstance(value, bool):
        raise MalformedTransactionError(f"Unsupported encoding for {field_name}: {value!r}")
    if isinstance(value, int):
        return hex(value)
    if isinstance(value, str):
        if value.lower().startswith("0x"):
            return value
        if _is_decimal_string(value):
            return hex(int(value))
    raise MalformedTransactionError(f"Unsupported encoding for {field_name}: {value!r}")


def _to_chain_id(value: Any) -> int:
    if isinstance(value, bool):
        raise MalformedTransactionError(f"Unsupported chainId: {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value, 16) if value.lower().startswith("0x") else int(value)
        except ValueError:
            pass
    raise MalformedTransactionError(f"Unsupported chainId: {value!r}")


def normalize_transaction(raw: Mapping[str, Any], expected_chain_id: int) -> Dict[str, Any]:
    """
    Return the canonical form of ``raw``.

    Rules, applied in order:
    1. ``gas`` is renamed to ``gasLimit`` when no gasLimit-style field exists.
    2. A decimal-string ``nonce`` becomes a hex string.
    3. ``value``, ``gasLimit`` and ``gasPrice`` become hex strings (``value`` defaults to ``0x0``).
    4. ``chainId`` becomes an int, defaulting to ``expected_chain_id``.
    5. Undefined and non-canonical fields are dropped.

    Raises:
        MalformedTransactionError: ``to`` or ``data`` is missing.
    """
    tx: Dict[str, Any] = dict(raw)

    # 1. gas -> gasLimit
    gas_limit = next((tx[k] for k in GAS_LIMIT_ALIASES if tx.get(k) is not None), None)
    if gas_limit is None:
        gas_limit = next((tx[k] for k in GAS_ALIASES if tx.get(k) is not None), None)
    tx["gasLimit"] = gas_limit

    # 2. decimal nonce -> hex
    nonce = tx.get("nonce")
    if _is_decimal_string(nonce):
        tx["nonce"] = hex(int(nonce))

    # 3. numeric coercion
    tx["value"] = _to_hex_quantity(tx.get("value"), "value") or "0x0"
    tx["gasLimit"] = _to_hex_quantity(tx.get("gasLimit"), "gasLimit")
    tx["gasPrice"] = _to_hex_quantity(tx.get("gasPrice"), "gasPrice")

    # 4. chain id
    chain_id = next((tx[k] for k in CHAIN_ID_ALIASES if tx.get(k) is not None), None)
    tx["chainId"] = expected_chain_id if chain_id is None else _to_chain_id(chain_id)

    # 5. canonical fields only, undefined values dropped
    normalized = {
        key: tx[key]
        for key in CANONICAL_TX_FIELDS
        if tx.get(key) is not None
    }

    missing = [key for key in ("to", "data") if not normalized.get(key)]
    if missing:
        raise MalformedTransactionError(
            f"Transaction is missing required field(s): {', '.join(missing)}",
            missing=missing,
        )

    return normalized
