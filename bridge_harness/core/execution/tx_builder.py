"""
Calldata builders for ERC20 and bridge contract calls.
"""

from typing import Any, Dict, List

from eth_utils import keccak

from ..tokens import NATIVE_TOKEN_ADDRESS


# Common contract selectors (minimal for encoding)
ERC20_APPROVE_SELECTOR = "0x095ea7b3"  # approve(address,uint256)
ERC20_BALANCE_OF_SELECTOR = "0x70a08231"  # balanceOf(address)
ERC20_ALLOWANCE_SELECTOR = "0xdd62ed3e"  # allowance(address,address)

BRIDGE_ASSET_SIGNATURE = "bridgeAsset(uint32,address,uint256,address,bool,bytes)"
IS_CLAIMED_SIGNATURE = "isClaimed(uint32,uint32)"
BRIDGE_EVENT_SIGNATURE = "BridgeEvent(uint8,uint32,address,uint32,address,uint256,bytes,uint32)"

# Maximum uint256 for unlimited approval
MAX_UINT256 = 2**256 - 1


def _strip_0x(value: str) -> str:
    return value[2:] if value.startswith("0x") else value


def _encode_uint256(value: int) -> str:
    """Encode a uint256 as a 32-byte hex string (without 0x prefix)."""
    if value < 0:
        raise ValueError("Value must be non-negative")
    return format(value, "064x")


def _encode_address(address: str) -> str:
    """Encode an address as a 32-byte hex string (without 0x prefix)."""
    addr = _strip_0x(address).lower()
    if len(addr) != 40:
        raise ValueError(f"Invalid address length: {address}")
    return addr.zfill(64)


def _encode_bool(value: bool) -> str:
    return _encode_uint256(1 if value else 0)


def _encode_bytes(data: str) -> str:
    hex_data = _strip_0x(data)
    if len(hex_data) % 2 != 0:
        raise ValueError("Byte data must have an even-length hex string")
    data_len = len(hex_data) // 2
    padded_len = ((data_len + 31) // 32) * 32
    padding = "0" * ((padded_len - data_len) * 2)
    return _encode_uint256(data_len) + hex_data + padding


def selector(signature: str) -> str:
    return f"0x{keccak(text=signature)[:4].hex()}"


def event_topic(signature: str) -> str:
    return f"0x{keccak(text=signature).hex()}"


def _words(data: str) -> List[str]:
    body = _strip_0x(data)
    return [body[i:i + 64] for i in range(0, len(body), 64)]


def decode_uint256(data: str) -> int:
    body = _strip_0x(data or "")
    if not body:
        return 0
    return int(body[:64], 16)


def decode_bool(data: str) -> bool:
    return decode_uint256(data) != 0


def build_balance_of_call(owner: str) -> str:
    return ERC20_BALANCE_OF_SELECTOR + _encode_address(owner)


def build_allowance_call(owner: str, spender: str) -> str:
    return ERC20_ALLOWANCE_SELECTOR + _encode_address(owner) + _encode_address(spender)


def build_erc20_approve(
    token_address: str,
    spender_address: str,
    amount: int,
    from_address: str,
) -> Dict[str, Any]:
    """
    Build an ERC20 approval transaction.

    Args:
        token_address: The ERC20 token contract
        spender_address: The address being approved to spend
        amount: The amount to approve
        from_address: The token owner (sender)

    Returns:
        Unsigned transaction dict
    """
    calldata = (
        ERC20_APPROVE_SELECTOR +
        _encode_address(spender_address) +
        _encode_uint256(amount)
    )
    return {
        "from": from_address,
        "to": token_address,
        "data": calldata,
        "value": "0x0",
    }


def build_bridge_asset(
    bridge_address: str,
    destination_network: int,
    destination_address: str,
    amount: int,
    token_address: str,
    force_update_global_exit_root: bool,
    from_address: str,
    permit_data: str = "0x",
) -> Dict[str, Any]:
    """
    Build a bridgeAsset call on the bridge contract.

    Native transfers carry the amount as ``value``; ERC20 transfers rely on a
    prior approval of the bridge contract.
    """
    head = (
        _encode_uint256(destination_network)
        + _encode_address(destination_address)
        + _encode_uint256(amount)
        + _encode_address(token_address)
        + _encode_bool(force_update_global_exit_root)
        + _encode_uint256(6 * 32)  # offset to permit bytes
    )
    calldata = selector(BRIDGE_ASSET_SIGNATURE) + head + _encode_bytes(permit_data)
    is_native = _strip_0x(token_address).lower() == _strip_0x(NATIVE_TOKEN_ADDRESS)
    return {
        "from": from_address,
        "to": bridge_address,
        "data": calldata,
        "value": hex(amount) if is_native else "0x0",
    }


def build_is_claimed_call(leaf_index: int, source_bridge_network: int) -> str:
    return selector(IS_CLAIMED_SIGNATURE) + _encode_uint256(leaf_index) + _encode_uint256(source_bridge_network)


def decode_bridge_event(log: Dict[str, Any]) -> Dict[str, Any]:
    """Decode the head of a BridgeEvent log (all parameters are non-indexed)."""
    words = _words(log.get("data", ""))
    if len(words) < 8:
        raise ValueError("BridgeEvent data is too short")
    return {
        "leafType": int(words[0], 16),
        "originNetwork": int(words[1], 16),
        "originAddress": "0x" + words[2][-40:],
        "destinationNetwork": int(words[3], 16),
        "destinationAddress": "0x" + words[4][-40:],
        "amount": int(words[5], 16),
        "depositCount": int(words[7], 16),
    }


def find_bridge_event(logs: List[Dict[str, Any]]) -> Dict[str, Any] | None:
    topic = event_topic(BRIDGE_EVENT_SIGNATURE)
    for log in logs or []:
        topics = log.get("topics") or []
        if topics and topics[0].lower() == topic:
            return decode_bridge_event(log)
    return None
