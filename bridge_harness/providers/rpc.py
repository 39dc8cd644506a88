"""Minimal async JSON-RPC client for EVM chains."""

from __future__ import annotations

import itertools
import logging
from typing import Any, Dict, List, Optional

import httpx

from ..core.chains import ChainDescriptor
from ..core.errors import RpcError


logger = logging.getLogger(__name__)


def _to_int(value: Any) -> int:
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        return int(value, 16) if value.startswith("0x") else int(value)
    raise ValueError(f"Cannot convert {value!r} to int")


class JsonRpcClient:
    """Stateless JSON-RPC transport for a single chain."""

    def __init__(
        self,
        rpc_url: str,
        chain_id: int,
        *,
        timeout_s: float = 60.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.rpc_url = rpc_url
        self.chain_id = chain_id
        self._client = client or httpx.AsyncClient(timeout=timeout_s)
        self._ids = itertools.count(1)

    async def call(self, method: str, params: Optional[List[Any]] = None) -> Any:
        """Make an RPC call to the chain."""
        payload = {
            "jsonrpc": "2.0",
            "method": method,
            "params": params or [],
            "id": next(self._ids),
        }

        try:
            response = await self._client.post(self.rpc_url, json=payload)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise RpcError(f"{method} failed: {exc}", method=method, chain_id=self.chain_id) from exc

        result = response.json()
        if "error" in result and result["error"]:
            error = result["error"]
            message = error.get("message", str(error)) if isinstance(error, dict) else str(error)
            code = error.get("code") if isinstance(error, dict) else None
            raise RpcError(f"RPC error: {message}", method=method, chain_id=self.chain_id, code=code)

        return result.get("result")

    async def get_balance(self, address: str, block: str = "latest") -> int:
        return _to_int(await self.call("eth_getBalance", [address, block]))

    async def eth_call(self, to: str, data: str, block: str = "latest") -> str:
        return await self.call("eth_call", [{"to": to, "data": data}, block])

    async def estimate_gas(self, tx: Dict[str, Any]) -> int:
        return _to_int(await self.call("eth_estimateGas", [tx]))

    async def gas_price(self) -> int:
        return _to_int(await self.call("eth_gasPrice", []))

    async def get_transaction_count(self, address: str, block: str = "pending") -> int:
        return _to_int(await self.call("eth_getTransactionCount", [address, block]))

    async def send_raw_transaction(self, raw_tx: str) -> str:
        tx_hash = await self.call("eth_sendRawTransaction", [raw_tx])
        logger.info("Transaction submitted on chain %s: %s", self.chain_id, tx_hash)
        return tx_hash

    async def get_transaction_receipt(self, tx_hash: str) -> Optional[Dict[str, Any]]:
        return await self.call("eth_getTransactionReceipt", [tx_hash])

    async def get_transaction(self, tx_hash: str) -> Optional[Dict[str, Any]]:
        return await self.call("eth_getTransactionByHash", [tx_hash])

    async def get_block(self, block_number: int) -> Optional[Dict[str, Any]]:
        return await self.call("eth_getBlockByNumber", [hex(block_number), False])

    async def block_number(self) -> int:
        return _to_int(await self.call("eth_blockNumber", []))

    async def close(self) -> None:
        """Close HTTP client."""
        await self._client.aclose()


class ChainClientPool:
    """One :class:`JsonRpcClient` per configured chain, created on first use."""

    def __init__(self, *, timeout_s: float = 60.0) -> None:
        self._timeout_s = timeout_s
        self._clients: Dict[int, JsonRpcClient] = {}

    def client_for(self, chain: ChainDescriptor) -> JsonRpcClient:
        client = self._clients.get(chain.chain_id)
        if client is None:
            client = JsonRpcClient(chain.rpc_url, chain.chain_id, timeout_s=self._timeout_s)
            self._clients[chain.chain_id] = client
        return client

    async def close(self) -> None:
        for client in self._clients.values():
            await client.close()
        self._clients.clear()
