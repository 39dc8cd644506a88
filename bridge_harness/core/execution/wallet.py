"""
Signing wallet bound to a chain's JSON-RPC client.

One private key is shared by every chain; :meth:`Wallet.connect` returns a
per-chain view that fills in nonce, gas and chain id, signs locally and
broadcasts the raw transaction.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Mapping, Optional

from eth_account import Account
from eth_account.signers.local import LocalAccount
from eth_utils import to_checksum_address, to_hex

from ...providers.rpc import JsonRpcClient, _to_int
from ..errors import TransactionRevertedError
from .models import TransactionReceipt


logger = logging.getLogger(__name__)


class Wallet:
    """The single signing key used by the harness."""

    def __init__(self, private_key: str) -> None:
        self._account: LocalAccount = Account.from_key(private_key)

    @property
    def address(self) -> str:
        return self._account.address

    def connect(self, client: JsonRpcClient, *, poll_interval: float = 2.0) -> "ConnectedWallet":
        return ConnectedWallet(self._account, client, poll_interval=poll_interval)


class SentTransaction:
    """Handle on a broadcast transaction."""

    def __init__(self, tx_hash: str, client: JsonRpcClient, *, poll_interval: float = 2.0) -> None:
        self.hash = tx_hash
        self._client = client
        self._poll_interval = poll_interval

    async def wait(self, confirmations: int = 1, timeout: Optional[float] = None) -> TransactionReceipt:
        """Block until the transaction is included with ``confirmations`` blocks.

        No deadline unless ``timeout`` is given. A reverted receipt raises
        :class:`TransactionRevertedError`.
        """
        if timeout is None:
            return await self._wait(confirmations)
        return await asyncio.wait_for(self._wait(confirmations), timeout=timeout)

    async def _wait(self, confirmations: int) -> TransactionReceipt:
        while True:
            raw = await self._client.get_transaction_receipt(self.hash)
            if raw and raw.get("blockNumber"):
                receipt = TransactionReceipt.from_rpc(raw)
                if not receipt.tx_hash:
                    receipt.tx_hash = self.hash
                if not receipt.succeeded:
                    raise TransactionRevertedError(
                        f"Transaction {self.hash} reverted in block {receipt.block_number}",
                        tx_hash=self.hash,
                        chain_id=self._client.chain_id,
                        block_number=receipt.block_number,
                    )
                if confirmations <= 1:
                    return receipt
                head = await self._client.block_number()
                if head - receipt.block_number + 1 >= confirmations:
                    return receipt
            await asyncio.sleep(self._poll_interval)


class ConnectedWallet:
    """Wallet view bound to one chain."""

    def __init__(self, account: LocalAccount, client: JsonRpcClient, *, poll_interval: float = 2.0) -> None:
        self._account = account
        self._client = client
        self._poll_interval = poll_interval

    @property
    def address(self) -> str:
        return self._account.address

    @property
    def chain_id(self) -> int:
        return self._client.chain_id

    async def get_balance(self) -> int:
        return await self._client.get_balance(self.address)

    async def estimate_gas(self, tx: Mapping[str, Any]) -> int:
        call: Dict[str, Any] = {
            "from": self.address,
            "data": tx.get("data", "0x"),
            "value": hex(_to_int(tx.get("value") or 0)),
        }
        if tx.get("to"):
            call["to"] = tx["to"]
        return await self._client.estimate_gas(call)

    async def send_transaction(self, tx: Mapping[str, Any]) -> SentTransaction:
        """Fill in missing fields, sign and broadcast ``tx`` (canonical field names)."""

        prepared: Dict[str, Any] = {
            "to": to_checksum_address(tx["to"]) if tx.get("to") else None,
            "data": tx.get("data", "0x"),
            "value": _to_int(tx.get("value") or 0),
            "chainId": int(tx.get("chainId") or self._client.chain_id),
        }
        if prepared["to"] is None:
            del prepared["to"]

        if tx.get("nonce") is not None:
            prepared["nonce"] = _to_int(tx["nonce"])
        else:
            prepared["nonce"] = await self._client.get_transaction_count(self.address)

        if tx.get("gasPrice") is not None:
            prepared["gasPrice"] = _to_int(tx["gasPrice"])
        else:
            prepared["gasPrice"] = await self._client.gas_price()

        if tx.get("gasLimit") is not None:
            prepared["gas"] = _to_int(tx["gasLimit"])
        else:
            prepared["gas"] = await self.estimate_gas(tx)

        signed = self._account.sign_transaction(prepared)
        tx_hash = await self._client.send_raw_transaction(to_hex(signed.raw_transaction))
        logger.debug("Sent tx %s (nonce=%s, gas=%s)", tx_hash, prepared["nonce"], prepared["gas"])
        return SentTransaction(tx_hash, self._client, poll_interval=self._poll_interval)
