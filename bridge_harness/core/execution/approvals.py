"""
ERC20 allowance management.

``ensure_approval`` is idempotent: when the current allowance already covers
the amount no transaction is built, so repeated calls within a run (or across
re-runs) cost one ``eth_call`` each.
"""

import logging
from typing import TYPE_CHECKING, Optional

from ..chains import ChainDescriptor
from ..errors import ApprovalFailedError
from .normalizer import normalize_transaction
from .wallet import ConnectedWallet

if TYPE_CHECKING:  # pragma: no cover
    from ...providers.base import BridgeProvider


logger = logging.getLogger(__name__)


class ApprovalManager:
    """Grants the bridge (or router spender) allowance over the wallet's tokens."""

    def __init__(
        self,
        bridge: "BridgeProvider",
        *,
        dry_run: bool = False,
    ) -> None:
        self.bridge = bridge
        self.dry_run = dry_run

    async def ensure_approval(
        self,
        chain: ChainDescriptor,
        token_address: str,
        spender: str,
        amount: int,
        owner: ConnectedWallet,
    ) -> Optional[str]:
        """
        Make sure ``spender`` may move ``amount`` of ``token_address`` for ``owner``.

        Returns:
            The approval tx hash, or None when no transaction was needed
            (or the submission was simulated).

        Raises:
            ApprovalFailedError: The allowance query, build, submission or
                confirmation failed.
        """
        token = self.bridge.erc20(token_address, chain.chain_id)
        try:
            allowance = await token.get_allowance(owner.address, spender)
        except Exception as exc:
            raise ApprovalFailedError(
                f"Could not read allowance of {token_address} on {chain.name}: {exc}",
                token_address=token_address,
                spender=spender,
                chain_id=chain.chain_id,
                cause=exc,
            ) from exc

        if allowance >= amount:
            logger.debug(
                "Allowance sufficient on %s: %s >= %s (spender %s)",
                chain.name, allowance, amount, spender,
            )
            return None

        if self.dry_run:
            logger.info(
                "[DRY RUN] Would approve %s of %s for %s on %s",
                amount, token_address, spender, chain.name,
            )
            return None

        logger.info("Approving %s of %s for %s on %s", amount, token_address, spender, chain.name)
        try:
            raw_tx = await token.build_approve(spender, amount, owner.address)
            tx = normalize_transaction(raw_tx, chain.chain_id)
            sent = await owner.send_transaction(tx)
            receipt = await sent.wait(1)
        except Exception as exc:
            raise ApprovalFailedError(
                f"Approval of {token_address} for {spender} on {chain.name} failed: {exc}",
                token_address=token_address,
                spender=spender,
                chain_id=chain.chain_id,
                cause=exc,
            ) from exc

        logger.info("Approval confirmed on %s in block %s", chain.name, receipt.block_number)
        return sent.hash
