"""Contract deployment from a compiled artifact, with a JSON deployment record."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from ..core.chains import ChainDescriptor
from ..core.errors import ConfigurationError, InsufficientFundsError
from ..core.execution.executor import apply_gas_multiplier
from ..core.execution.wallet import ConnectedWallet


logger = logging.getLogger(__name__)


@dataclass
class Artifact:
    contract_name: str
    bytecode: str
    abi: list


def load_artifact(path: Path) -> Artifact:
    """Read a Hardhat (``bytecode``) or Foundry (``bytecode.object``) artifact."""

    path = Path(path)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        raise ConfigurationError(f"Cannot read artifact {path}: {exc}") from exc

    bytecode = data.get("bytecode")
    if isinstance(bytecode, dict):
        bytecode = bytecode.get("object")
    if not bytecode or bytecode in ("0x", "0x0"):
        raise ConfigurationError(f"Artifact {path} has no deployable bytecode")
    if not bytecode.startswith("0x"):
        bytecode = "0x" + bytecode

    return Artifact(
        contract_name=data.get("contractName") or path.stem,
        bytecode=bytecode,
        abi=list(data.get("abi") or []),
    )


async def deploy_contract(
    chain: ChainDescriptor,
    wallet: ConnectedWallet,
    artifact: Artifact,
    *,
    constructor_args: str = "0x",
    gas_multiplier: float = 1.2,
) -> Dict[str, Any]:
    """Deploy ``artifact`` on ``chain`` and wait for the receipt. Returns the deployment record."""

    balance = await wallet.get_balance()
    if balance == 0:
        raise InsufficientFundsError(
            f"Deployer {wallet.address} has no {chain.native_symbol} on {chain.name}",
            required="gas",
            available="0",
            token=chain.native_symbol,
        )

    args = constructor_args[2:] if constructor_args.startswith("0x") else constructor_args
    tx = {"data": artifact.bytecode + args, "value": "0x0", "chainId": chain.chain_id}
    gas = await wallet.estimate_gas(tx)
    tx["gasLimit"] = hex(apply_gas_multiplier(gas, gas_multiplier))

    logger.info("Deploying %s on %s from %s", artifact.contract_name, chain.name, wallet.address)
    sent = await wallet.send_transaction(tx)
    receipt = await sent.wait(1)
    if not receipt.contract_address:
        raise ConfigurationError(f"Deployment {sent.hash} produced no contract address")

    logger.info("%s deployed at %s", artifact.contract_name, receipt.contract_address)
    return {
        "chainId": chain.chain_id,
        "chainName": chain.name,
        "contractName": artifact.contract_name,
        "address": receipt.contract_address,
        "deployer": wallet.address,
        "txHash": sent.hash,
        "blockNumber": receipt.block_number,
        "gasUsed": receipt.gas_used,
        "explorer": chain.explorer_link(sent.hash),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


def write_deployment_record(record: Dict[str, Any], deployments_dir: Path, chain_key: str, name: Optional[str] = None) -> Path:
    deployments_dir = Path(deployments_dir)
    deployments_dir.mkdir(parents=True, exist_ok=True)
    path = deployments_dir / f"{name or 'custom-token'}-{chain_key}.json"
    path.write_text(json.dumps(record, default=str, indent=2), encoding="utf-8")
    return path
