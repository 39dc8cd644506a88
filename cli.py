#!/usr/bin/env python3
"""Command line entry point for the Agglayer bridge test harness"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import List, Optional

from bridge_harness.config import Settings, settings
from bridge_harness.core.bridge.orchestrator import create_orchestrator
from bridge_harness.core.bridge.report import build_report, format_summary, write_report
from bridge_harness.core.chains import ChainRegistry
from bridge_harness.core.errors import BridgeHarnessError, ConfigurationError
from bridge_harness.core.execution.wallet import Wallet
from bridge_harness.core.tokens import TokenRegistry
from bridge_harness.logging_config import bind_run_context, clear_run_context, setup_logging
from bridge_harness.providers.arc import ArcApiProvider
from bridge_harness.providers.native_bridge import NativeBridgeProvider
from bridge_harness.providers.rpc import ChainClientPool
from bridge_harness.tools.balances import check_balances, format_balances
from bridge_harness.tools.deploy import deploy_contract, load_artifact, write_deployment_record
from bridge_harness.tools.tracker import TransactionTracker, format_track_report, validate_tx_hash


logger = logging.getLogger("bridge_harness.cli")


def _wallet(config: Settings) -> Wallet:
    if not config.has_wallet_key:
        raise ConfigurationError("TEST_WALLET_PRIVATE_KEY is not set")
    try:
        return Wallet(config.test_wallet_private_key)
    except Exception as exc:
        raise ConfigurationError(f"Invalid wallet private key: {exc}") from exc


async def cli_run(config: Settings) -> None:
    """Run the full scenario suite and write the report."""
    print("=" * 80)
    print("AGGLAYER BRIDGE TEST SUITE")
    print("=" * 80)

    orchestrator = create_orchestrator(config)
    bind_run_context(
        mode="dry_run" if config.dry_run else "live",
        wallet=orchestrator.executor.wallet.address,
    )
    try:
        results = await orchestrator.run()
    finally:
        await orchestrator.close()
        clear_run_context()

    report = build_report(
        results,
        orchestrator.claim_results,
        dry_run=config.dry_run,
        configuration=orchestrator.configuration(),
        pending_claims=len(orchestrator.claims.pending),
    )
    print(format_summary(report))
    path = write_report(report, config.results_dir)
    print(f"Full results saved to: {path}")


async def cli_balances(config: Settings, address: Optional[str]) -> None:
    wallet_address = address or _wallet(config).address
    chains = ChainRegistry.from_settings(config)
    tokens = TokenRegistry.from_settings(config)
    clients = ChainClientPool(timeout_s=config.arc_api_timeout_seconds)
    try:
        entries = await check_balances(wallet_address, chains, tokens, NativeBridgeProvider(chains, clients))
    finally:
        await clients.close()
    print(format_balances(wallet_address, entries, chains))


async def cli_track(config: Settings, tx_hash: str, chain_id: Optional[int], watch: bool) -> None:
    validate_tx_hash(tx_hash)
    chains = ChainRegistry.from_settings(config)
    clients = ChainClientPool(timeout_s=config.arc_api_timeout_seconds)
    tracker = TransactionTracker(
        chains,
        clients,
        NativeBridgeProvider(chains, clients),
        ArcApiProvider(base_url=config.arc_api_base_url, timeout_s=config.arc_api_timeout_seconds),
    )
    try:
        if watch:
            print(f"Watching {tx_hash} (polling every {tracker.poll_interval:g}s, Ctrl+C to stop)")
            report = await tracker.watch(tx_hash, chain_id)
        else:
            report = await tracker.track(tx_hash, chain_id)
    finally:
        await clients.close()
    print(format_track_report(report))


async def cli_deploy_token(config: Settings, chain_key: str, artifact_path: Path, constructor_args: str) -> None:
    chains = ChainRegistry.from_settings(config)
    chain = chains.get(chain_key)
    artifact = load_artifact(artifact_path)
    clients = ChainClientPool(timeout_s=config.arc_api_timeout_seconds)
    try:
        signer = _wallet(config).connect(
            clients.client_for(chain), poll_interval=config.receipt_poll_interval_seconds
        )
        record = await deploy_contract(
            chain,
            signer,
            artifact,
            constructor_args=constructor_args,
            gas_multiplier=config.gas_multiplier,
        )
    finally:
        await clients.close()

    path = write_deployment_record(record, config.deployments_dir, chain.key)
    print(f"Deployed {artifact.contract_name} at {record['address']} on {chain.name}")
    print(f"Deployment record saved to: {path}")
    print(f"Add this to your .env file:\nCUSTOM_TOKEN_{chain.key.upper()}={record['address']}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Agglayer bridge test harness")
    subparsers = parser.add_subparsers(dest="command")

    run_parser = subparsers.add_parser("run", help="Run the bridge scenario suite")
    run_parser.add_argument("--dry-run", action="store_true", help="Simulate every transaction")
    run_parser.add_argument("--verbose", action="store_true", help="Debug logging with stack traces")

    balances_parser = subparsers.add_parser("balances", help="Show wallet balances on every chain")
    balances_parser.add_argument("address", nargs="?", help="Wallet address (default: the test wallet)")

    track_parser = subparsers.add_parser("track", help="Track a bridge transaction")
    track_parser.add_argument("tx_hash", help="Source transaction hash")
    track_parser.add_argument("chain_id", nargs="?", type=int, help="Chain id (auto-detected when omitted)")
    track_parser.add_argument("--watch", action="store_true", help="Poll until the transaction is mined")

    deploy_parser = subparsers.add_parser("deploy-token", help="Deploy a token contract from a compiled artifact")
    deploy_parser.add_argument("chain", help="Chain key (ethereum, base, katana, okx)")
    deploy_parser.add_argument("--artifact", required=True, type=Path, help="Compiled artifact JSON")
    deploy_parser.add_argument("--constructor-args", default="0x", help="ABI-encoded constructor arguments (hex)")

    for sub in (balances_parser, track_parser, deploy_parser):
        sub.add_argument("--verbose", action="store_true", help="Debug logging with stack traces")

    return parser


async def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 0

    updates = {}
    if getattr(args, "verbose", False):
        updates["verbose"] = True
    if getattr(args, "dry_run", False):
        updates["dry_run"] = True
    config = settings.model_copy(update=updates) if updates else settings

    setup_logging(config.log_level, config.verbose)

    try:
        if args.command == "run":
            await cli_run(config)
        elif args.command == "balances":
            await cli_balances(config, args.address)
        elif args.command == "track":
            await cli_track(config, args.tx_hash, args.chain_id, args.watch)
        elif args.command == "deploy-token":
            await cli_deploy_token(config, args.chain, args.artifact, args.constructor_args)
        else:
            parser.print_help()
            return 1
    except ConfigurationError as e:
        logger.error("Configuration error: %s", e.message)
        return 1
    except BridgeHarnessError as e:
        logger.error("%s", e.message, exc_info=config.verbose)
        return 1
    except Exception as e:
        logger.error("Fatal error: %s", e, exc_info=config.verbose)
        return 1

    return 0


def run() -> None:
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        sys.exit(130)


if __name__ == "__main__":
    run()
