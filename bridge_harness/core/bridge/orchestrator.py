"""
Scenario orchestration.

Drives each scenario strictly in order through routing, optional approval,
execution and claim registration, then processes claims once the settlement
delay has elapsed. A failing scenario becomes a FAILED result and the run
moves on; nothing below this layer is allowed to end the process.
"""

from __future__ import annotations

import asyncio
import logging
from decimal import Decimal
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, List, Optional

from ...config import Settings, settings
from ...providers.arc import ArcApiProvider
from ...providers.base import BridgeProvider, RouterProvider
from ...providers.native_bridge import NativeBridgeProvider
from ...providers.rpc import ChainClientPool
from ..chains import ChainDescriptor, ChainRegistry
from ..errors import ConfigurationError, InsufficientFundsError, classify_error
from ..execution.approvals import ApprovalManager
from ..execution.executor import TransactionExecutor
from ..execution.wallet import ConnectedWallet, Wallet
from ..tokens import TokenDescriptor, TokenRegistry
from .checkpoint import CheckpointLog, scenario_key
from .claims import ClaimTracker
from .models import (
    BridgeScenario,
    ClaimResult,
    ResultStatus,
    ScenarioResult,
    ScenarioState,
)
from .resolver import RouteResolver
from .scenarios import default_scenarios
from .state_machine import ScenarioStateMachine, TransitionListener, logging_listener


logger = logging.getLogger(__name__)

SKIP_NOT_DEPLOYED = "Token not deployed"
SKIP_COMPLETED = "Completed in a previous run"

Sleep = Callable[[float], Awaitable[Any]]


class ScenarioOrchestrator:
    """
    Runs the ordered scenario suite and owns the result list.

    Usage:
        orchestrator = create_orchestrator(settings)
        try:
            results = await orchestrator.run()
        finally:
            await orchestrator.close()
    """

    def __init__(
        self,
        *,
        chains: ChainRegistry,
        tokens: TokenRegistry,
        router: RouterProvider,
        bridge: BridgeProvider,
        resolver: RouteResolver,
        executor: TransactionExecutor,
        claims: ClaimTracker,
        amounts: Dict[str, Decimal],
        scenarios: Optional[List[BridgeScenario]] = None,
        scenario_delay: float = 3.0,
        settlement_delay: float = 180.0,
        skip_balance_check: bool = False,
        check_existing_claims: bool = True,
        checkpoint: Optional[CheckpointLog] = None,
        listeners: Optional[List[TransitionListener]] = None,
        sleep: Sleep = asyncio.sleep,
        verbose: bool = False,
        clients: Optional[ChainClientPool] = None,
    ) -> None:
        self.chains = chains
        self.tokens = tokens
        self.router = router
        self.bridge = bridge
        self.resolver = resolver
        self.executor = executor
        self.claims = claims
        self.amounts = {symbol.upper(): Decimal(amount) for symbol, amount in amounts.items()}
        self.scenarios = list(scenarios) if scenarios is not None else default_scenarios()
        self.scenario_delay = scenario_delay
        self.settlement_delay = settlement_delay
        self.skip_balance_check = skip_balance_check
        self.check_existing_claims = check_existing_claims
        self.checkpoint = checkpoint
        self.listeners: List[TransitionListener] = (
            list(listeners) if listeners is not None else [logging_listener(logger)]
        )
        self.verbose = verbose
        self._sleep = sleep
        self._clients = clients
        self._completed: set = set()

        self.results: List[ScenarioResult] = []
        self.claim_results: List[ClaimResult] = []

        # Simulated claims must not retire live claims recorded by earlier runs.
        if self.checkpoint is not None and self.dry_run:
            logger.info("Dry run: checkpoint %s is neither restored nor written", self.checkpoint.path)
            self.checkpoint = None
        if self.checkpoint is not None:
            self.claims.add_listener(self.checkpoint.record_claim)

    @property
    def dry_run(self) -> bool:
        return self.executor.dry_run

    async def close(self) -> None:
        if self._clients is not None:
            await self._clients.close()

    # ------------------------------------------------------------------ #
    # Startup
    # ------------------------------------------------------------------ #

    async def prepare(self) -> None:
        """Router validation, wrapped-token discovery, checkpoint restore and the existing-claims scan."""

        try:
            self.chains.validate_against_router(await self.router.get_all_chains())
        except Exception as exc:
            logger.warning("Could not validate chains against the router: %s", exc)

        resolved = await self.tokens.resolve_all_wrapped(self.router, self.chains)
        if resolved:
            logger.info("Resolved %s wrapped token address(es) at startup", resolved)

        if self.checkpoint is not None:
            state = self.checkpoint.load()
            self._completed = set(state.completed)
            restored = 0
            for claim in state.pending_claims:
                if await self.claims.add(claim):
                    restored += 1
            if state.completed or restored:
                logger.info(
                    "Checkpoint: %s completed scenario(s), %s pending claim(s) restored",
                    len(state.completed), restored,
                )

        if self.check_existing_claims:
            try:
                self.claim_results.extend(await self.claims.check_for_existing_claims())
            except Exception as exc:
                logger.warning("Existing-claims scan failed: %s", exc, exc_info=self.verbose)

    # ------------------------------------------------------------------ #
    # Run
    # ------------------------------------------------------------------ #

    async def run(self) -> List[ScenarioResult]:
        await self.prepare()

        total = len(self.scenarios)
        for index, scenario in enumerate(self.scenarios, start=1):
            logger.info("[%s/%s] %s", index, total, scenario.name)
            result = await self.run_scenario(scenario)
            self.results.append(result)
            if self.checkpoint is not None:
                self.checkpoint.record_scenario(result, simulated=result.status == ResultStatus.SUCCESS_DRY_RUN)

            if index < total and result.status != ResultStatus.SKIPPED:
                await self._sleep(self.scenario_delay)

        await self.settle_claims()
        return self.results

    async def settle_claims(self) -> List[ClaimResult]:
        if not self.claims.pending:
            return []

        logger.info(
            "Waiting %ss for %s transfer(s) to settle before claiming",
            self.settlement_delay, len(self.claims.pending),
        )
        await self._sleep(self.settlement_delay)
        results = await self.claims.process_claims()
        self.claim_results.extend(results)
        return results

    def amount_for(self, scenario: BridgeScenario) -> Decimal:
        if scenario.amount is not None:
            return Decimal(scenario.amount)
        try:
            return self.amounts[scenario.token.upper()]
        except KeyError:
            raise ConfigurationError(f"No test amount configured for {scenario.token}") from None

    async def _check_balance(
        self,
        chain: ChainDescriptor,
        token: TokenDescriptor,
        amount: int,
        signer: ConnectedWallet,
    ) -> None:
        if token.is_native:
            balance = await signer.get_balance()
        else:
            balance = await self.bridge.erc20(token.address, chain.chain_id).get_balance(signer.address)

        logger.debug("%s balance on %s: %s (need %s)", token.symbol, chain.name, balance, amount)
        if balance < amount:
            raise InsufficientFundsError(
                f"Insufficient {token.symbol} on {chain.name}: have "
                f"{token.from_base_units(balance)}, need {token.from_base_units(amount)}",
                required=str(amount),
                available=str(balance),
                token=token.symbol,
            )

    async def _refresh_wrapped(self, scenario: BridgeScenario) -> None:
        destination = self.tokens.descriptor(scenario.token, scenario.to_chain)
        if destination is None or destination.is_resolved:
            return
        try:
            await self.tokens.resolve_wrapped(self.router, self.chains, scenario.token, scenario.to_chain)
        except Exception as exc:
            logger.warning("Wrapped %s lookup on %s failed: %s", scenario.token, scenario.to_chain, exc)

    async def _skip(self, machine: ScenarioStateMachine, reason: str) -> ScenarioResult:
        await machine.transition_to(ScenarioState.SKIPPED, reason=reason)
        return ScenarioResult(
            scenario=machine.scenario,
            status=ResultStatus.SKIPPED,
            skip_reason=reason,
            transitions=list(machine.history),
        )

    async def run_scenario(self, scenario: BridgeScenario) -> ScenarioResult:
        """Drive one scenario to a terminal state. Never raises."""

        machine = ScenarioStateMachine(scenario, listeners=self.listeners)

        if scenario_key(scenario) in self._completed:
            return await self._skip(machine, SKIP_COMPLETED)
        if not self.tokens.is_deployed(scenario.token):
            return await self._skip(machine, SKIP_NOT_DEPLOYED)

        amount_label: Optional[str] = None
        try:
            await machine.transition_to(ScenarioState.ROUTING)

            source_chain = self.chains.get(scenario.from_chain)
            source_token, _ = self.resolver.check_tokens(scenario)
            human_amount = self.amount_for(scenario)
            amount_label = str(human_amount)
            amount = source_token.to_base_units(human_amount)
            signer = self.executor.wallet_for(source_chain)

            if not self.skip_balance_check:
                await self._check_balance(source_chain, source_token, amount, signer)

            async def on_approval() -> None:
                if machine.current_state != ScenarioState.APPROVING:
                    await machine.transition_to(ScenarioState.APPROVING, reason=f"{source_token.symbol} allowance")

            route = await self.resolver.resolve_route(scenario, amount, signer, on_approval=on_approval)

            await machine.transition_to(ScenarioState.EXECUTING, context={"method": route.method.value})
            execution = await self.executor.execute(route.unsigned_tx, source_chain)

            claim_registered = False
            if not execution.simulated:
                if route.requires_claim:
                    claim = await self.claims.register_pending(scenario, execution, amount_label)
                    if claim is not None:
                        claim_registered = True
                        await machine.transition_to(
                            ScenarioState.REGISTERED_FOR_CLAIM,
                            context={"depositCount": claim.deposit_count},
                        )
                await self._refresh_wrapped(scenario)

            await machine.transition_to(ScenarioState.DONE, context={"txHash": execution.hash})
            return ScenarioResult(
                scenario=scenario,
                status=ResultStatus.SUCCESS_DRY_RUN if execution.simulated else ResultStatus.SUCCESS,
                method=route.method,
                amount=amount_label,
                tx_hash=execution.hash,
                block_number=execution.block_number,
                gas_used=execution.gas_used,
                claim_registered=claim_registered,
                transitions=list(machine.history),
            )

        except Exception as exc:
            context = classify_error(exc)
            logger.error(
                "%s failed during %s: %s",
                scenario.name, machine.current_state.value, exc,
                exc_info=self.verbose,
            )
            await machine.fail(str(exc), context={"category": context.category.value})
            return ScenarioResult(
                scenario=scenario,
                status=ResultStatus.FAILED,
                amount=amount_label,
                error=str(exc) or exc.__class__.__name__,
                error_category=context.category.value,
                transitions=list(machine.history),
            )

    def configuration(self) -> Dict[str, Any]:
        return {
            "chains": self.chains.keys,
            "slippage": self.resolver.slippage,
            "gasMultiplier": self.executor.gas_multiplier,
            "skipBalanceCheck": self.skip_balance_check,
        }


def create_orchestrator(
    config: Optional[Settings] = None,
    *,
    router: Optional[RouterProvider] = None,
    scenarios: Optional[List[BridgeScenario]] = None,
) -> ScenarioOrchestrator:
    """
    Wire every component from settings.

    Raises:
        ConfigurationError: The wallet key is missing or the chain table is inconsistent.
    """
    config = config or settings
    if not config.has_wallet_key:
        raise ConfigurationError("TEST_WALLET_PRIVATE_KEY is not set")

    try:
        wallet = Wallet(config.test_wallet_private_key)
    except Exception as exc:
        raise ConfigurationError(f"Invalid wallet private key: {exc}") from exc

    chains = ChainRegistry.from_settings(config)
    tokens = TokenRegistry.from_settings(config)
    clients = ChainClientPool(timeout_s=config.arc_api_timeout_seconds)
    router = router or ArcApiProvider(base_url=config.arc_api_base_url, timeout_s=config.arc_api_timeout_seconds)
    bridge = NativeBridgeProvider(chains, clients)

    executor = TransactionExecutor(
        wallet,
        clients,
        dry_run=config.dry_run,
        gas_multiplier=config.gas_multiplier,
        default_gas_limit=config.default_gas_limit,
        poll_interval=config.receipt_poll_interval_seconds,
    )
    approvals = ApprovalManager(bridge, dry_run=config.dry_run)
    resolver = RouteResolver(router, bridge, tokens, chains, approvals, slippage=config.slippage)
    claims = ClaimTracker(
        router,
        chains,
        executor,
        lookup_limit=config.claim_lookup_limit,
        retry_lookup_limit=config.claim_retry_lookup_limit,
        verbose=config.verbose,
    )
    checkpoint = CheckpointLog(Path(config.checkpoint_path)) if config.checkpoint_path else None

    logger.info("Wallet: %s", wallet.address)
    logger.info(
        "Mode: %s, slippage %s%%, balance checks %s",
        "DRY RUN" if config.dry_run else "LIVE",
        config.slippage,
        "disabled" if config.skip_balance_check else "enabled",
    )

    return ScenarioOrchestrator(
        chains=chains,
        tokens=tokens,
        router=router,
        bridge=bridge,
        resolver=resolver,
        executor=executor,
        claims=claims,
        amounts=config.test_amounts,
        scenarios=scenarios,
        scenario_delay=config.scenario_delay_seconds,
        settlement_delay=config.claim_settlement_delay_seconds,
        skip_balance_check=config.skip_balance_check,
        check_existing_claims=config.check_existing_claims,
        checkpoint=checkpoint,
        verbose=config.verbose,
        clients=clients,
    )
