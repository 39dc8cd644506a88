"""
Route resolution with router-to-bridge fallback.

The routing API is tried first. Any failure there (no routes, a route without
an executable structure, transport or HTTP errors) falls back to building a
``bridgeAsset`` call against the source chain's bridge contract. The fallback
only swaps the backend: a token that neither backend supports stays
unsupported, and both require the token to exist on the source chain.
"""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple

from ..chains import ChainDescriptor, ChainRegistry
from ..errors import ApprovalFailedError, NoRouteAvailableError, TokenNotResolvedError
from ..execution.approvals import ApprovalManager
from ..execution.wallet import ConnectedWallet
from ..tokens import NATIVE_TOKEN_ADDRESS, TokenDescriptor, TokenRegistry
from .models import BridgeScenario, FallbackRoute, PrimaryRoute, RouteOutcome, RouteUnavailable
from ...providers.base import BridgeProvider, RouterProvider


logger = logging.getLogger(__name__)

ApprovalHook = Callable[[], Awaitable[None]]


class _UnusableRoute(Exception):
    """The router answered, but with nothing we can execute."""


def _approval_address(route: Dict[str, Any]) -> Optional[str]:
    steps = route.get("steps") or []
    if not steps:
        return None
    estimate = steps[0].get("estimate") or {}
    return estimate.get("approvalAddress") or None


def _is_usable(route: Dict[str, Any]) -> bool:
    return bool(route.get("steps")) or bool(route.get("transactionRequest"))


def _pick_route(routes: list) -> Dict[str, Any]:
    usable = [route for route in routes if isinstance(route, dict) and _is_usable(route)]
    if not usable:
        raise _UnusableRoute(f"Router returned {len(routes)} route(s) without steps or transactionRequest")
    executable = [route for route in usable if not route.get("isQuote")]
    return (executable or usable)[0]


class RouteResolver:
    """Produces the unsigned transfer transaction for a scenario."""

    def __init__(
        self,
        router: RouterProvider,
        bridge: BridgeProvider,
        tokens: TokenRegistry,
        chains: ChainRegistry,
        approvals: ApprovalManager,
        *,
        slippage: float = 0.5,
    ) -> None:
        self.router = router
        self.bridge = bridge
        self.tokens = tokens
        self.chains = chains
        self.approvals = approvals
        self.slippage = slippage

    def check_tokens(self, scenario: BridgeScenario) -> Tuple[TokenDescriptor, TokenDescriptor]:
        """
        Return the (source, destination) descriptors for ``scenario``.

        Raises:
            TokenNotResolvedError: The token is not configured on either chain,
                or its source-side address is still unknown.
        """
        source = self.tokens.descriptor(scenario.token, scenario.from_chain)
        if source is None:
            raise TokenNotResolvedError(
                scenario.token,
                scenario.from_chain,
                f"Token {scenario.token} is not configured on {scenario.from_chain}",
            )
        destination = self.tokens.descriptor(scenario.token, scenario.to_chain)
        if destination is None:
            raise TokenNotResolvedError(
                scenario.token,
                scenario.to_chain,
                f"Token {scenario.token} is not configured on {scenario.to_chain}",
            )
        if not source.is_resolved:
            raise TokenNotResolvedError(
                scenario.token,
                scenario.from_chain,
                f"Token {scenario.token} has no known address on {scenario.from_chain}; "
                f"bridge it into {scenario.from_chain} first",
            )
        return source, destination

    def _destination_token_address(self, scenario: BridgeScenario, destination: TokenDescriptor) -> str:
        if destination.is_native:
            return NATIVE_TOKEN_ADDRESS
        if destination.address:
            return destination.address
        # The router reads the zero address as "native", not as "create a wrapped token".
        logger.warning(
            "%s has no known address on %s; sending the native placeholder to the router",
            scenario.token, scenario.to_chain,
        )
        return NATIVE_TOKEN_ADDRESS

    async def resolve(
        self,
        scenario: BridgeScenario,
        amount: int,
        signer: ConnectedWallet,
        *,
        on_approval: Optional[ApprovalHook] = None,
    ) -> RouteOutcome:
        """
        Resolve ``scenario`` into a route outcome.

        ``amount`` is in base units; ``signer`` is the wallet bound to the
        source chain and also receives the funds on the destination chain.
        Backend failures become :class:`RouteUnavailable`; token pre-check
        and approval failures raise.
        """
        source_token, destination_token = self.check_tokens(scenario)
        from_chain = self.chains.get(scenario.from_chain)
        to_chain = self.chains.get(scenario.to_chain)

        try:
            return await self._primary(
                scenario, amount, signer, from_chain, to_chain, source_token, destination_token, on_approval
            )
        except ApprovalFailedError:
            raise
        except Exception as exc:
            primary_error = str(exc) or exc.__class__.__name__
            logger.warning("Primary route failed for %s, trying bridge contract: %s", scenario.name, primary_error)

        try:
            return await self._fallback(
                scenario, amount, signer, from_chain, to_chain, source_token, primary_error, on_approval
            )
        except ApprovalFailedError:
            raise
        except Exception as exc:
            fallback_error = str(exc) or exc.__class__.__name__
            logger.error("Bridge contract fallback failed for %s: %s", scenario.name, fallback_error)
            return RouteUnavailable(
                reason=f"No route for {scenario.name}: primary: {primary_error}; fallback: {fallback_error}",
                primary_error=primary_error,
                fallback_error=fallback_error,
            )

    async def resolve_route(
        self,
        scenario: BridgeScenario,
        amount: int,
        signer: ConnectedWallet,
        *,
        on_approval: Optional[ApprovalHook] = None,
    ) -> PrimaryRoute | FallbackRoute:
        """Like :meth:`resolve`, but raises :class:`NoRouteAvailableError` instead of returning it."""

        outcome = await self.resolve(scenario, amount, signer, on_approval=on_approval)
        if isinstance(outcome, RouteUnavailable):
            raise NoRouteAvailableError(
                outcome.reason,
                primary_error=outcome.primary_error,
                fallback_error=outcome.fallback_error,
            )
        return outcome

    async def _approve(
        self,
        chain: ChainDescriptor,
        token: TokenDescriptor,
        spender: str,
        amount: int,
        signer: ConnectedWallet,
        on_approval: Optional[ApprovalHook],
    ) -> None:
        if token.is_native:
            return
        if on_approval is not None:
            await on_approval()
        await self.approvals.ensure_approval(chain, token.address, spender, amount, signer)

    async def _primary(
        self,
        scenario: BridgeScenario,
        amount: int,
        signer: ConnectedWallet,
        from_chain: ChainDescriptor,
        to_chain: ChainDescriptor,
        source_token: TokenDescriptor,
        destination_token: TokenDescriptor,
        on_approval: Optional[ApprovalHook],
    ) -> PrimaryRoute:
        routes = await self.router.get_routes(
            from_chain_id=from_chain.chain_id,
            to_chain_id=to_chain.chain_id,
            from_token_address=source_token.address,
            to_token_address=self._destination_token_address(scenario, destination_token),
            amount=amount,
            from_address=signer.address,
            slippage=self.slippage,
        )
        if not routes:
            raise _UnusableRoute("Router returned no routes")

        route = _pick_route(routes)
        approval_target = _approval_address(route) or from_chain.bridge_address
        if not source_token.is_native:
            if not approval_target:
                raise _UnusableRoute(f"Route has no approval address and {from_chain.name} has no bridge contract")
            await self._approve(from_chain, source_token, approval_target, amount, signer, on_approval)

        unsigned_tx = route.get("transactionRequest") or await self.router.get_unsigned_transaction(route)
        if not unsigned_tx:
            raise _UnusableRoute("Router returned an empty transaction")

        logger.info("Primary route found for %s (provider %s)", scenario.name, route.get("provider"))
        return PrimaryRoute(unsigned_tx=dict(unsigned_tx), route=route, approval_target=approval_target)

    async def _fallback(
        self,
        scenario: BridgeScenario,
        amount: int,
        signer: ConnectedWallet,
        from_chain: ChainDescriptor,
        to_chain: ChainDescriptor,
        source_token: TokenDescriptor,
        primary_error: str,
        on_approval: Optional[ApprovalHook],
    ) -> FallbackRoute:
        if not from_chain.bridge_address:
            raise _UnusableRoute(f"{from_chain.name} has no bridge contract configured")

        await self._approve(from_chain, source_token, from_chain.bridge_address, amount, signer, on_approval)

        contract = self.bridge.bridge(from_chain.bridge_address, from_chain.chain_id)
        unsigned_tx = await contract.build_bridge_asset(
            destination_network=to_chain.network_id,
            destination_address=signer.address,
            amount=amount,
            token=source_token.address,
            force_update_global_exit_root=True,
            from_address=signer.address,
        )
        logger.info("Built bridgeAsset call for %s via %s", scenario.name, from_chain.bridge_address)
        return FallbackRoute(
            unsigned_tx=dict(unsigned_tx),
            primary_error=primary_error,
            approval_target=from_chain.bridge_address,
        )
