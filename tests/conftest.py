"""
Shared fixtures: in-memory router and bridge backends, a scripted signer and
an executor stand-in, so scenario flows can run without any network.
"""

import json
from types import SimpleNamespace
from typing import Any, Callable, Dict, List, Optional, Tuple

import httpx
import pytest

from bridge_harness.config import Settings
from bridge_harness.core.chains import ChainRegistry, default_chains
from bridge_harness.core.execution import tx_builder
from bridge_harness.core.execution.models import ExecutionResult, TransactionReceipt
from bridge_harness.core.execution.normalizer import normalize_transaction
from bridge_harness.core.tokens import TokenRegistry, default_tokens
from bridge_harness.providers.base import BridgeContract, BridgeProvider, Erc20Token, RouterProvider


TEST_PRIVATE_KEY = "0x" + "11" * 32
WALLET_ADDRESS = "0x19E7E376E7C213B7E7e7e46cc70A5dD086DAff2A"
KATANA_WBTC = "0x0913DA6Da4b42f538B445599b46Bb4622342Cf52"
ROUTER_SPENDER = "0x1111111111111111111111111111111111111111"
CLAIM_CONTRACT = "0x2a3DD3EB832aF982ec71669E178424b10Dca2EDe"


# =============================================================================
# Backends
# =============================================================================

class FakeRouter(RouterProvider):
    """Scripted routing API."""

    name = "fake_router"

    def __init__(
        self,
        routes: Optional[List[Dict[str, Any]]] = None,
        *,
        routes_for: Optional[Callable[[Dict[str, Any]], List[Dict[str, Any]]]] = None,
        route_error: Optional[Exception] = None,
        transactions: Optional[List[Dict[str, Any]]] = None,
        mappings: Optional[Dict[str, List[Dict[str, Any]]]] = None,
        chains: Optional[List[Dict[str, Any]]] = None,
    ) -> None:
        self.routes = routes if routes is not None else []
        self.routes_for = routes_for
        self.route_error = route_error
        self.transactions = list(transactions or [])
        self.mappings = {k.lower(): v for k, v in (mappings or {}).items()}
        self.chains = chains or []
        self.claim_errors: Dict[int, Exception] = {}
        self.route_requests: List[Dict[str, Any]] = []
        self.built_routes: List[Dict[str, Any]] = []
        self.claim_requests: List[Tuple[int, int]] = []
        self.transaction_limits: List[int] = []

    async def get_all_chains(self):
        return self.chains

    async def get_token_mappings(self, token_address):
        return self.mappings.get(token_address.lower(), [])

    async def get_routes(self, **kwargs):
        self.route_requests.append(kwargs)
        if self.route_error is not None:
            raise self.route_error
        if self.routes_for is not None:
            return self.routes_for(kwargs)
        return self.routes

    async def get_unsigned_transaction(self, route):
        self.built_routes.append(route)
        return dict(route.get("built") or {})

    async def get_claim_unsigned_transaction(self, source_network_id, deposit_count):
        self.claim_requests.append((source_network_id, deposit_count))
        error = self.claim_errors.get(deposit_count)
        if error is not None:
            raise error
        return {"to": CLAIM_CONTRACT, "data": "0xccaa" + format(deposit_count, "064x"), "value": "0"}

    async def get_transactions(self, *, address=None, limit=50, sort=None):
        self.transaction_limits.append(limit)
        return {"transactions": self.transactions[:limit]}


class FakeErc20(Erc20Token):
    def __init__(self, address: str, chain_id: int, balance: int) -> None:
        self.address = address
        self.chain_id = chain_id
        self.balance = balance
        self.allowance = 0
        self.allowance_error: Optional[Exception] = None
        self.approve_requests: List[Tuple[str, int]] = []

    async def get_balance(self, address):
        return self.balance

    async def get_allowance(self, owner, spender):
        if self.allowance_error is not None:
            raise self.allowance_error
        return self.allowance

    async def build_approve(self, spender, amount, from_address):
        self.approve_requests.append((spender, amount))
        return tx_builder.build_erc20_approve(self.address, spender, amount, from_address)


class FakeBridgeContract(BridgeContract):
    def __init__(self, address: str, chain_id: int, claimed: bool) -> None:
        self.address = address
        self.chain_id = chain_id
        self.claimed = claimed
        self.built: List[Dict[str, Any]] = []
        self.claim_checks: List[Tuple[int, int]] = []

    async def build_bridge_asset(self, **kwargs):
        self.built.append(kwargs)
        return tx_builder.build_bridge_asset(
            self.address,
            kwargs["destination_network"],
            kwargs["destination_address"],
            kwargs["amount"],
            kwargs["token"],
            kwargs["force_update_global_exit_root"],
            kwargs["from_address"],
        )

    async def is_claimed(self, leaf_index, source_bridge_network):
        self.claim_checks.append((leaf_index, source_bridge_network))
        return self.claimed


class FakeBridge(BridgeProvider):
    """Token and bridge contracts backed by dictionaries."""

    name = "fake_bridge"

    def __init__(self, *, token_balance: int = 10**30, native_balance: int = 10**30, claimed: bool = False) -> None:
        self.token_balance = token_balance
        self.native_balance = native_balance
        self.claimed = claimed
        self.tokens: Dict[Tuple[str, int], FakeErc20] = {}
        self.contracts: Dict[Tuple[str, int], FakeBridgeContract] = {}

    def erc20(self, token_address, chain_id):
        key = (token_address.lower(), chain_id)
        if key not in self.tokens:
            self.tokens[key] = FakeErc20(token_address, chain_id, self.token_balance)
        return self.tokens[key]

    def bridge(self, bridge_address, chain_id):
        key = (bridge_address.lower(), chain_id)
        if key not in self.contracts:
            self.contracts[key] = FakeBridgeContract(bridge_address, chain_id, self.claimed)
        return self.contracts[key]

    def get_network(self, chain_id):
        return {"chainId": chain_id}

    async def get_native_balance(self, address, chain_id):
        return self.native_balance

    @property
    def approve_requests(self) -> List[Tuple[str, int]]:
        return [request for token in self.tokens.values() for request in token.approve_requests]

    @property
    def bridge_asset_calls(self) -> List[Dict[str, Any]]:
        return [call for contract in self.contracts.values() for call in contract.built]


# =============================================================================
# Signing
# =============================================================================

class FakeSent:
    def __init__(self, tx_hash: str, block_number: int, error: Optional[Exception] = None) -> None:
        self.hash = tx_hash
        self._block_number = block_number
        self._error = error

    async def wait(self, confirmations=1, timeout=None):
        if self._error is not None:
            raise self._error
        return TransactionReceipt(tx_hash=self.hash, block_number=self._block_number, gas_used=21000)


class FakeSigner:
    """Connected-wallet stand-in that records what it is asked to send."""

    def __init__(self, chain_id: int = 1, *, address: str = WALLET_ADDRESS, balance: int = 10**30) -> None:
        self.address = address
        self.chain_id = chain_id
        self.balance = balance
        self.gas_estimate = 100_000
        self.estimate_error: Optional[Exception] = None
        self.send_error: Optional[Exception] = None
        self.wait_error: Optional[Exception] = None
        self.sent: List[Dict[str, Any]] = []
        self.estimated: List[Dict[str, Any]] = []

    async def get_balance(self):
        return self.balance

    async def estimate_gas(self, tx):
        self.estimated.append(dict(tx))
        if self.estimate_error is not None:
            raise self.estimate_error
        return self.gas_estimate

    async def send_transaction(self, tx):
        if self.send_error is not None:
            raise self.send_error
        self.sent.append(dict(tx))
        return FakeSent(f"0x{0xabc000 + len(self.sent):064x}", 1000 + len(self.sent), self.wait_error)


class FakeExecutor:
    """Executor stand-in: normalizes, records and returns deterministic hashes."""

    def __init__(self, *, dry_run: bool = False, address: str = WALLET_ADDRESS) -> None:
        self.dry_run = dry_run
        self.gas_multiplier = 1.2
        self.wallet = SimpleNamespace(address=address)
        self.executed: List[Tuple[Dict[str, Any], Any]] = []
        self.signers: Dict[str, FakeSigner] = {}
        self.errors: List[Optional[Exception]] = []

    def wallet_for(self, chain):
        if chain.key not in self.signers:
            self.signers[chain.key] = FakeSigner(chain.chain_id, address=self.wallet.address)
        return self.signers[chain.key]

    async def execute(self, unsigned_tx, source_chain):
        tx = normalize_transaction(unsigned_tx, source_chain.chain_id)
        self.executed.append((tx, source_chain))
        if self.errors:
            error = self.errors.pop(0)
            if error is not None:
                raise error
        number = len(self.executed)
        if self.dry_run:
            return ExecutionResult(hash=f"0x{number:064x}", simulated=True, chain_id=source_chain.chain_id)
        return ExecutionResult(
            hash=f"0x{number:064x}",
            block_number=500 + number,
            gas_used=60_000,
            chain_id=source_chain.chain_id,
        )


def tx_hash(number: int) -> str:
    """Hash FakeExecutor assigns to its ``number``-th execution."""
    return f"0x{number:064x}"


def rpc_transport(results: Dict[str, Any], calls: Optional[List[Dict[str, Any]]] = None) -> httpx.MockTransport:
    """JSON-RPC endpoint answering from ``results`` (method -> result, or callable(params))."""

    def handler(request: httpx.Request) -> httpx.Response:
        payload = json.loads(request.content)
        if calls is not None:
            calls.append(payload)
        method = payload["method"]
        if method not in results:
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": payload["id"], "error": {"code": -32601, "message": f"{method} not found"}})
        result = results[method]
        if callable(result):
            result = result(payload["params"])
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": payload["id"], "result": result})

    return httpx.MockTransport(handler)


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def config() -> Settings:
    """Settings isolated from any local .env file."""
    return Settings(_env_file=None, test_wallet_private_key=TEST_PRIVATE_KEY)


@pytest.fixture
def chains(config: Settings) -> ChainRegistry:
    return ChainRegistry(default_chains(config))


@pytest.fixture
def tokens(config: Settings) -> TokenRegistry:
    return TokenRegistry(default_tokens(config))


@pytest.fixture
def router() -> FakeRouter:
    return FakeRouter()


@pytest.fixture
def bridge() -> FakeBridge:
    return FakeBridge()


@pytest.fixture
def fake_executor() -> FakeExecutor:
    return FakeExecutor()


@pytest.fixture
def fakes() -> SimpleNamespace:
    """Fake classes and constants for tests that build their own instances."""
    return SimpleNamespace(
        FakeRouter=FakeRouter,
        FakeBridge=FakeBridge,
        FakeSigner=FakeSigner,
        FakeExecutor=FakeExecutor,
        tx_hash=tx_hash,
        rpc_transport=rpc_transport,
        TEST_PRIVATE_KEY=TEST_PRIVATE_KEY,
        WALLET_ADDRESS=WALLET_ADDRESS,
        KATANA_WBTC=KATANA_WBTC,
        ROUTER_SPENDER=ROUTER_SPENDER,
        CLAIM_CONTRACT=CLAIM_CONTRACT,
    )
