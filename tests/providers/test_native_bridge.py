"""
Tests for bridge and ERC20 contract access over JSON-RPC.
"""

import httpx
import pytest

from bridge_harness.core.errors import ConfigurationError
from bridge_harness.core.execution.tx_builder import ERC20_APPROVE_SELECTOR, build_is_claimed_call
from bridge_harness.providers.native_bridge import NativeBridgeProvider
from bridge_harness.providers.rpc import ChainClientPool, JsonRpcClient


TOKEN = "0x2260FAC5E5542a773Aa44fBCfeDf7C193bc2C599"
OWNER = "0x19E7E376E7C213B7E7e7e46cc70A5dD086DAff2A"


class StubPool(ChainClientPool):
    """Pool whose clients all talk to one mocked endpoint."""

    def __init__(self, transport: httpx.MockTransport) -> None:
        super().__init__()
        self._transport = transport

    def client_for(self, chain):
        if chain.chain_id not in self._clients:
            self._clients[chain.chain_id] = JsonRpcClient(
                chain.rpc_url, chain.chain_id, client=httpx.AsyncClient(transport=self._transport)
            )
        return self._clients[chain.chain_id]


@pytest.mark.asyncio
async def test_erc20_balance_and_allowance(chains, fakes):
    calls = []
    pool = StubPool(fakes.rpc_transport({"eth_call": "0x" + format(12345, "064x")}, calls))
    provider = NativeBridgeProvider(chains, pool)

    token = provider.erc20(TOKEN, 1)
    assert await token.get_balance(OWNER) == 12345
    assert await token.get_allowance(OWNER, fakes.ROUTER_SPENDER) == 12345

    assert calls[0]["params"][0]["to"] == TOKEN
    assert calls[0]["params"][0]["data"].startswith("0x70a08231")
    assert calls[1]["params"][0]["data"].startswith("0xdd62ed3e")
    await pool.close()


@pytest.mark.asyncio
async def test_build_approve_is_local(chains, fakes):
    calls = []
    pool = StubPool(fakes.rpc_transport({}, calls))
    provider = NativeBridgeProvider(chains, pool)

    tx = await provider.erc20(TOKEN, 1).build_approve(fakes.ROUTER_SPENDER, 10, OWNER)

    assert tx["data"].startswith(ERC20_APPROVE_SELECTOR)
    assert calls == []
    await pool.close()


@pytest.mark.asyncio
async def test_is_claimed(chains, fakes):
    calls = []
    pool = StubPool(fakes.rpc_transport({"eth_call": "0x" + format(1, "064x")}, calls))
    provider = NativeBridgeProvider(chains, pool)
    katana = chains.get("katana")

    contract = provider.bridge(katana.bridge_address, katana.chain_id)
    assert await contract.is_claimed(4321, 0) is True
    assert calls[0]["params"][0]["data"] == build_is_claimed_call(4321, 0)
    await pool.close()


@pytest.mark.asyncio
async def test_bridge_asset_uses_contract_address(chains):
    provider = NativeBridgeProvider(chains, ChainClientPool())
    katana = chains.get("katana")

    tx = await provider.bridge(katana.bridge_address, katana.chain_id).build_bridge_asset(
        destination_network=0,
        destination_address=OWNER,
        amount=10**16,
        token="0x0000000000000000000000000000000000000000",
        force_update_global_exit_root=True,
        from_address=OWNER,
    )

    assert tx["to"] == katana.bridge_address
    assert tx["value"] == hex(10**16)
    await provider.clients.close()


def test_network_info(chains):
    provider = NativeBridgeProvider(chains, ChainClientPool())
    info = provider.get_network(747474)

    assert info["networkId"] == 20
    assert info["bridgeAddress"] == chains.get("katana").bridge_address


def test_unknown_chain(chains):
    provider = NativeBridgeProvider(chains, ChainClientPool())
    with pytest.raises(ConfigurationError):
        provider.erc20(TOKEN, 999)
