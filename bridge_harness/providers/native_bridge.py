"""Bridge contract access over plain JSON-RPC."""

from __future__ import annotations

from typing import Any, Dict

from ..core.chains import ChainDescriptor, ChainRegistry
from ..core.errors import ConfigurationError
from ..core.execution import tx_builder
from .base import BridgeContract, BridgeProvider, Erc20Token
from .rpc import ChainClientPool, JsonRpcClient


class RpcErc20Token(Erc20Token):
    def __init__(self, address: str, client: JsonRpcClient) -> None:
        self.address = address
        self.chain_id = client.chain_id
        self._client = client

    async def get_balance(self, address: str) -> int:
        result = await self._client.eth_call(self.address, tx_builder.build_balance_of_call(address))
        return tx_builder.decode_uint256(result)

    async def get_allowance(self, owner: str, spender: str) -> int:
        result = await self._client.eth_call(self.address, tx_builder.build_allowance_call(owner, spender))
        return tx_builder.decode_uint256(result)

    async def build_approve(self, spender: str, amount: int, from_address: str) -> Dict[str, Any]:
        return tx_builder.build_erc20_approve(self.address, spender, amount, from_address)


class RpcBridgeContract(BridgeContract):
    def __init__(self, address: str, client: JsonRpcClient) -> None:
        self.address = address
        self.chain_id = client.chain_id
        self._client = client

    async def build_bridge_asset(
        self,
        *,
        destination_network: int,
        destination_address: str,
        amount: int,
        token: str,
        force_update_global_exit_root: bool,
        from_address: str,
    ) -> Dict[str, Any]:
        return tx_builder.build_bridge_asset(
            self.address,
            destination_network,
            destination_address,
            amount,
            token,
            force_update_global_exit_root,
            from_address,
        )

    async def is_claimed(self, leaf_index: int, source_bridge_network: int) -> bool:
        result = await self._client.eth_call(
            self.address, tx_builder.build_is_claimed_call(leaf_index, source_bridge_network)
        )
        return tx_builder.decode_bool(result)


class NativeBridgeProvider(BridgeProvider):
    """Talks to the bridge and ERC20 contracts of each configured chain directly."""

    name = "native_bridge"

    def __init__(self, chains: ChainRegistry, clients: ChainClientPool) -> None:
        self.chains = chains
        self.clients = clients

    def _chain(self, chain_id: int) -> ChainDescriptor:
        chain = self.chains.by_chain_id(chain_id)
        if chain is None:
            raise ConfigurationError(f"Chain {chain_id} is not configured")
        return chain

    def _client(self, chain_id: int) -> JsonRpcClient:
        return self.clients.client_for(self._chain(chain_id))

    def erc20(self, token_address: str, chain_id: int) -> RpcErc20Token:
        return RpcErc20Token(token_address, self._client(chain_id))

    def bridge(self, bridge_address: str, chain_id: int) -> RpcBridgeContract:
        return RpcBridgeContract(bridge_address, self._client(chain_id))

    def get_network(self, chain_id: int) -> Dict[str, Any]:
        chain = self._chain(chain_id)
        return {
            "name": chain.name,
            "chainId": chain.chain_id,
            "networkId": chain.network_id,
            "rpcUrl": chain.rpc_url,
            "bridgeAddress": chain.bridge_address,
        }

    async def get_native_balance(self, address: str, chain_id: int) -> int:
        return await self._client(chain_id).get_balance(address)
