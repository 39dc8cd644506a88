from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional


class Provider(ABC):
    """Base provider interface"""

    name: str
    timeout_s: int = 60


class RouterProvider(Provider):
    """Route aggregation and indexing backend (primary path, claims, token mappings)"""

    @abstractmethod
    async def get_all_chains(self) -> List[Dict[str, Any]]:
        """List chains supported by the router"""
        pass

    @abstractmethod
    async def get_token_mappings(self, token_address: str) -> List[Dict[str, Any]]:
        """Return ``{wrappedTokenNetwork, wrappedTokenAddress, ...}`` entries for a token"""
        pass

    @abstractmethod
    async def get_routes(
        self,
        *,
        from_chain_id: int,
        to_chain_id: int,
        from_token_address: str,
        to_token_address: str,
        amount: int,
        from_address: str,
        slippage: float,
    ) -> List[Dict[str, Any]]:
        """Candidate routes; each has ``steps``, optional ``transactionRequest``, ``provider``, ``isQuote``"""
        pass

    @abstractmethod
    async def get_unsigned_transaction(self, route: Dict[str, Any]) -> Dict[str, Any]:
        """Build the executable transaction for a route"""
        pass

    @abstractmethod
    async def get_claim_unsigned_transaction(self, source_network_id: int, deposit_count: int) -> Dict[str, Any]:
        """Build the destination-chain claim transaction for a deposit"""
        pass

    @abstractmethod
    async def get_transactions(
        self,
        *,
        address: Optional[str] = None,
        limit: int = 50,
        sort: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Indexed bridge transactions: ``{"transactions": [...]}``"""
        pass


class Erc20Token(ABC):
    """ERC20 contract handle on one chain"""

    address: str
    chain_id: int

    @abstractmethod
    async def get_balance(self, address: str) -> int:
        pass

    @abstractmethod
    async def get_allowance(self, owner: str, spender: str) -> int:
        pass

    @abstractmethod
    async def build_approve(self, spender: str, amount: int, from_address: str) -> Dict[str, Any]:
        pass


class BridgeContract(ABC):
    """Bridge contract handle on one chain"""

    address: str
    chain_id: int

    @abstractmethod
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
        pass

    @abstractmethod
    async def is_claimed(self, leaf_index: int, source_bridge_network: int) -> bool:
        pass


class BridgeProvider(Provider):
    """Direct bridge contract access (fallback path, approvals, balances)"""

    @abstractmethod
    def erc20(self, token_address: str, chain_id: int) -> Erc20Token:
        pass

    @abstractmethod
    def bridge(self, bridge_address: str, chain_id: int) -> BridgeContract:
        pass

    @abstractmethod
    def get_network(self, chain_id: int) -> Dict[str, Any]:
        """Network info: ``rpcUrl``, ``networkId``, ``bridgeAddress``"""
        pass

    @abstractmethod
    async def get_native_balance(self, address: str, chain_id: int) -> int:
        pass
