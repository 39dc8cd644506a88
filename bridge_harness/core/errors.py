"""
Error Classification

Defines the error taxonomy for bridge scenarios and claims.
Every harness error carries a category and a structured context so that
failures can be reported without parsing message text.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional


class ErrorCategory(str, Enum):
    """Categories of errors surfaced by the harness."""

    CONFIGURATION = "configuration"         # Missing or inconsistent settings
    TOKEN_RESOLUTION = "token_resolution"   # Token address unknown on a chain
    ROUTING = "routing"                     # No route from either backend
    APPROVAL = "approval"                   # Allowance could not be granted
    MALFORMED_TX = "malformed_tx"           # Backend returned an unusable tx
    INDEXER = "indexer"                     # Deposit not yet indexed
    TRANSACTION_REVERTED = "transaction_reverted"  # On-chain revert
    INSUFFICIENT_FUNDS = "insufficient_funds"      # Not enough balance
    RPC = "rpc"                             # JSON-RPC error or transport failure
    PROVIDER = "provider"                   # Router HTTP failure
    NETWORK = "network"                     # Connectivity issues
    TIMEOUT = "timeout"                     # Operation timed out
    UNKNOWN = "unknown"                     # Unclassified error


@dataclass
class ErrorContext:
    """Additional context about an error."""

    category: ErrorCategory = ErrorCategory.UNKNOWN
    chain_id: Optional[int] = None
    tx_hash: Optional[str] = None
    suggested_action: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)


class BridgeHarnessError(Exception):
    """Base class for every error raised by the harness."""

    category: ErrorCategory = ErrorCategory.UNKNOWN

    def __init__(
        self,
        message: str,
        *,
        category: Optional[ErrorCategory] = None,
        context: Optional[ErrorContext] = None,
    ):
        super().__init__(message)
        self.message = message
        if category is not None:
            self.category = category
        self.context = context or ErrorContext(category=self.category)


class ConfigurationError(BridgeHarnessError):
    """Required configuration is missing or inconsistent."""

    category = ErrorCategory.CONFIGURATION


class TokenNotResolvedError(BridgeHarnessError):
    """The source-side token address is not known yet.

    Expected when a token is bridged *from* a chain before anything was ever
    bridged *into* it: the wrapped address only exists after the first
    inbound transfer.
    """

    category = ErrorCategory.TOKEN_RESOLUTION

    def __init__(self, token: str, chain: str, message: Optional[str] = None):
        super().__init__(
            message or f"Token {token} address not resolved on {chain}",
            context=ErrorContext(
                category=ErrorCategory.TOKEN_RESOLUTION,
                suggested_action=f"Bridge {token} into {chain} first",
                details={"token": token, "chain": chain},
            ),
        )
        self.token = token
        self.chain = chain


class NoRouteAvailableError(BridgeHarnessError):
    """Both the primary router and the direct bridge failed."""

    category = ErrorCategory.ROUTING

    def __init__(
        self,
        message: str = "No route available",
        primary_error: Optional[str] = None,
        fallback_error: Optional[str] = None,
    ):
        super().__init__(
            message,
            context=ErrorContext(
                category=ErrorCategory.ROUTING,
                details={"primary": primary_error, "fallback": fallback_error},
            ),
        )
        self.primary_error = primary_error
        self.fallback_error = fallback_error


class ApprovalFailedError(BridgeHarnessError):
    """ERC20 approval could not be built, sent or confirmed."""

    category = ErrorCategory.APPROVAL

    def __init__(
        self,
        message: str = "Approval failed",
        token_address: Optional[str] = None,
        spender: Optional[str] = None,
        chain_id: Optional[int] = None,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(
            message,
            context=ErrorContext(
                category=ErrorCategory.APPROVAL,
                chain_id=chain_id,
                details={
                    "token": token_address,
                    "spender": spender,
                    "cause": str(cause) if cause else None,
                },
            ),
        )
        self.cause = cause


class MalformedTransactionError(BridgeHarnessError):
    """A backend returned a transaction without `to` or `data`."""

    category = ErrorCategory.MALFORMED_TX

    def __init__(self, message: str = "Malformed transaction", missing: Optional[list] = None):
        super().__init__(
            message,
            context=ErrorContext(
                category=ErrorCategory.MALFORMED_TX,
                details={"missing": missing or []},
            ),
        )
        self.missing = missing or []


class DepositNotIndexedError(BridgeHarnessError):
    """The indexer has not ingested the source transaction yet."""

    category = ErrorCategory.INDEXER

    def __init__(self, tx_hash: str, message: Optional[str] = None):
        super().__init__(
            message or f"Deposit for {tx_hash} not indexed yet",
            context=ErrorContext(
                category=ErrorCategory.INDEXER,
                tx_hash=tx_hash,
                suggested_action="Re-run later; the claim will be picked up by the startup scan",
            ),
        )
        self.tx_hash = tx_hash


class TransactionRevertedError(BridgeHarnessError):
    """Transaction reverted on-chain."""

    category = ErrorCategory.TRANSACTION_REVERTED

    def __init__(
        self,
        message: str = "Transaction reverted",
        tx_hash: Optional[str] = None,
        chain_id: Optional[int] = None,
        block_number: Optional[int] = None,
    ):
        super().__init__(
            message,
            context=ErrorContext(
                category=ErrorCategory.TRANSACTION_REVERTED,
                chain_id=chain_id,
                tx_hash=tx_hash,
                suggested_action="Review transaction parameters",
                details={"block_number": block_number} if block_number is not None else {},
            ),
        )
        self.tx_hash = tx_hash
        self.block_number = block_number


class InsufficientFundsError(BridgeHarnessError):
    """Wallet has insufficient funds for the scenario."""

    category = ErrorCategory.INSUFFICIENT_FUNDS

    def __init__(
        self,
        message: str = "Insufficient funds",
        required: Optional[str] = None,
        available: Optional[str] = None,
        token: Optional[str] = None,
    ):
        super().__init__(
            message,
            context=ErrorContext(
                category=ErrorCategory.INSUFFICIENT_FUNDS,
                suggested_action="Add funds to wallet or reduce transaction amount",
                details={"required": required, "available": available, "token": token},
            ),
        )


class RpcError(BridgeHarnessError):
    """JSON-RPC call returned an error object or failed in transport."""

    category = ErrorCategory.RPC

    def __init__(
        self,
        message: str,
        method: Optional[str] = None,
        chain_id: Optional[int] = None,
        code: Optional[int] = None,
    ):
        super().__init__(
            message,
            context=ErrorContext(
                category=ErrorCategory.RPC,
                chain_id=chain_id,
                details={"method": method, "code": code},
            ),
        )
        self.method = method
        self.code = code


class RouterError(BridgeHarnessError):
    """The routing API answered with an error."""

    category = ErrorCategory.PROVIDER

    def __init__(self, message: str, status_code: Optional[int] = None, path: Optional[str] = None):
        super().__init__(
            message,
            context=ErrorContext(
                category=ErrorCategory.PROVIDER,
                details={"status_code": status_code, "path": path},
            ),
        )
        self.status_code = status_code


def classify_error(error: BaseException) -> ErrorContext:
    """
    Classify an exception and return its error context.

    Harness errors carry their own context; anything else is classified
    from its message text for reporting purposes only.
    """
    if isinstance(error, BridgeHarnessError):
        return error.context

    message = str(error).lower()

    if any(p in message for p in ("insufficient funds", "exceeds balance", "not enough")):
        return ErrorContext(
            category=ErrorCategory.INSUFFICIENT_FUNDS,
            suggested_action="Add funds to wallet",
        )

    if any(p in message for p in ("execution reverted", "revert", "out of gas")):
        return ErrorContext(
            category=ErrorCategory.TRANSACTION_REVERTED,
            suggested_action="Review transaction parameters",
        )

    if any(p in message for p in ("timeout", "timed out", "deadline")):
        return ErrorContext(category=ErrorCategory.TIMEOUT, suggested_action="Retry later")

    if any(p in message for p in ("connection", "network", "unreachable", "refused", "dns", "ssl")):
        return ErrorContext(category=ErrorCategory.NETWORK, suggested_action="Check RPC connectivity")

    return ErrorContext(category=ErrorCategory.UNKNOWN)
