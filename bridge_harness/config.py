import os

from decimal import Decimal
from pathlib import Path
from typing import Any, Dict

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


BASE_DIR = Path(__file__).resolve().parents[1]

DEFAULT_BRIDGE_ADDRESS = "0x2a3DD3EB832aF982ec71669E178424b10Dca2EDe"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=BASE_DIR / ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    def model_post_init(self, __context: Any) -> None:
        """Pick up the legacy ``DEBUG`` switch for verbose diagnostics."""

        super().model_post_init(__context)

        if not self.verbose and os.getenv("DEBUG"):
            object.__setattr__(self, "verbose", True)

    # Wallet
    test_wallet_private_key: str = Field(default="", description="Private key of the test wallet")

    # Chain endpoints
    ethereum_rpc: str = Field(default="https://mainnet.gateway.tenderly.co", description="Ethereum RPC URL")
    base_rpc: str = Field(default="https://base.gateway.tenderly.co", description="Base RPC URL")
    katana_rpc: str = Field(default="https://katana.gateway.tenderly.co", description="Katana RPC URL")
    okx_rpc: str = Field(default="https://rpc.xlayer.tech", description="OKX X Layer RPC URL")

    # Bridge contracts (Base routes through the Core API only)
    ethereum_bridge_address: str = Field(default=DEFAULT_BRIDGE_ADDRESS, description="Ethereum bridge contract")
    katana_bridge_address: str = Field(default=DEFAULT_BRIDGE_ADDRESS, description="Katana bridge contract")
    okx_bridge_address: str = Field(default=DEFAULT_BRIDGE_ADDRESS, description="OKX bridge contract")

    # Router (Agglayer Core API)
    arc_api_base_url: str = Field(
        default="https://arc-api.polygon.technology",
        description="Base URL of the routing API",
    )
    arc_api_timeout_seconds: int = Field(default=60, description="Routing API timeout")

    # Execution
    dry_run: bool = Field(default=False, description="Simulate every transaction submission")
    slippage: float = Field(default=0.5, description="Slippage tolerance in percent")
    gas_multiplier: float = Field(default=1.2, ge=1.0, description="Safety multiplier applied to gas limits")
    default_gas_limit: int = Field(default=800_000, description="Gas limit used when estimation fails")
    skip_balance_check: bool = Field(default=False, description="Skip the pre-route balance check")
    receipt_poll_interval_seconds: float = Field(default=2.0, description="Receipt polling interval")

    # Test amounts (human units)
    test_eth_amount: Decimal = Field(default=Decimal("0.01"), description="ETH amount per scenario")
    test_wbtc_amount: Decimal = Field(default=Decimal("0.001"), description="WBTC amount per scenario")
    test_okb_amount: Decimal = Field(default=Decimal("1"), description="OKB amount per scenario")
    test_custom_amount: Decimal = Field(
        default=Decimal("100"),
        description="ASTEST amount per scenario",
        validation_alias=AliasChoices("test_custom_amount", "test_astest_amount"),
    )

    # Custom token
    custom_token_katana: str = Field(default="", description="ASTEST deployment on Katana")

    # Pacing
    scenario_delay_seconds: float = Field(default=3.0, ge=0, description="Delay between scenarios")
    claim_settlement_delay_seconds: float = Field(
        default=180.0,
        ge=0,
        description="Delay before claiming on the destination chain",
    )

    # Claims
    check_existing_claims: bool = Field(default=True, description="Scan for unclaimed transfers at startup")
    claim_lookup_limit: int = Field(default=50, ge=1, description="Indexer window at registration time")
    claim_retry_lookup_limit: int = Field(default=200, ge=1, description="Indexer window at claim time")

    # Output
    results_dir: Path = Field(default=BASE_DIR / "test-results", description="Directory for run reports")
    deployments_dir: Path = Field(default=BASE_DIR / "deployments", description="Directory for deployment records")
    checkpoint_path: str = Field(default="", description="Append-only checkpoint log (disabled when empty)")

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    verbose: bool = Field(default=False, description="Verbose diagnostics with stack traces")

    @property
    def has_wallet_key(self) -> bool:
        return bool(self.test_wallet_private_key)

    @property
    def test_amounts(self) -> Dict[str, Decimal]:
        return {
            "ETH": self.test_eth_amount,
            "WBTC": self.test_wbtc_amount,
            "OKB": self.test_okb_amount,
            "ASTEST": self.test_custom_amount,
        }


# Global settings instance
settings = Settings()
