"""Application configuration using pydantic-settings."""

from decimal import Decimal
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ======================
    # Telegram
    # ======================
    telegram_bot_token: str = Field(default="", description="Telegram bot token from BotFather")

    # ======================
    # Environment
    # ======================
    environment: str = Field(default="development", description="Runtime environment")
    debug: bool = Field(default=False, description="Enable debug logging")

    # ======================
    # Solana RPC
    # ======================
    sol_rpc_url: str = Field(
        default="https://api.devnet.solana.com", description="Solana JSON-RPC URL"
    )
    sol_cluster: str = Field(default="devnet", description="Cluster name for explorer links")
    rpc_timeout: float = Field(default=15.0, description="Timeout for a single RPC call (seconds)")
    confirm_timeout: float = Field(
        default=30.0, description="How long to wait for a transaction to confirm (seconds)"
    )
    confirm_poll_interval: float = Field(
        default=1.0, description="Delay between signature status polls (seconds)"
    )

    # ======================
    # Session timing
    # ======================
    reveal_delay_seconds: float = Field(
        default=30.0, description="Private key message is deleted after this many seconds"
    )
    proposal_max_age_seconds: float = Field(
        default=300.0, description="Unconfirmed transfers older than this are dropped"
    )
    sweep_interval_seconds: float = Field(
        default=60.0, description="How often expired transfers are swept"
    )
    lock_timeout: float = Field(
        default=30.0, description="Maximum wait for a per-user lock (seconds)"
    )

    # ======================
    # Wallet features
    # ======================
    airdrop_amount: Decimal = Field(default=Decimal("5"), description="SOL requested per airdrop")
    history_limit: int = Field(default=10, description="Transactions shown in history")

    def explorer_tx_url(self, signature: str) -> str:
        """Solana Explorer link for a transaction signature."""
        url = f"https://explorer.solana.com/tx/{signature}"
        if self.sol_cluster and self.sol_cluster != "mainnet-beta":
            url += f"?cluster={self.sol_cluster}"
        return url

    def get_safe_dict(self) -> dict:
        """Return settings dict with secrets redacted."""
        return {
            "environment": self.environment,
            "debug": self.debug,
            "telegram_bot_token": "***" if self.telegram_bot_token else "(not set)",
            "solana": {
                "rpc": self.sol_rpc_url,
                "cluster": self.sol_cluster,
                "rpc_timeout": self.rpc_timeout,
                "confirm_timeout": self.confirm_timeout,
            },
            "session": {
                "reveal_delay": self.reveal_delay_seconds,
                "proposal_max_age": self.proposal_max_age_seconds,
                "sweep_interval": self.sweep_interval_seconds,
                "lock_timeout": self.lock_timeout,
            },
            "airdrop_amount": str(self.airdrop_amount),
            "history_limit": self.history_limit,
        }


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
