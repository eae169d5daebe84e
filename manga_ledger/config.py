"""Application configuration and environment settings"""
from functools import lru_cache
from typing import Optional
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class RpcSettings(BaseModel):
    """Token ledger JSON-RPC settings"""
    url: str = Field(..., description="Ethereum JSON-RPC endpoint")
    token_contract: str = Field(..., description="ERC-1155 contract address")
    timeout: float = Field(..., description="Per-request timeout in seconds")


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""
    # Required settings
    OWNER_ADDRESS: str = Field(..., description="Address allowed to administer the ledger")
    PLATFORM_ADDRESS: str = Field(..., description="Platform operator address allowed to record activity")

    # Persistence
    DATABASE_URL: str = Field("sqlite:///manga_ledger.db", description="SQLAlchemy connection URL")

    # Token ledger
    RPC_URL: Optional[str] = Field(None, description="Ethereum JSON-RPC endpoint")
    TOKEN_CONTRACT: Optional[str] = Field(None, description="ERC-1155 contract holding chapter tokens")
    RPC_TIMEOUT: float = Field(10.0, description="Per-request RPC timeout in seconds")

    # Rollup settings
    ROLLUP_TIME_BUDGET: Optional[float] = Field(None, description="Max seconds a rollup may spend reading balances")
    PERIOD: Optional[int] = Field(None, description="Explicit YYYYMM period to roll up")

    # Input/Output directories with defaults
    INPUT_DIR: str = Field("/input", description="Directory containing journal files")
    OUTPUT_DIR: str = Field("/output", description="Directory for output files")

    LOG_LEVEL: str = Field("INFO", description="Root logging level")

    @property
    def rpc_settings(self) -> Optional[RpcSettings]:
        """Get RPC settings as a separate model, or None when RPC is not configured"""
        if not self.RPC_URL or not self.TOKEN_CONTRACT:
            return None
        return RpcSettings(
            url=self.RPC_URL,
            token_contract=self.TOKEN_CONTRACT,
            timeout=self.RPC_TIMEOUT
        )

    model_config = SettingsConfigDict(
        env_file='.env',
        env_file_encoding='utf-8',
        case_sensitive=True
    )


@lru_cache()
def get_settings() -> Settings:
    return Settings()
