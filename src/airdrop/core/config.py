"""
Merkle Airdrop Distributor - Configuration
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
    )

    # Application
    APP_NAME: str = "Merkle Airdrop Distributor"
    VERSION: str = "1.0.0"
    ENV: str = "development"
    DEBUG: bool = False

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8083
    WORKERS: int = 1
    LOG_LEVEL: str = "INFO"

    # Artifacts
    TREE_PATH: str = "tree.json"
    PROOFS_PATH: str = "proofs.json"

    # Distributor
    OWNER_ADDRESS: str = "0x5B38Da6a701c568545dCfcB03FcB875f56beddC4"
    DISTRIBUTOR_ADDRESS: str = "0xd9145CCE52D386f254917e481eB44e9943F39138"
    TOKEN_ADDRESS: str = "0xd8b934580fcE35a11B58C6D73aDeE468a2833fa8"
    ELIGIBILITY_ADDRESS: str = "0xBC4CA0EdA7647A8aB7C2061c2E118A18a936f13D"
    INITIAL_RESERVE: int = Field(default=0, ge=0)
    RESERVE_FLOOR: int = Field(default=0, ge=0)
    # Holders credited with one eligibility token each by the local registry
    ELIGIBLE_HOLDERS: list[str] = Field(default_factory=list)

    # State store
    STATE_BACKEND: Literal["memory", "database"] = "memory"
    DATABASE_URL: str = "postgresql+asyncpg://airdrop:@localhost:5432/airdrop"
    DB_POOL_SIZE: int = 5
    DB_POOL_MAX_OVERFLOW: int = 10

    # Metrics
    METRICS_ENABLED: bool = True


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
