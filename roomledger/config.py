"""
Application settings.
Read from environment variables and an optional .env file.
"""
from pydantic import ConfigDict
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings"""

    # Application
    APP_NAME: str = "roomledger"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Database
    DATABASE_URL: str = "sqlite:///./roomledger.db"

    # Concurrency control
    LOCK_TIMEOUT_SECONDS: float = 5.0
    MAX_TRANSACTION_RETRIES: int = 3

    # Identifier allocator ceiling (BIGINT max)
    ID_CEILING: int = 2 ** 63 - 1

    # Reports
    FORWARD_WINDOW_DAYS: int = 30
    LTV_TOP_N: int = 10

    # Principal recorded in the audit trail when the caller supplies none
    DEFAULT_ACTOR: str = "system"

    model_config = ConfigDict(env_file=".env", case_sensitive=True)


# Global settings instance
settings = Settings()
