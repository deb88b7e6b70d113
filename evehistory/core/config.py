"""Application configuration using Pydantic Settings"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator
from typing import Optional


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Database (history record storage)
    DATABASE_URL: str = "sqlite:///./data/history.db"

    # Application
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    LOG_DIR: Optional[str] = None  # Defaults to ./data/logs

    # History store
    HISTORY_MAX_ENTRIES: int = 16384  # 0 = unbounded

    # Eve history protocol
    EVE_LEAK_TEST_RESET_SECONDS: int = 5  # Simulated leak test duration
    EVE_DIAGNOSTIC_LOG_SIZE: int = 100  # Protocol diagnostics ring size

    @field_validator('HISTORY_MAX_ENTRIES', 'EVE_LEAK_TEST_RESET_SECONDS', mode='after')
    @classmethod
    def validate_non_negative(cls, v: int) -> int:
        """Reject negative sizes and delays."""
        if v < 0:
            raise ValueError("value must be zero or positive")
        return v

    @field_validator('LOG_LEVEL', mode='after')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level name."""
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if v.upper() not in valid_levels:
            raise ValueError(f"LOG_LEVEL must be one of {valid_levels}")
        return v.upper()

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
    )


# Global settings instance
settings = Settings()
