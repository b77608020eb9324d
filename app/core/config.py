"""Application configuration and settings."""

import json
from functools import lru_cache
from typing import Annotated, List, Union

from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode


class Settings(BaseSettings):
    """Application settings."""

    # Service Configuration
    service_name: str = "dispute-automation"
    service_version: str = "1.0.0"
    host: str = "0.0.0.0"
    port: int = 8000
    debug: bool = False
    api_prefix: str = "/api/v1"

    # Logging
    log_level: str = "INFO"
    log_sample_rate: float = 1.0

    # Database
    database_url: str = "sqlite+aiosqlite:///./collections.db"
    database_echo: bool = False
    database_create_tables: bool = True

    # Payment Gateway
    gateway_base_url: str = "http://localhost:8010"
    gateway_payment_status_path: str = "/api/payment/status"
    gateway_dispute_path: str = "/api/payment/dispute"
    gateway_timeout_seconds: int = 30
    gateway_channel_id: str = "UTILITY"

    # Circuit Breaker / Retry
    circuit_breaker_failure_threshold: int = 5
    circuit_breaker_timeout_seconds: int = 60
    retry_max_attempts: int = 3
    retry_base_delay_seconds: float = 1.0

    # Collection lifecycle
    collection_pending_status_id: int = 1
    collection_settled_status_id: int = 2

    # Client routing
    supported_client_types: Annotated[List[str], NoDecode] = ["BREB"]

    # CORS
    enable_cors: bool = True
    cors_origins: Annotated[List[str], NoDecode] = ["http://localhost:3000"]

    @field_validator("cors_origins", "supported_client_types", mode="before")
    @classmethod
    def split_csv(cls, v: Union[str, List[str]]) -> List[str]:
        if isinstance(v, str):
            if v.startswith("["):
                return json.loads(v)
            return [i.strip() for i in v.split(",") if i.strip()]
        return v

    @field_validator("supported_client_types")
    @classmethod
    def normalize_client_types(cls, v: List[str]) -> List[str]:
        return [item.upper() for item in v]

    @field_validator("log_sample_rate")
    @classmethod
    def validate_sample_rate(cls, v: float) -> float:
        if not 0.0 <= v <= 1.0:
            raise ValueError("Log sample rate must be between 0.0 and 1.0")
        return v

    @field_validator("retry_max_attempts", "circuit_breaker_failure_threshold")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Value must be at least 1")
        return v

    model_config = {
        "env_file": ".env",
        "case_sensitive": False,
        "extra": "ignore",
    }


# Global settings instance
settings = Settings()


@lru_cache()
def get_settings() -> Settings:
    """Get application settings."""
    return settings
