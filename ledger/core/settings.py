"""Configuration and environment settings for the household ledger service."""

from decimal import Decimal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings for the household ledger service."""

    groq_api_key: str = ""
    groq_text_model: str = "llama-3.3-70b-versatile"
    groq_vision_model: str = "meta-llama/llama-4-scout-17b-16e-instruct"
    llm_temperature: float = 0.1
    llm_max_completion_tokens: int = 4096
    llm_max_retries: int = 3
    llm_retry_delay_seconds: float = 1.0

    extraction_agent: str = "groq"
    extraction_chunk_lines: int = 150
    extraction_max_workers: int = 4
    max_statement_chars: int = 50000

    duplicate_window_days: int = 3
    duplicate_amount_tolerance: Decimal = Decimal("0.01")
    existing_history_limit: int = 1000
    suggestion_lookback_months: int = 6
    max_suggestions: int = 5

    database_url: str = "sqlite:///ledger.db"
    s3_endpoint_url: str | None = None
    s3_access_key: str | None = None
    s3_secret_key: str | None = None
    s3_bucket: str = "statements"

    log_file: str = "logs/ledger.log"
    server_host: str = "127.0.0.1"
    server_port: int = 8000

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")


def get_settings() -> "Settings":
    """Return an instance of the application settings."""
    return Settings()
