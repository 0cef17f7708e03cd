"""Configuration management using Pydantic Settings"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables"""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Database
    database_url: str = "sqlite:///./debt_tracker.db"

    # Ledger transactions: "database" keeps them in the local ledger_transaction
    # table, "http" sends them to an external ledger service
    ledger_backend: str = "database"
    ledger_api_base: str = "http://localhost:8002"

    # Service
    service_name: str = "debt-tracker"
    log_level: str = "INFO"

    # HTTP Client
    http_timeout_seconds: float = 5.0

    # Loans
    default_recalculation_strategy: str = "reduce_term"


settings = Settings()
