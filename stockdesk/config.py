"""Configuration management using Pydantic Settings"""

from decimal import Decimal
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables"""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Backend REST API
    backend_api_base: str = "http://localhost:8000/api"

    # Service
    service_name: str = "stockdesk"
    log_level: str = "INFO"

    # HTTP Client
    http_timeout_seconds: float = 5.0
    backend_max_retries: int = 3
    backend_backoff_base: float = 0.5  # Exponential backoff base in seconds

    # Business rules
    invoice_tax_rate: Decimal = Decimal("0.19")  # TVA 19%
    critical_stock_ratio: Decimal = Decimal("0.5")
    top_debtors_limit: int = 5


settings = Settings()
