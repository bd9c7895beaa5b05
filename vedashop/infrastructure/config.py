"""Application configuration.

Loads settings from environment variables with sensible defaults.
"""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # API
    api_version: str = "0.1.0"
    debug: bool = False

    # Database
    database_url: str = "postgresql+asyncpg://vedashop:vedashop_dev_password@db:5432/vedashop"

    # Authentication
    jwt_secret: str = "dev-jwt-secret-change-in-production"
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 60

    # Payment provider
    payment_provider_url: str = "https://api.stripe.com"
    payment_provider_secret_key: str = "sk_test_change_me"
    payment_provider_timeout: float = 10.0

    # Webhooks
    webhook_secret: str = "dev-webhook-secret-change-in-production"
    webhook_tolerance_seconds: int = 300

    # Shop
    default_currency: str = "USD"

    # Logging
    log_level: str = "INFO"
    log_json: bool = True

    class Config:
        """Pydantic configuration."""

        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
