"""
Configuration settings for the Service Vehicle Maintenance Management System.
Uses Pydantic for type-safe configuration management.
"""
from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    app_name: str = "Service Vehicle Maintenance Management System"
    app_version: str = "1.0.0"
    debug: bool = False
    environment: str = Field(
        default="production",
        validation_alias=AliasChoices("environment", "node_env"),
    )
    log_level: str = "INFO"

    # Database
    database_url: str = "postgresql+asyncpg://svmms_user:svmms_pass@db:5432/svmms_db"
    database_echo: bool = False

    # Security
    jwt_secret: str = "your-secret-key-change-this-in-production"
    jwt_refresh_secret: str | None = None
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 15
    refresh_token_expire_days: int = 7
    reset_token_expire_minutes: int = 60
    bcrypt_rounds: int = 12

    # CORS
    cors_origins: list[str] = ["http://localhost:3000", "http://localhost:5173"]

    # API
    api_prefix: str = "/api"
    default_page_size: int = 10
    max_page_size: int = 100

    # Billing
    invoice_due_days: int = 30

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    @property
    def is_development(self) -> bool:
        return self.environment.lower() == "development"

    @property
    def refresh_secret(self) -> str:
        return self.jwt_refresh_secret or self.jwt_secret


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
