"""Configuration using pydantic-settings."""

import os
from decimal import Decimal
from typing import Literal

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings with validation and constants."""

    model_config = SettingsConfigDict(
        env_prefix="CHAT_",
        env_file=".env",
        extra="ignore",
        populate_by_name=True,
    )

    host: str = "0.0.0.0"  # nosec B104 - Required for container deployment
    port: int = 8000
    log_level: str = "INFO"
    log_file: str | None = None

    environment: Literal["development", "docker", "lambda"] = "development"

    # The credential is read from the plain provider variable as well; a missing
    # key is reported per request, not at startup.
    anthropic_api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("ANTHROPIC_API_KEY", "CHAT_ANTHROPIC_API_KEY"),
    )
    anthropic_api_url: str = "https://api.anthropic.com/v1/messages"
    anthropic_version: str = "2023-06-01"
    upstream_timeout: float = 60.0

    # Model settings
    model: str = "claude-3-5-haiku-20241022"
    max_tokens: int = 1024

    # Dollars per million tokens
    input_cost_per_mtok: Decimal = Decimal("3")
    output_cost_per_mtok: Decimal = Decimal("15")

    @property
    def is_lambda_environment(self) -> bool:
        """Check if running in AWS Lambda."""
        return self.environment == "lambda" or bool(os.getenv("AWS_LAMBDA_FUNCTION_NAME"))


settings = Settings()


def get_settings() -> Settings:
    """Get settings instance (for dependency injection)."""
    return settings
