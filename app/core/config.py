"""
app/core/config.py

Purpose: Application configuration

- Loads environment variables (and .env)
- Centralizes Stripe, MongoDB and identity-provider settings
- Validates configuration on startup
- Environment-specific settings
"""

from pydantic import Field, validator
from pydantic_settings import BaseSettings
from typing import Optional, Literal


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    Missing Stripe secrets degrade the affected endpoints instead of
    failing startup (except in production).
    """

    # Environment
    ENVIRONMENT: Literal["development", "staging", "production"] = "development"

    # MongoDB
    MONGODB_URL: str = Field(
        default="mongodb://localhost:27017",
        description="MongoDB connection URI"
    )
    MONGODB_DB_NAME: str = Field(
        default="alventura",
        description="MongoDB database name"
    )
    MONGODB_MAX_POOL_SIZE: int = Field(
        default=50,
        description="Maximum connections in the Motor pool"
    )
    MONGODB_CONNECT_RETRIES: int = Field(
        default=3,
        description="Startup ping attempts before giving up"
    )

    # Stripe
    STRIPE_SECRET: Optional[str] = Field(
        default=None,
        description="Stripe secret API key"
    )
    STRIPE_WEBHOOK_SECRET: Optional[str] = Field(
        default=None,
        description="Stripe webhook signing secret (whsec_...)"
    )
    STRIPE_MAX_NETWORK_RETRIES: int = Field(
        default=2,
        description="Retries the stripe SDK makes on network errors (idempotent requests only)"
    )
    STRIPE_WEBHOOK_TOLERANCE_SECONDS: int = Field(
        default=300,
        description="Maximum age of a webhook signature timestamp"
    )

    # Payments
    MIN_PAYMENT_AMOUNT: int = Field(
        default=50,
        description="Minimum payment amount in currency minor units"
    )
    DEFAULT_CURRENCY: str = Field(
        default="usd",
        description="Currency used when the caller does not send one"
    )
    PAYMENT_DESCRIPTION: str = Field(
        default="Alventura Booking",
        description="Description attached to every payment intent"
    )
    PAYMENT_METHODS_LIMIT: int = Field(
        default=20,
        description="Maximum saved payment methods returned"
    )

    # Identity provider (Firebase Auth)
    FIREBASE_PROJECT_ID: Optional[str] = Field(
        default=None,
        description="Firebase project ID used for ID token verification"
    )
    FIREBASE_CREDENTIALS_PATH: Optional[str] = Field(
        default=None,
        description="Service account JSON path (application default credentials when unset)"
    )
    AUTH_HOOK_SECRET: Optional[str] = Field(
        default=None,
        description="Shared secret expected in X-Hook-Secret on the account-creation hook"
    )

    # Application
    DEBUG: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    LOG_LEVEL: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )
    API_PREFIX: str = Field(
        default="",
        description="API route prefix"
    )
    CORS_ORIGINS: list = Field(
        default=["*"],
        description="Allowed CORS origins"
    )

    @validator("STRIPE_SECRET")
    def validate_stripe_secret(cls, v, values):
        """Ensure the Stripe key is set in production."""
        if values.get("ENVIRONMENT") == "production" and not v:
            raise ValueError("STRIPE_SECRET is required in production environment")
        return v

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.ENVIRONMENT == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.ENVIRONMENT == "production"

    class Config:
        env_file = ".env"
        case_sensitive = True
        env_file_encoding = "utf-8"
        extra = "ignore"


# Global settings instance
settings = Settings()


def get_settings() -> Settings:
    """FastAPI dependency returning the process-wide settings."""
    return settings


def validate_settings():
    """
    Validates critical settings on application startup.
    Raises ValueError if any required setting is missing or invalid.
    """
    errors = []

    if not settings.MONGODB_URL:
        errors.append("MONGODB_URL is required")

    if settings.MIN_PAYMENT_AMOUNT < 1:
        errors.append("MIN_PAYMENT_AMOUNT must be positive")

    # Production-specific validations
    if settings.is_production:
        if not settings.STRIPE_SECRET:
            errors.append("STRIPE_SECRET is required in production")
        if not settings.STRIPE_WEBHOOK_SECRET:
            errors.append("STRIPE_WEBHOOK_SECRET is required in production")
        if not settings.AUTH_HOOK_SECRET:
            errors.append("AUTH_HOOK_SECRET is required in production")

    if errors:
        raise ValueError(f"Configuration validation failed: {', '.join(errors)}")

    return True
