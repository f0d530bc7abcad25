"""Configuration settings for the booking service."""

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings with Pydantic validation."""

    # Database settings
    database_url: str = Field(
        default="sqlite+aiosqlite:///./railbook.db",
        description="Async SQLAlchemy database URL (aiosqlite or asyncpg)"
    )

    # Environment settings
    environment: str = Field(
        default="development",
        description="Application environment"
    )

    # Logging settings
    log_level: str = Field(
        default="INFO",
        description="Application log level"
    )

    # CORS settings
    cors_origins: list[str] = Field(
        default=["http://localhost:3000", "http://localhost:5173"],
        description="Allowed CORS origins"
    )

    # Server settings
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8000, description="Server port")

    # Tracing export, disabled when empty
    otlp_endpoint: str | None = Field(
        default=None,
        description="OTLP gRPC endpoint for traces and metrics"
    )

    # Booking engine settings
    hold_window_seconds: int = Field(
        default=900,
        ge=60,
        description="How long an unpaid booking may hold its seats"
    )

    expiry_sweep_interval_seconds: int = Field(
        default=60,
        ge=1,
        description="How often the expiry worker looks for lapsed holds"
    )

    booking_fee_amount: int = Field(
        default=5000,
        ge=0,
        description="Flat per-booking fee in minor units"
    )

    currency: str = Field(
        default="LKR",
        pattern=r"^[A-Z]{3}$",
        description="ISO 4217 currency for fares and fees"
    )

    ticket_number_prefix: str = Field(
        default="TK",
        max_length=4,
        description="Prefix for issued ticket numbers"
    )

    # Simulated payment gateway
    payment_latency_seconds: float = Field(
        default=0.0,
        ge=0,
        description="Artificial delay applied to every simulated charge"
    )

    declined_card_numbers: list[str] = Field(
        default=["4000000000000002"],
        description="Card numbers the simulated gateway always declines"
    )

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate environment value."""
        valid_environments = ["development", "staging", "production"]
        if v.lower() not in valid_environments:
            raise ValueError(f"Environment must be one of: {valid_environments}")
        return v.lower()

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level value."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of: {valid_levels}")
        return v.upper()

    @field_validator("cors_origins", "declined_card_numbers", mode="before")
    @classmethod
    def parse_comma_separated(cls, v: str | list[str]) -> list[str]:
        """Parse list settings from a comma-separated string or list."""
        if isinstance(v, str):
            return [item.strip() for item in v.split(",") if item.strip()]
        return v

    @property
    def debug(self) -> bool:
        """Return True if in development mode."""
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        """Return True if in production mode."""
        return self.environment == "production"

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
    }


# Global settings instance
settings = Settings()
