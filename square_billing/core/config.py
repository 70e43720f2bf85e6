from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    # App Basics
    app_env: str = "dev"
    app_name: str = "Square Billing"
    log_level: str = "info"

    # Database
    database_url: str = "sqlite:///./dev.db"
    db_echo: bool = False

    # Square
    square_access_token: str = ""
    square_api_url: str = "https://connect.squareupsandbox.com/v2"
    square_version: str = "2025-01-23"
    square_location_id: str = ""
    square_timeout_seconds: float = 20.0

    # Plan configuration document, environment-keyed JSON
    plans_config_path: str = "square_plans.json"

    # Refunds
    refund_currency: str = "USD"
    # plan_id -> {"price_cents": ..., "duration_days": ...}
    refund_plans: dict[str, dict[str, int]] = Field(default_factory=dict)

    # Tell pydantic to read from .env file
    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="",
        extra="ignore",
    )

settings = Settings()
