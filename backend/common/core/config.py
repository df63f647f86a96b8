from typing import List
from pydantic_settings import BaseSettings, SettingsConfigDict

from common.core.constants import Environment


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # Environment Profile
    environment: Environment = Environment.LOCAL

    # API Settings
    app_name: str = "razorpay-billing"
    api_version: str = "0.1.0"
    debug: bool = False

    # Database Components
    db_user: str = "postgres"
    db_password: str = "postgres"
    db_host: str = "localhost"
    db_port: int = 5432
    db_name: str = "billing"
    db_use_nullpool: bool = False
    db_pool_size: int = 10
    db_pool_overflow: int = 5

    @property
    def database_url(self) -> str:
        """Construct database URL from components."""
        return f"postgresql://{self.db_user}:{self.db_password}@{self.db_host}:{self.db_port}/{self.db_name}"

    # OpenTelemetry
    otel_service_name: str = "razorpay-billing"
    otel_service_version: str = "0.1.0"

    # Axiom (span export is skipped when the token is empty)
    axiom_token: str = ""
    axiom_dataset: str = ""

    # Billing - Razorpay
    razorpay_key_id: str = ""
    razorpay_key_secret: str = ""
    razorpay_webhook_secret: str = ""
    # JSON list of plans, e.g. [{"name": "pro", "plan_id": "plan_X"}]
    razorpay_plans: str = "[]"
    razorpay_organization_enabled: bool = False
    razorpay_require_email_verification: bool = False
    razorpay_create_customer_on_signup: bool = False

    @property
    def cors_allowed_origins(self) -> List[str]:
        """Auto-select CORS origins based on environment."""
        if self.environment == Environment.LOCAL:
            return [
                "http://localhost:3000",
                "http://localhost:3001",
            ]
        return []


settings = Settings()
