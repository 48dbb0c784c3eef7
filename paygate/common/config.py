"""Central environment-driven settings for the payment service.

The process loads this once at startup. Behavior is controlled by environment
variables (see `.env.example`).
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Typed view of runtime configuration from environment variables."""

    service_name: str = "payment-service"
    port: int = 3009
    environment: str = "development"
    log_level: str = "info"
    stripe_secret_key: str = ""
    stripe_publishable_key: str = ""
    stripe_webhook_secret: str = ""
    cors_origin: str = "http://localhost:3000"
    rate_limit_window_ms: int = 900_000
    rate_limit_max_requests: int = 100
    json_body_limit_bytes: int = 10 * 1024 * 1024
    webhook_body_limit_bytes: int = 100 * 1024
    webhook_tolerance_seconds: int = 300
    otel_exporter_otlp_endpoint: str = ""
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    def missing_provider_credentials(self) -> list[str]:
        """Names of provider credential variables left empty."""

        names = {
            "STRIPE_SECRET_KEY": self.stripe_secret_key,
            "STRIPE_PUBLISHABLE_KEY": self.stripe_publishable_key,
            "STRIPE_WEBHOOK_SECRET": self.stripe_webhook_secret,
        }
        return [name for name, value in names.items() if not value]


settings = Settings()
