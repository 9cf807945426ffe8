"""Central environment-driven settings shared by both services.

Each service process loads this once at startup. Gateway credentials and the
sandbox/production switch come from the environment (see `.env.example`).
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class CommonSettings(BaseSettings):
    """Typed view of runtime configuration from environment variables."""

    service_name: str = "unknown-service"
    log_level: str = "INFO"
    database_url: str
    midtrans_server_key: str
    midtrans_is_production: bool = False
    midtrans_timeout_seconds: float = 10.0
    default_customer_name: str = "Androlin Guest"
    default_customer_email: str = "support@androlinstore.com"
    otel_exporter_otlp_endpoint: str = "http://otel-collector:4318/v1/traces"
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


settings = CommonSettings()
