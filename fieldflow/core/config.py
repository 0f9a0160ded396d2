"""Service configuration (settings and environment).

Single source of truth for all configuration. Uses pydantic-settings
with .env support. Values are validated at load time.
"""

from functools import lru_cache

from pydantic import SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from environment and .env.

    Everything has a default so the engine can run in-process (tests, local
    development) without a database; the SQL-backed store is used only when
    database_url is set.
    """

    # App
    app_name: str = "fieldflow"
    app_version: str = "1.0.0"
    debug: bool = False

    # Database
    database_url: str = ""
    database_echo: bool = False
    # Optional pool/driver overrides (None = use defaults in database.py)
    db_pool_size: int | None = None
    db_max_overflow: int | None = None
    db_command_timeout: int | None = None

    # CORS
    allowed_origins: str = "http://localhost:3000,http://localhost:8080"

    # Request headers
    request_id_header: str = "X-Request-ID"

    # Automation engine
    automation_enabled: bool = True
    # Run the poll loop in this process; disable on extra API replicas.
    automation_scheduler_enabled: bool = True
    automation_poll_interval_seconds: float = 60.0
    automation_poll_batch_size: int = 10
    automation_idempotency_window_seconds: int = 300
    automation_action_timeout_seconds: float = 30.0
    automation_refresh_entity_snapshot: bool = False

    # Redis (shared idempotency window across instances)
    redis_enabled: bool = False
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_db: int = 0
    redis_password: SecretStr | None = None
    redis_max_connections: int = 10
    redis_key_prefix: str = "fieldflow:idem:"

    # Notification providers (missing credentials -> log-only senders)
    sendgrid_api_key: SecretStr | None = None
    sendgrid_from_email: str = "noreply@example.com"
    sendgrid_from_name: str | None = None
    twilio_account_sid: str | None = None
    twilio_auth_token: SecretStr | None = None
    twilio_from_number: str | None = None
    notification_http_timeout_seconds: float = 15.0

    # Template variables
    company_name: str = "Our Company"
    company_phone: str = ""
    public_base_url: str = "http://localhost:3000"

    # OpenTelemetry
    telemetry_enabled: bool = False
    telemetry_exporter: str = "console"
    telemetry_otlp_endpoint: str | None = None
    telemetry_sample_rate: float = 1.0
    telemetry_environment: str = "development"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    @model_validator(mode="after")
    def validate_automation(self) -> "Settings":
        """Reject values the poll loop and idempotency window cannot work with."""
        if self.automation_poll_interval_seconds <= 0:
            raise ValueError("AUTOMATION_POLL_INTERVAL_SECONDS must be positive")
        if self.automation_poll_batch_size < 1:
            raise ValueError("AUTOMATION_POLL_BATCH_SIZE must be at least 1")
        if self.automation_idempotency_window_seconds < 0:
            raise ValueError("AUTOMATION_IDEMPOTENCY_WINDOW_SECONDS must not be negative")
        if self.automation_action_timeout_seconds <= 0:
            raise ValueError("AUTOMATION_ACTION_TIMEOUT_SECONDS must be positive")
        if self.telemetry_exporter == "otlp" and not self.telemetry_otlp_endpoint:
            raise ValueError(
                "TELEMETRY_OTLP_ENDPOINT is required when telemetry_exporter is 'otlp'."
            )
        return self

    @property
    def sendgrid_configured(self) -> bool:
        return bool(self.sendgrid_api_key and self.sendgrid_api_key.get_secret_value())

    @property
    def twilio_configured(self) -> bool:
        return bool(
            self.twilio_account_sid
            and self.twilio_auth_token
            and self.twilio_auth_token.get_secret_value()
            and self.twilio_from_number
        )


@lru_cache
def get_settings() -> Settings:
    """Return cached settings (single instance per process).

    Validation runs on first call, not at import time. In tests, call
    get_settings.cache_clear() before overriding env vars so the next
    get_settings() uses the new values.

    Returns:
        Loaded and validated Settings instance.
    """
    return Settings()
