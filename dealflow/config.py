from __future__ import annotations

from pydantic import ConfigDict
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    app_name: str = "Dealflow Back Office"
    app_version: str = "0.1.0"
    environment: str = "development"
    debug: bool = True
    log_level: str = "INFO"

    # Database
    database_url: str | None = None
    db_pool_min_size: int = 1
    db_pool_max_size: int = 5
    db_auto_create_schema: bool = False

    # Introductions
    manual_introduction_conviction: int = 3
    manual_introduction_comment: str = "Manual introduction request created"
    introduction_subject_template: str = "Introduction: {lp_name} <> {company_name}"

    # Outbound email
    email_from: str | None = None
    email_smtp_url: str | None = None
    email_disable_tls: bool = False

    # Security
    cors_origins: list[str] = []  # Empty by default for security

    # Sentry
    sentry_dsn: str | None = None

    # Metrics
    metrics_backend: str = "stdout"
    metrics_namespace: str = "dealflow"
    metrics_disable: bool = False
    metrics_sample_rate: float = 1.0
    metrics_statsd_host: str = "127.0.0.1"
    metrics_statsd_port: int = 8125

    @property
    def smtp_enabled(self) -> bool:
        """Return True when both the SMTP URL and sender address are configured."""
        return bool(self.email_smtp_url and self.email_from)

    model_config = ConfigDict(env_file=".env", case_sensitive=False)


settings = Settings()
