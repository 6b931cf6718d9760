"""
Application configuration management.
"""

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    # Application
    log_level: str = "INFO"
    environment: str = "development"
    install_global_hooks: bool = True

    # Error logs
    log_dir: str = "logs"
    frontend_log_file: str = "frontend-errors.log"
    backend_log_file: str = "backend-errors.log"
    max_message_length: int = 200

    # Ingestion rate limiting
    rate_limit_window_seconds: int = 60
    rate_limit_max_requests: int = 10
    rate_limit_sweep_interval_seconds: int = 300
    trust_proxy_headers: bool = True

    # Circuit breakers
    circuit_failure_threshold: int = 5
    circuit_reset_timeout_seconds: float = 60.0

    # Retry defaults
    retry_max_attempts: int = 3
    retry_delay_seconds: float = 1.0

    # Client interceptor
    error_report_endpoint: str = "http://localhost:8000/error-logs"
    error_report_debounce_seconds: float = 5.0
    notification_timeout_seconds: float = 5.0

    @property
    def frontend_log_path(self) -> Path:
        return Path(self.log_dir) / self.frontend_log_file

    @property
    def backend_log_path(self) -> Path:
        return Path(self.log_dir) / self.backend_log_file


# Global settings instance
settings = Settings()
