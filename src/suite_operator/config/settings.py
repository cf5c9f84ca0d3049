"""Typed configuration loaded from the environment via pydantic-settings.

Every setting can be overridden with a ``SUITE_OPERATOR_`` prefixed variable
or through a local ``.env`` file.
"""

import logging

from pydantic import ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigurationError(Exception):
    """Raised when configuration or an installation template is unusable."""


class Settings(BaseSettings):
    """Operator settings."""

    model_config = SettingsConfigDict(
        env_prefix="SUITE_OPERATOR_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # === DEFAULT INSTALLATION ===
    watch_namespace: str = "suite-operator"
    installation_name: str = "suite-installation"
    installation_type: str = "managed"
    namespace_prefix: str = "suite-"
    self_signed_certs: bool = False

    # === INSTALL PLAN ===
    products: str = "all"
    installation_types_file: str = ""
    required_secrets: str = "github-oauth-secret"
    oauth_client_secrets_name: str = "oauth-client-secrets"

    # === RECONCILE LOOP ===
    requeue_delay_seconds: float = 10.0
    workers: int = 2
    failure_base_delay_seconds: float = 0.5
    failure_max_delay_seconds: float = 60.0

    # === OBJECT STORE ===
    # Empty means the in-process store.
    store_url: str = ""
    store_timeout_seconds: float = 10.0

    # === EVENTS ===
    event_report_url: str = ""

    # === LOGGING / API ===
    log_file: str = "./logs/suite-operator.log"
    log_level: str = "INFO"
    api_host: str = "0.0.0.0"
    api_port: int = 12316

    @field_validator(
        "requeue_delay_seconds",
        "failure_base_delay_seconds",
        "failure_max_delay_seconds",
        "store_timeout_seconds",
    )
    @classmethod
    def positive_delay(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("must be greater than zero")
        return v

    @field_validator("workers")
    @classmethod
    def at_least_one_worker(cls, v: int) -> int:
        if v < 1:
            raise ValueError("at least one worker is required")
        return v

    @field_validator("log_level")
    @classmethod
    def known_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in logging.getLevelNamesMapping():
            raise ValueError(f"unknown log level: {v}")
        return level

    @property
    def products_list(self) -> list[str]:
        """Parse comma-separated product list."""
        return [p.strip() for p in self.products.split(",") if p.strip()]

    @property
    def required_secrets_list(self) -> list[str]:
        """Parse comma-separated secret names."""
        return [s.strip() for s in self.required_secrets.split(",") if s.strip()]

    @property
    def log_level_value(self) -> int:
        return logging.getLevelNamesMapping()[self.log_level]


def load_settings(**overrides: object) -> Settings:
    """Load settings from the environment with optional overrides.

    Args:
        **overrides: Field-level overrides (for testing)

    Returns:
        Validated Settings instance

    Raises:
        ConfigurationError: If any value fails validation
    """
    try:
        return Settings(**overrides)  # type: ignore[arg-type]
    except ValidationError as e:
        raise ConfigurationError(f"Invalid settings: {e}") from e
