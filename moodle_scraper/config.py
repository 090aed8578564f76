"""Application configuration management using Pydantic Settings.

This module provides a centralized configuration class that loads settings
from environment variables (.env file). The Moodle password is wrapped in
Pydantic's SecretStr so it never shows up in logs or reprs.
"""

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigurationError(ValueError):
    """Raised when credentials or options are unusable, before any navigation."""

    pass


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Credential fields default to empty strings so that importing the package
    never fails; they are validated when a scraper is built from them.
    """

    # Moodle Authentication
    moodle_email: str = Field(default="", description="Moodle login email or username")
    moodle_password: SecretStr = Field(
        default=SecretStr(""), description="Moodle login password"
    )
    moodle_class_url: str = Field(
        default="", description="Course page URL, e.g. https://moodle.example.edu/course/view.php?id=123"
    )

    # Browser Configuration
    browser_headless: bool = Field(
        default=True, description="Run browser in headless mode"
    )
    browser_timeout_ms: int = Field(
        default=30000, description="Per-operation timeout in milliseconds"
    )
    wait_for_elements: bool = Field(
        default=True, description="Wait for category elements before enumerating them"
    )

    # Login Configuration
    two_factor_timeout_seconds: int = Field(
        default=180, description="How long to wait for a two-factor challenge to be approved"
    )
    two_factor_poll_seconds: float = Field(
        default=3.0, description="Interval between two-factor status checks"
    )
    strict_login_verification: bool = Field(
        default=False,
        description="Require a positive logged-in marker after submitting credentials",
    )
    otp_code_file: str | None = Field(
        default=None,
        description="File polled for a one-time code while a code challenge is shown",
    )

    # Session Persistence
    cookie_path: str | None = Field(
        default=None, description="JSON file used to import/export session cookies"
    )

    # Logging Configuration
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )
    log_format: str = Field(
        default="json", description="Log output format (json or console)"
    )

    # Selector Configuration
    selectors_path: str | None = Field(
        default=None,
        description="Path to a CSS selector YAML profile (packaged profile if unset)",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


# Singleton instance - import this to access settings throughout the application
settings = Settings()
