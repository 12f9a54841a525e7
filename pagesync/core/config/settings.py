"""Connector settings.

All defaults are defined here in the schema. Values are loaded from the
environment (prefix ``PAGESYNC_``) and an optional ``.env`` file.
"""

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from pagesync.core.config.enums import Environment


class Settings(BaseSettings):
    """Connector settings with automatic env var loading.

    Example:
        PAGESYNC_REQUEST_TIMEOUT_SECONDS=10 PAGESYNC_LOG_LEVEL=DEBUG
    """

    model_config = SettingsConfigDict(
        env_prefix="PAGESYNC_",
        env_file=".env",
        extra="ignore",
    )

    ENVIRONMENT: Environment = Field(Environment.LOCAL, description="Deployment environment")
    LOG_LEVEL: str = Field("INFO", description="Root log level")

    DEFAULT_PAGE_SIZE: int = Field(100, description="Page size used when a request omits one")
    MAX_PAGE_SIZE: int = Field(1000, description="Largest page size a request may ask for")
    REQUEST_TIMEOUT_SECONDS: float = Field(
        30.0, description="Upper bound for every outbound fetch"
    )
    UNIQUE_ID_ATTRIBUTE: str = Field(
        "id", description="Attribute holding the unique ID of vendor objects"
    )

    @field_validator("LOG_LEVEL")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        """Upper-case the log level and reject unknown names."""
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level

    @field_validator("DEFAULT_PAGE_SIZE", "MAX_PAGE_SIZE")
    @classmethod
    def validate_positive_size(cls, v: int) -> int:
        """Page sizes must be positive."""
        if v <= 0:
            raise ValueError("Page sizes must be greater than 0")
        return v

    @field_validator("REQUEST_TIMEOUT_SECONDS")
    @classmethod
    def validate_positive_timeout(cls, v: float) -> float:
        """Timeouts must be positive."""
        if v <= 0:
            raise ValueError("REQUEST_TIMEOUT_SECONDS must be greater than 0")
        return v

    @model_validator(mode="after")
    def validate_page_size_bounds(self):
        """The default page size must fit under the maximum."""
        if self.DEFAULT_PAGE_SIZE > self.MAX_PAGE_SIZE:
            raise ValueError(
                f"DEFAULT_PAGE_SIZE ({self.DEFAULT_PAGE_SIZE}) exceeds "
                f"MAX_PAGE_SIZE ({self.MAX_PAGE_SIZE})"
            )
        return self
