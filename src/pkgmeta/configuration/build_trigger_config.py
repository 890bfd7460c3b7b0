"""
Build trigger client configuration settings.
"""
from pydantic import Field, field_validator
from .base_config import BaseConfig

class BuildTriggerSettings(BaseConfig):
    """Settings for the HTTP client that starts consumer rebuilds."""

    BUILD_TRIGGER_URL: str = Field(
        default="http://localhost:8080",
        description="Base URL of the CI server that runs build pipelines"
    )
    BUILD_TRIGGER_TOKEN: str | None = Field(
        default=None,
        description="Access token sent as PRIVATE-TOKEN header"
    )
    BUILD_TRIGGER_REF: str = Field(
        default="main",
        description="Git ref the rebuild pipeline runs against"
    )

    # Connection settings
    CONNECTION_TIMEOUT: float = Field(
        default=10.0,
        description="Connection timeout in seconds",
        alias="BUILD_TRIGGER_CONNECTION_TIMEOUT"
    )

    READ_TIMEOUT: float = Field(
        default=30.0,
        description="Read timeout in seconds",
        alias="BUILD_TRIGGER_READ_TIMEOUT"
    )

    # Retry settings
    MAX_RETRIES: int = Field(
        default=3,
        description="Maximum number of retry attempts",
        alias="BUILD_TRIGGER_MAX_RETRIES"
    )

    RETRY_BACKOFF_FACTOR: float = Field(
        default=2.0,
        description="Backoff factor for exponential retry",
        alias="BUILD_TRIGGER_RETRY_BACKOFF_FACTOR"
    )

    MAX_CONNECTIONS: int = Field(
        default=20,
        description="Maximum number of connections in pool",
        alias="BUILD_TRIGGER_MAX_CONNECTIONS"
    )

    @field_validator('BUILD_TRIGGER_URL')
    @classmethod
    def validate_url(cls, v: str) -> str:
        """Validate that the URL is properly formatted."""
        if not v.startswith(('http://', 'https://')):
            raise ValueError('URL must start with http:// or https://')
        return v.rstrip('/')

    @field_validator('CONNECTION_TIMEOUT', 'READ_TIMEOUT')
    @classmethod
    def validate_positive_timeout(cls, v: float) -> float:
        """Validate that timeout values are positive."""
        if v <= 0:
            raise ValueError('Timeout values must be positive')
        return v

    @field_validator('MAX_RETRIES')
    @classmethod
    def validate_non_negative_retries(cls, v: int) -> int:
        """Validate that retry count is non-negative."""
        if v < 0:
            raise ValueError('Max retries must be non-negative')
        return v

    @field_validator('RETRY_BACKOFF_FACTOR')
    @classmethod
    def validate_positive_backoff(cls, v: float) -> float:
        if v <= 0:
            raise ValueError('Retry backoff factor must be positive')
        return v

    @field_validator('MAX_CONNECTIONS')
    @classmethod
    def validate_positive_connections(cls, v: int) -> int:
        if v <= 0:
            raise ValueError('Connection counts must be positive')
        return v

