"""
Execution context settings: which build is running and where to write.
"""

from pydantic import Field, field_validator
from .base_config import BaseConfig
from pkgmeta.constants.graph_fields import DEFAULT_ECOSYSTEM
from pkgmeta.models.errors import ConfigurationError

BUILD_ID_ENV = "PKG_BUILD_ID"
METADATA_TABLE_ENV = "PKG_METADATA_TABLE"


class ExecutionSettings(BaseConfig):
    """
    Environment-provided context of the current build.
    """
    PKG_BUILD_ID: str | None = Field(default=None, description="Build identifier of the form 'ProjectName:UUID'")
    PKG_METADATA_TABLE: str | None = Field(default=None, description="Name of the package metadata table (Redis key namespace)")
    PKG_MANIFEST_PATH: str = Field(default="./Cargo.toml", description="Path of the package manifest")
    PKG_ECOSYSTEM: str = Field(default=DEFAULT_ECOSYSTEM, description="Ecosystem tag used in package keys")
    FAN_OUT_CONCURRENCY: int = Field(default=0, description="Concurrent store calls per stage, 0 for unbounded")
    RUN_TIMEOUT_SECONDS: float = Field(default=300.0, description="Deadline for a whole metadata update run")
    LOG_LEVEL: str = Field(default="INFO", description="Root log level")

    @field_validator('FAN_OUT_CONCURRENCY')
    @classmethod
    def validate_concurrency(cls, v: int) -> int:
        if v < 0:
            raise ValueError('Fan-out concurrency must be non-negative')
        return v

    @field_validator('RUN_TIMEOUT_SECONDS')
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError('Run timeout must be positive')
        return v

    @field_validator('PKG_ECOSYSTEM')
    @classmethod
    def validate_ecosystem(cls, v: str) -> str:
        if not v or '/' in v or ':' in v:
            raise ValueError("Ecosystem tag must be non-empty and contain no '/' or ':'")
        return v

    def build_project_name(self) -> str:
        """
        Extract the build project name from the build identifier.

        Raises:
            ConfigurationError: If the build identifier is not set
        """
        if not self.PKG_BUILD_ID:
            raise ConfigurationError(f"Didn't find {BUILD_ID_ENV} env var")
        project_name = self.PKG_BUILD_ID.split(":", 1)[0]
        if not project_name:
            raise ConfigurationError(
                f"Expected {BUILD_ID_ENV} of pattern \"ProjectName:UUID\", got {self.PKG_BUILD_ID!r}"
            )
        return project_name

    def table_name(self) -> str:
        """
        Return the metadata table name.

        Raises:
            ConfigurationError: If the table name is not set
        """
        if not self.PKG_METADATA_TABLE:
            raise ConfigurationError(
                f"Unable to determine Package Metadata table name from {METADATA_TABLE_ENV} env variable"
            )
        return self.PKG_METADATA_TABLE

