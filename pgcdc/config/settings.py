"""
Pydantic Settings Models for the Postgres CDC source
"""

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class SourceSettings(BaseSettings):
    """Identity of the Postgres source being streamed"""

    server_name: str = Field(
        ..., min_length=1, description="Logical server name; the checkpoint partition key"
    )
    database_name: str = Field(..., min_length=1, description="Database read on that server")

    model_config = SettingsConfigDict(env_prefix="CDC_SOURCE_")

    @field_validator("server_name", "database_name")
    @classmethod
    def validate_not_blank(cls, v: str) -> str:
        """Reject names made only of whitespace"""
        if not v.strip():
            raise ValueError("must not be blank")
        return v


class ObservabilitySettings(BaseSettings):
    """Metrics and logging configuration"""

    metrics_port: int = Field(default=9090, ge=1024, le=65535)
    enable_metrics: bool = Field(default=False)
    log_level: str = Field(default="INFO", pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$")
    log_format: str = Field(default="json", pattern="^(json|console)$")

    model_config = SettingsConfigDict(env_prefix="CDC_")


class CDCSettings(BaseSettings):
    """Complete CDC source configuration"""

    source: SourceSettings
    observability: ObservabilitySettings = Field(default_factory=ObservabilitySettings)

    model_config = SettingsConfigDict(
        env_prefix="CDC_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
    )
