"""
Configuration loader for the resize worker.

Environment variables (and an optional JSON settings file) are centralized
here so the dispatch code only ever sees validated values. Settings are read
once at startup and never reloaded.
"""

from enum import Enum
from functools import lru_cache
import os
from typing import List, Optional, Tuple, Type

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import (
    BaseSettings,
    JsonConfigSettingsSource,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from .exceptions import ConfigurationError

SETTINGS_FILE_ENV = "RESIZER_SETTINGS_FILE"
DEFAULT_SETTINGS_FILE = "settings.json"


class AckPolicy(str, Enum):
    """When a processed message is deleted from its queue."""

    ALWAYS = "always"
    ON_SUCCESS = "on_success"

    def should_delete(self, succeeded: bool) -> bool:
        return self is AckPolicy.ALWAYS or succeeded


class Settings(BaseSettings):
    # AWS credentials / endpoints
    aws_access_key_id: Optional[str] = None
    aws_secret_access_key: Optional[str] = None
    aws_region: Optional[str] = None
    aws_endpoint_url: Optional[str] = None

    # Queue polling
    queues: List[str] = Field(default_factory=list)
    polling_interval_seconds: float = Field(1.0, gt=0)
    visibility_timeout_seconds: int = Field(120, ge=0, le=43200)

    # Worker pool
    workers: int = Field(4, ge=1)
    worker_inbox_size: int = Field(100, ge=1)
    ack_policy: AckPolicy = AckPolicy.ALWAYS

    # Output encoding
    jpeg_quality: int = Field(75, ge=1, le=95)

    # HTTP server
    host: str = "0.0.0.0"
    port: int = Field(8080, ge=1, le=65535)
    log_level: str = "INFO"

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        v = v.upper()
        if v not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError("LOG_LEVEL must be one of DEBUG|INFO|WARNING|ERROR|CRITICAL")
        return v

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: Type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> Tuple[PydanticBaseSettingsSource, ...]:
        json_file = os.environ.get(SETTINGS_FILE_ENV, DEFAULT_SETTINGS_FILE)
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            JsonConfigSettingsSource(settings_cls, json_file=json_file),
            file_secret_settings,
        )

    def require_aws(self) -> None:
        """Fail fast when credentials or region are missing."""
        if not self.aws_access_key_id or not self.aws_secret_access_key:
            raise ConfigurationError(
                "cannot find aws auth; set AWS_ACCESS_KEY_ID and AWS_SECRET_ACCESS_KEY "
                "in the environment or the settings file"
            )
        if not self.aws_region:
            raise ConfigurationError(
                "cannot find aws region; set AWS_REGION in the environment or the settings file"
            )


@lru_cache()
def get_settings() -> Settings:
    """Return cached settings to avoid reparsing env on every call."""
    try:
        return Settings()
    except ValidationError as exc:
        raise ConfigurationError(f"invalid configuration: {exc}") from exc
