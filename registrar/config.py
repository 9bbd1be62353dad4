"""
Platform configuration.
"""

import json
from typing import Any, Dict

from pydantic import BaseModel, Field, ValidationError as PydanticValidationError, field_validator

from .core.enums import DatabaseType
from .core.exceptions import ConfigurationError


LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class PlatformConfig(BaseModel):
    """Settings for the storage backend, locking, logging and the REST server."""

    database_type: DatabaseType = DatabaseType.SQLITE
    database_config: Dict[str, Any] = Field(default_factory=dict)
    lock_timeout: float = Field(5.0, gt=0)
    log_level: str = "INFO"
    rest_host: str = "0.0.0.0"
    rest_port: int = Field(8000, ge=1, le=65535)

    @field_validator("log_level")
    @classmethod
    def _known_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(LOG_LEVELS)}")
        return level

    @classmethod
    def from_file(cls, path: str) -> 'PlatformConfig':
        """Load configuration from a JSON file."""
        try:
            with open(path, 'r') as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigurationError(f"Cannot read configuration file {path}: {e}") from e

        try:
            return cls(**data)
        except PydanticValidationError as e:
            raise ConfigurationError(f"Invalid configuration in {path}: {e}") from e
