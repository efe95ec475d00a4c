"""Inspector settings (limits and log level), overridable from the environment."""

import os
from typing import Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


ENV_PREFIX = "CERTINSPECTOR_"

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

# The TLV reader recurses once per level; stay far below the interpreter limit.
MAX_NESTING_DEPTH = 256


class InspectorSettings(BaseModel):
    """Limits applied while parsing untrusted certificate input."""

    model_config = ConfigDict(frozen=True)

    max_certificate_size: int = Field(default=64 * 1024, gt=0)
    max_nesting_depth: int = Field(default=32, gt=0, le=MAX_NESTING_DEPTH)
    log_level: str = "WARNING"

    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level not in _LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(_LOG_LEVELS)}")
        return level

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "InspectorSettings":
        """
        Build settings from CERTINSPECTOR_* environment variables.

        Args:
            environ: Mapping to read instead of os.environ

        Returns:
            Settings with defaults for every unset variable

        Raises:
            pydantic.ValidationError: If a variable holds an invalid value
        """
        if environ is None:
            environ = os.environ

        values = {}
        for name in cls.model_fields:
            raw = environ.get(ENV_PREFIX + name.upper())
            if raw is not None and raw.strip():
                values[name] = raw.strip()
        return cls(**values)


DEFAULT_SETTINGS = InspectorSettings()
