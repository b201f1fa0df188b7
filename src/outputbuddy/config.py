from __future__ import annotations

import logging
import os

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_LOG_FILE = "buddy.log"
READ_CHUNK_SIZE = 32 * 1024


def _env_flag(key: str) -> bool:
    return os.getenv(key, "").strip().lower() in ("1", "true", "yes", "on")


class OutputBuddyConfig(BaseModel):
    """
    Runtime settings for one outputbuddy invocation.

    Notes:
    - Defaults come from OUTPUTBUDDY_* environment variables and are
      validated like explicit values.
    - Command-line flags are applied on top via ``model_copy(update=...)``.
    """
    model_config = ConfigDict(validate_default=True)

    strip_ansi: bool = Field(default_factory=lambda: not _env_flag("OUTPUTBUDDY_KEEP_ANSI"))
    use_pty: bool = Field(default_factory=lambda: not _env_flag("OUTPUTBUDDY_NO_PTY"))
    default_log_file: str = Field(default_factory=lambda: os.getenv("OUTPUTBUDDY_LOG_FILE", DEFAULT_LOG_FILE))
    read_chunk_size: int = Field(default_factory=lambda: os.getenv("OUTPUTBUDDY_CHUNK_SIZE", str(READ_CHUNK_SIZE)))
    log_level: str = Field(default_factory=lambda: os.getenv("OUTPUTBUDDY_LOG_LEVEL", "WARNING"))

    @field_validator("read_chunk_size")
    @classmethod
    def _positive_chunk(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("read_chunk_size must be positive")
        return value

    @field_validator("default_log_file")
    @classmethod
    def _non_empty_path(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("default_log_file must not be empty")
        return value

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        name = value.strip().upper()
        if not isinstance(logging.getLevelName(name), int):
            raise ValueError(f"unknown log level '{value}'")
        return name
