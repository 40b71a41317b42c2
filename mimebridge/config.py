from __future__ import annotations

"""Builder configuration (loaded from environment variables + .env).

Design:
- All settings have defaults that produce standard UTF-8 output.
- Content copy is unbounded unless MIMEBRIDGE_MAX_CONTENT_BYTES is set.
- Environment variables always override .env file values.
"""

import codecs
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, field_validator

_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR"}


class BuilderConfig(BaseModel):
    # Charset for body text and non-ASCII headers without an explicit encoding
    default_charset: str = "utf-8"

    # Upper bound for a single content stream copy (None = unbounded)
    max_content_bytes: int | None = None

    # Header folding width used when serializing to .eml
    max_line_length: int = 78

    log_path: Path = Path("logs/mimebridge.jsonl")
    log_level: str = "INFO"

    @field_validator("default_charset")
    @classmethod
    def _known_charset(cls, value: str) -> str:
        try:
            codecs.lookup(value)
        except LookupError as exc:
            raise ValueError(f"unknown charset: {value}") from exc
        return value

    @field_validator("max_content_bytes", "max_line_length")
    @classmethod
    def _positive_int(cls, value: int | None) -> int | None:
        if value is not None and value <= 0:
            raise ValueError("value must be positive")
        return value

    @field_validator("log_level")
    @classmethod
    def _valid_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level not in _LOG_LEVELS:
            raise ValueError(f"log_level must be one of {sorted(_LOG_LEVELS)}")
        return level


def load_config(env_file: str | None = ".env") -> BuilderConfig:
    if env_file:
        # Load .env values but let shell environment variables win
        load_dotenv(env_file, override=False)
    max_content = _getenv_opt("MIMEBRIDGE_MAX_CONTENT_BYTES")
    return BuilderConfig(
        default_charset=_getenv_str("MIMEBRIDGE_DEFAULT_CHARSET", "utf-8"),
        max_content_bytes=int(max_content) if max_content is not None else None,
        max_line_length=int(_getenv_str("MIMEBRIDGE_MAX_LINE_LENGTH", "78")),
        log_path=Path(_getenv_str("MIMEBRIDGE_LOG_PATH", "logs/mimebridge.jsonl")),
        log_level=_getenv_str("MIMEBRIDGE_LOG_LEVEL", "INFO"),
    )


def _getenv_opt(name: str) -> str | None:
    import os

    value = os.getenv(name)
    if value is None or value == "":
        return None
    return value


def _getenv_str(name: str, default: str) -> str:
    value = _getenv_opt(name)
    return value if value is not None else default
