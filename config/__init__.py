"""Configuration package: settings, logging, and exceptions."""

from config.exceptions import (
    EbookForgeError,
    LLMError,
    LLMResponseParseError,
    ImageGenerationError,
    StorageError,
    DatabaseError,
    GenerationError,
    NoLanguagesGeneratedError,
    ValidationError,
    UnsupportedLanguageError,
    EmptyThemeListError,
    InvalidScheduleError,
    ForbiddenError,
    NotFoundError,
)
from config.logging_config import setup_logging
from config.settings import Settings, get_settings

__all__ = [
    "Settings",
    "get_settings",
    "setup_logging",
    "EbookForgeError",
    "LLMError",
    "LLMResponseParseError",
    "ImageGenerationError",
    "StorageError",
    "DatabaseError",
    "GenerationError",
    "NoLanguagesGeneratedError",
    "ValidationError",
    "UnsupportedLanguageError",
    "EmptyThemeListError",
    "InvalidScheduleError",
    "ForbiddenError",
    "NotFoundError",
]
