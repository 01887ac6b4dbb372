"""Exception hierarchy for ebook generation, scheduling and access control."""

from typing import Optional


class EbookForgeError(Exception):
    """Base exception for all ebookforge errors."""

    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({detail_str})"
        return self.message


# ---- LLM Errors ----

class LLMError(EbookForgeError):
    """LLM provider call failed or returned nothing usable."""


class LLMResponseParseError(LLMError):
    """LLM output could not be parsed into the requested structure."""

    def __init__(self, message: str = "Failed to parse LLM response", raw_response: str = ""):
        details = {"raw_response": raw_response[:200]} if raw_response else {}
        super().__init__(message, details)
        self.raw_response = raw_response


# ---- Collaborator Errors ----

class ImageGenerationError(EbookForgeError):
    """Cover image generation failed."""


class StorageError(EbookForgeError):
    """Object storage write failed."""


class DatabaseError(EbookForgeError):
    """Database operation failed."""


# ---- Generation Errors ----

class GenerationError(EbookForgeError):
    """Ebook content could not be generated."""


class NoLanguagesGeneratedError(GenerationError):
    """Every requested language failed."""

    def __init__(self, requested: list[str], failures: Optional[dict] = None):
        super().__init__(
            "No language could be generated",
            {"requested": ",".join(requested), **(failures or {})},
        )
        self.requested = requested
        self.failures = failures or {}


# ---- Validation Errors ----

class ValidationError(EbookForgeError):
    """Input validation failed."""


class UnsupportedLanguageError(ValidationError):
    """Language code is not in the supported set."""

    def __init__(self, code: str):
        super().__init__(f"Unsupported language: {code}", {"code": code})
        self.code = code


class EmptyThemeListError(ValidationError):
    """A custom_list schedule has no themes to cycle through."""

    def __init__(self, schedule_id: Optional[int] = None):
        details = {"schedule_id": schedule_id} if schedule_id is not None else {}
        super().__init__("Custom theme list is empty", details)


class InvalidScheduleError(ValidationError):
    """Schedule payload is inconsistent with its theme mode or cadence."""


# ---- Access Errors ----

class ForbiddenError(EbookForgeError):
    """Resource does not exist or is not owned by the caller."""

    def __init__(self, message: str = "FORBIDDEN: Unauthorized access to eBook"):
        super().__init__(message)


class NotFoundError(EbookForgeError):
    """Requested resource does not exist."""
