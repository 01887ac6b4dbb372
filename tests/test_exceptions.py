"""Tests for the custom exception hierarchy."""

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


class TestExceptionHierarchy:
    def test_all_inherit_from_base(self):
        leaf_classes = [
            LLMError, LLMResponseParseError, ImageGenerationError, StorageError,
            DatabaseError, GenerationError, NoLanguagesGeneratedError,
            ValidationError, UnsupportedLanguageError, EmptyThemeListError,
            InvalidScheduleError, ForbiddenError, NotFoundError,
        ]
        for cls in leaf_classes:
            assert issubclass(cls, EbookForgeError), f"{cls.__name__} must inherit EbookForgeError"

    def test_validation_subclasses(self):
        assert issubclass(UnsupportedLanguageError, ValidationError)
        assert issubclass(EmptyThemeListError, ValidationError)
        assert issubclass(InvalidScheduleError, ValidationError)

    def test_parse_error_is_llm_error(self):
        assert issubclass(LLMResponseParseError, LLMError)

    def test_no_languages_is_generation_error(self):
        assert issubclass(NoLanguagesGeneratedError, GenerationError)


class TestExceptionMessages:
    def test_details_rendered_in_str(self):
        err = EbookForgeError("boom", {"ebook_id": 3})
        assert str(err) == "boom (ebook_id=3)"
        assert err.message == "boom"

    def test_no_details(self):
        assert str(EbookForgeError("plain")) == "plain"

    def test_parse_error_keeps_raw_response(self):
        err = LLMResponseParseError(raw_response="x" * 500)
        assert err.raw_response == "x" * 500
        assert len(err.details["raw_response"]) == 200

    def test_unsupported_language_carries_code(self):
        err = UnsupportedLanguageError("xx")
        assert err.code == "xx"
        assert "xx" in str(err)

    def test_no_languages_message_lists_failures(self):
        err = NoLanguagesGeneratedError(["pt", "en"], {"pt": "LLM down"})
        assert err.requested == ["pt", "en"]
        assert "pt,en" in str(err)
        assert "LLM down" in str(err)

    def test_forbidden_default_message(self):
        assert str(ForbiddenError()).startswith("FORBIDDEN")
