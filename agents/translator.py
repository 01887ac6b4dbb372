"""Translator: LLM translation of ebook text into supported languages."""

import asyncio
import logging
from typing import TYPE_CHECKING, Iterable, Optional

from agents.base_agent import BaseAgent
from config.exceptions import LLMError, UnsupportedLanguageError, ValidationError
from config.settings import Settings
from tools.agent_sdk_client import AgentSDKClient

if TYPE_CHECKING:
    from agents.content_generator import GeneratedEbook

logger = logging.getLogger(__name__)

SUPPORTED_LANGUAGES: dict[str, str] = {
    "pt": "Português",
    "en": "English",
    "es": "Español",
    "zh": "中文",
    "hi": "हिन्दी",
    "ar": "العربية",
    "bn": "বাংলা",
    "ru": "Русский",
    "ja": "日本語",
    "de": "Deutsch",
    "fr": "Français",
}


def language_name(code: str) -> str:
    """Display name for a supported code; raises for anything else."""
    try:
        return SUPPORTED_LANGUAGES[code]
    except KeyError:
        raise UnsupportedLanguageError(code) from None


def validate_languages(codes: Iterable[str] | str) -> list[str]:
    """Normalize a language set, keeping request order.

    Accepts a list or a comma-joined string. Duplicates are dropped.

    Raises:
        UnsupportedLanguageError: For any code outside SUPPORTED_LANGUAGES.
        ValidationError: If nothing is left.
    """
    if isinstance(codes, str):
        codes = codes.split(",")
    result: list[str] = []
    for raw in codes:
        code = raw.strip().lower()
        if not code:
            continue
        language_name(code)
        if code not in result:
            result.append(code)
    if not result:
        raise ValidationError("At least one language is required")
    return result


class Translator(BaseAgent):
    """Translates text blocks one LLM call at a time."""

    def __init__(
        self,
        llm_client: Optional[AgentSDKClient] = None,
        settings: Optional[Settings] = None,
    ):
        super().__init__(llm_client, settings)

    async def translate(self, text: str, target_language: str) -> str:
        """Translate ``text`` into ``target_language``.

        Formatting is requested from the model but not verified here.

        Raises:
            UnsupportedLanguageError: Before any LLM call, for unknown codes.
            LLMError: If the model fails or answers with nothing.
        """
        name = language_name(target_language)
        if not text or not text.strip():
            return text

        translated = await self.llm.chat(
            system_prompt=(
                f"You are a professional translator. Translate the following content to {name}.\n"
                "Maintain the original formatting, structure, and tone. Keep every line that "
                "starts with '## ' as a heading line.\n"
                "For technical terms, use the most appropriate translation in the target language.\n"
                "Do not add any comments or explanations, just provide the translation."
            ),
            user_prompt=text,
            model=self.settings.llm_model_translation,
        )
        translated = (translated or "").strip()
        if not translated:
            raise LLMError("Translation returned no content", {"language": target_language})
        return translated

    async def translate_ebook(self, ebook: "GeneratedEbook", target_language: str) -> "GeneratedEbook":
        """Translate title, subtitle, chapters and front/back matter field by field.

        Blank fields stay blank without an LLM call.
        """
        from agents.content_generator import GeneratedChapter, GeneratedEbook

        language_name(target_language)
        logger.info("Translating '%s' to %s (%d chapters)",
                    ebook.title, target_language, len(ebook.chapters))

        title = await self.translate(ebook.title, target_language)
        subtitle = await self.translate(ebook.subtitle, target_language)

        async def _chapter(chapter: GeneratedChapter) -> GeneratedChapter:
            chapter_title = await self.translate(chapter.title, target_language)
            content = await self.translate(chapter.content, target_language)
            hook = await self.translate(chapter.hook, target_language)
            return GeneratedChapter(title=chapter_title, content=content, hook=hook)

        async def _matter(name: str, text: str) -> tuple[str, str]:
            return name, await self.translate(text, target_language)

        chapters = await asyncio.gather(*(_chapter(ch) for ch in ebook.chapters))
        matter = await asyncio.gather(*(_matter(k, v) for k, v in ebook.matter().items()))
        return GeneratedEbook(
            title=title, chapters=list(chapters), language=target_language,
            subtitle=subtitle, **dict(matter),
        )
