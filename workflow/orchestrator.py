"""Multi-language orchestrator: one base ebook, translated and published per language."""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Optional

from agents.content_generator import ContentGenerator, GeneratedEbook
from agents.translator import Translator, validate_languages
from config.settings import Settings
from tools.agent_sdk_client import AgentSDKClient
from tools.image_client import ImageClient
from tools.storage import LocalStorage
from workflow.compiler import build_cover_prompt, compile_to_epub, compile_to_html

logger = logging.getLogger(__name__)


@dataclass
class LanguageFile:
    """Artifacts produced for one language."""
    language_code: str
    title: str
    epub_url: str
    pdf_url: str
    cover_url: str
    ebook: GeneratedEbook


@dataclass
class LanguageBatch:
    """Outcome of one orchestration run.

    ``files`` keeps request order and holds only successful languages;
    ``failures`` maps each skipped language to its error message.
    """
    base: GeneratedEbook
    requested: list[str]
    files: list[LanguageFile] = field(default_factory=list)
    failures: dict[str, str] = field(default_factory=dict)

    @property
    def all_failed(self) -> bool:
        return not self.files

    @property
    def partial(self) -> bool:
        return bool(self.files) and bool(self.failures)

    @property
    def primary(self) -> Optional[LanguageFile]:
        return self.files[0] if self.files else None


def storage_key(user_id: int, ebook_id: int, language: str, name: str) -> str:
    return f"ebooks/{user_id}/{ebook_id}/{language}/{name}"


class MultiLanguageOrchestrator:
    """Generates base content once, then translates, compiles, uploads and
    illustrates each requested language independently."""

    def __init__(
        self,
        llm_client: Optional[AgentSDKClient] = None,
        settings: Optional[Settings] = None,
        storage: Optional[LocalStorage] = None,
        image_client: Optional[ImageClient] = None,
        generator: Optional[ContentGenerator] = None,
        translator: Optional[Translator] = None,
    ):
        self.settings = settings or Settings()
        llm = llm_client or AgentSDKClient(self.settings)
        self.storage = storage or LocalStorage(self.settings)
        self.images = image_client or ImageClient(self.settings)
        self.generator = generator or ContentGenerator(llm, self.settings)
        self.translator = translator or Translator(llm, self.settings)

    async def run(
        self,
        theme: str,
        author: str,
        languages: list[str] | str,
        user_id: int,
        ebook_id: int,
        num_chapters: Optional[int] = None,
    ) -> LanguageBatch:
        """Produce per-language artifacts.

        The base ebook is generated once in the first requested language; a
        failure there propagates. Any failure after that is confined to its
        language, which is logged and skipped.
        """
        codes = validate_languages(languages)
        base_language = codes[0]
        if num_chapters is None:
            num_chapters = self.settings.default_num_chapters

        base = await self.generator.generate(theme, num_chapters, base_language, author=author)
        logger.info("Ebook %d: base content ready in %s, processing %d language(s)",
                    ebook_id, base_language, len(codes))

        results = await asyncio.gather(
            *(self._process_language(base, code, theme, author, user_id, ebook_id) for code in codes),
            return_exceptions=True,
        )

        batch = LanguageBatch(base=base, requested=codes)
        for code, result in zip(codes, results):
            if isinstance(result, BaseException):
                if not isinstance(result, Exception):
                    raise result
                logger.error("Ebook %d: language %s failed: %s", ebook_id, code, result)
                batch.failures[code] = str(result) or type(result).__name__
            else:
                batch.files.append(result)

        logger.info("Ebook %d: %d/%d language(s) generated", ebook_id, len(batch.files), len(codes))
        return batch

    async def _process_language(
        self,
        base: GeneratedEbook,
        code: str,
        theme: str,
        author: str,
        user_id: int,
        ebook_id: int,
    ) -> LanguageFile:
        ebook = base if code == base.language else await self.translator.translate_ebook(base, code)

        matter = {"subtitle": ebook.subtitle, **ebook.matter()}
        html = compile_to_html(ebook.title, author, ebook.chapters, code, **matter).encode("utf-8")
        pdf_url = await self.storage.put(
            storage_key(user_id, ebook_id, code, "ebook.html"), html, "text/html",
        )
        epub = compile_to_epub(
            ebook.title, author, ebook.chapters, code,
            identifier=f"ebookforge-{ebook_id}-{code}", **matter,
        )
        epub_url = await self.storage.put(
            storage_key(user_id, ebook_id, code, "ebook.epub"), epub, "application/epub+zip",
        )
        cover_url = await self.images.generate(build_cover_prompt(ebook.title, theme))

        logger.debug("Ebook %d: language %s published", ebook_id, code)
        return LanguageFile(
            language_code=code,
            title=ebook.title,
            epub_url=epub_url,
            pdf_url=pdf_url,
            cover_url=cover_url,
            ebook=ebook,
        )
