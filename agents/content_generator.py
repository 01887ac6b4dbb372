"""Content Generator: single-language ebook from a theme in two LLM calls."""

import logging
from dataclasses import dataclass, field
from typing import Optional

from agents.base_agent import BaseAgent
from agents.translator import language_name
from config.exceptions import GenerationError, ValidationError
from config.settings import Settings
from tools.agent_sdk_client import AgentSDKClient

logger = logging.getLogger(__name__)

# Fixed section order inside every chapter: (slug, English label)
SECTIONS: list[tuple[str, str]] = [
    ("introduction", "Introduction"),
    ("development", "Development"),
    ("practical_examples", "Practical Examples"),
    ("conclusion", "Conclusion"),
]

_SECTION_LABELS: dict[str, tuple[str, str, str, str]] = {
    "pt": ("Introdução", "Desenvolvimento", "Exemplos Práticos", "Conclusão"),
    "es": ("Introducción", "Desarrollo", "Ejemplos Prácticos", "Conclusión"),
    "fr": ("Introduction", "Développement", "Exemples Pratiques", "Conclusion"),
    "de": ("Einleitung", "Hauptteil", "Praxisbeispiele", "Fazit"),
}

_STRUCTURE_SCHEMA = {
    "type": "object",
    "properties": {
        "title": {"type": "string", "description": "Attractive, professional ebook title"},
        "subtitle": {"type": "string", "description": "One-line subtitle stating the promised transformation"},
        "chapters": {
            "type": "array",
            "description": "Chapter titles in reading order",
            "items": {"type": "string"},
        },
    },
    "required": ["title", "chapters"],
    "additionalProperties": False,
}

_MIN_SECTION_WORDS = 300

# Front and back matter fields of the batched content call: (field, prompt)
MATTER_FIELDS: list[tuple[str, str]] = [
    ("reader_letter", (
        'A personal "Letter to the Reader" (Carta ao Leitor) that connects emotionally, '
        "promises the specific transformation, explains how to use the book and is signed by the author"
    )),
    ("bonus", "An exclusive bonus section with practical extras such as checklists and templates"),
    ("about_author", 'An "About the Author" section presenting the author as a credible guide on the theme'),
    ("cta_next", 'A closing "Next Step" call to action inviting the reader to keep going'),
]


@dataclass
class GeneratedChapter:
    title: str
    content: str  # plain text, one "## Heading" line per section
    hook: str = ""  # closing teaser for the next chapter


@dataclass
class GeneratedEbook:
    title: str
    chapters: list[GeneratedChapter] = field(default_factory=list)
    language: str = "pt"
    subtitle: str = ""
    reader_letter: str = ""
    bonus: str = ""
    about_author: str = ""
    cta_next: str = ""

    def preview(self, limit: int = 1000) -> str:
        return " ".join(ch.content for ch in self.chapters)[:limit]

    def matter(self) -> dict[str, str]:
        """Front and back matter texts keyed by field name."""
        return {name: getattr(self, name) for name, _ in MATTER_FIELDS}

    def to_dict(self) -> dict:
        return {
            "title": self.title,
            "subtitle": self.subtitle,
            "language": self.language,
            "chapters": [
                {"title": ch.title, "content": ch.content, "hook": ch.hook}
                for ch in self.chapters
            ],
            **self.matter(),
        }


def section_labels(language: str) -> list[str]:
    labels = _SECTION_LABELS.get(language)
    return list(labels) if labels else [label for _, label in SECTIONS]


def section_field(chapter_index: int, slug: str) -> str:
    """Flat field name for one (chapter, section) pair; chapter_index is 0-based."""
    return f"chapter_{chapter_index + 1}_{slug}"


def build_section_fields(chapter_titles: list[str], theme: str) -> dict[str, dict]:
    """Map every (chapter index, section) pair to a JSON-schema string field."""
    fields: dict[str, dict] = {}
    for index, chapter_title in enumerate(chapter_titles):
        for slug, label in SECTIONS:
            fields[section_field(index, slug)] = {
                "type": "string",
                "description": (
                    f'The "{label}" section of chapter "{chapter_title}" about {theme}. '
                    f"Detailed, didactic and professional. At least {_MIN_SECTION_WORDS} words."
                ),
            }
    return fields


def hook_field(chapter_index: int) -> str:
    return f"chapter_{chapter_index + 1}_hook"


def build_matter_fields(chapter_titles: list[str], theme: str, author: str = "") -> dict[str, dict]:
    """Optional string fields for chapter hooks and the front/back matter."""
    fields: dict[str, dict] = {}
    for index, chapter_title in enumerate(chapter_titles):
        fields[hook_field(index)] = {
            "type": "string",
            "description": (
                f'Two or three sentences closing chapter "{chapter_title}": a provocative '
                "question or a promise of what the next chapter brings."
            ),
        }
    for name, prompt in MATTER_FIELDS:
        description = f"{prompt}. Theme: {theme}."
        if author:
            description += f" Author: {author}."
        fields[name] = {"type": "string", "description": description}
    return fields


def normalize_chapter_titles(titles: list, count: int) -> list[str]:
    """Truncate or re-pad to exactly ``count`` non-empty titles."""
    cleaned = [str(t).strip() for t in titles if isinstance(t, str) and t.strip()]
    cleaned = cleaned[:count]
    while len(cleaned) < count:
        cleaned.append(f"Chapter {len(cleaned) + 1}")
    return cleaned


class ContentGenerator(BaseAgent):
    """Builds a structured ebook (title + N chapters) for one theme."""

    def __init__(
        self,
        llm_client: Optional[AgentSDKClient] = None,
        settings: Optional[Settings] = None,
    ):
        super().__init__(llm_client, settings)

    def validate_chapter_count(self, num_chapters: int):
        low, high = self.settings.min_chapters, self.settings.max_chapters
        if not low <= num_chapters <= high:
            raise ValidationError(
                f"num_chapters must be between {low} and {high}",
                {"num_chapters": num_chapters},
            )

    async def generate(
        self, theme: str, num_chapters: int, language: str = "pt", author: str = "",
    ) -> GeneratedEbook:
        """Generate title, chapter titles, all chapter sections and the
        front/back matter.

        Hooks and matter are optional; blank ones are kept as empty strings.

        Raises:
            ValidationError: If ``num_chapters`` is out of range.
            GenerationError: If the structure has no chapter list or any
                section comes back empty.
            LLMError: If either LLM call fails.
        """
        self.validate_chapter_count(num_chapters)
        lang_name = language_name(language)

        logger.info("Generating structure: theme=%r, chapters=%d, language=%s",
                    theme, num_chapters, language)
        structure = await self.llm.chat_json(
            system_prompt=(
                "You are an expert ebook creator. Design professional, attractive "
                f"book structures. Write everything in {lang_name}."
            ),
            user_prompt=(
                f'Create the structure of an ebook about "{theme}". Produce an attractive '
                f"title, a subtitle and exactly {num_chapters} chapter titles that cover the "
                "subject completely and didactically."
            ),
            schema=_STRUCTURE_SCHEMA,
            model=self.settings.llm_model_writing,
        )

        book_title = str(structure.get("title") or "").strip() or theme
        subtitle = str(structure.get("subtitle") or "").strip()
        returned = structure.get("chapters")
        if returned is None:
            returned = []
        elif not isinstance(returned, list):
            raise GenerationError(
                "Structure 'chapters' must be a list of titles",
                {"type": type(returned).__name__},
            )
        if len(returned) != num_chapters:
            logger.warning("Structure returned %d chapter titles, expected %d",
                           len(returned), num_chapters)
        chapter_titles = normalize_chapter_titles(returned, num_chapters)

        fields = build_section_fields(chapter_titles, theme)
        content_schema = {
            "type": "object",
            "properties": {**fields, **build_matter_fields(chapter_titles, theme, author)},
            "required": list(fields),
            "additionalProperties": False,
        }

        logger.info("Generating content for %d sections of '%s'", len(fields), book_title)
        generated = await self.llm.chat_json(
            system_prompt=(
                "You are an author of professional, didactic ebooks. Write detailed, "
                f"well-structured and engaging content in {lang_name}. Plain text only, "
                "no markdown headings."
            ),
            user_prompt=(
                f'Write the complete content of an ebook about "{theme}" titled '
                f'"{book_title}". Every chapter has an introduction, a development, '
                "practical examples and a conclusion, then a closing hook. Also write the "
                "letter to the reader, the bonus, the about-the-author section and the "
                "next-step call to action."
            ),
            schema=content_schema,
            model=self.settings.llm_model_writing,
        )

        labels = section_labels(language)
        chapters = []
        for index, chapter_title in enumerate(chapter_titles):
            parts = []
            for (slug, _), label in zip(SECTIONS, labels):
                key = section_field(index, slug)
                text = str(generated.get(key) or "").strip()
                if not text:
                    raise GenerationError(
                        "Generated content is missing a section",
                        {"field": key, "chapter": chapter_title},
                    )
                parts.append(f"## {label}\n\n{text}")
            hook = str(generated.get(hook_field(index)) or "").strip()
            chapters.append(GeneratedChapter(
                title=chapter_title, content="\n\n".join(parts), hook=hook,
            ))

        matter = {name: str(generated.get(name) or "").strip() for name, _ in MATTER_FIELDS}
        logger.info("Ebook '%s' generated: %d chapters", book_title, len(chapters))
        return GeneratedEbook(
            title=book_title, chapters=chapters, language=language,
            subtitle=subtitle, **matter,
        )
