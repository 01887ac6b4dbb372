"""Ebook compiler: renders a structured ebook into a styled HTML document
and an EPUB package.

The HTML document serves as the PDF artifact.
"""

import io
import logging
import uuid
from datetime import datetime
from html import escape
from typing import Iterable, Optional

from ebooklib import epub

logger = logging.getLogger(__name__)

# (chapter, by, contents, all rights reserved)
_LABELS: dict[str, tuple[str, str, str, str]] = {
    "en": ("Chapter", "by", "Contents", "All rights reserved."),
    "pt": ("Capítulo", "por", "Sumário", "Todos os direitos reservados."),
    "es": ("Capítulo", "por", "Índice", "Todos los derechos reservados."),
    "fr": ("Chapitre", "par", "Table des matières", "Tous droits réservés."),
    "de": ("Kapitel", "von", "Inhalt", "Alle Rechte vorbehalten."),
    "ru": ("Глава", "автор", "Содержание", "Все права защищены."),
    "ja": ("第章", "著", "目次", "無断転載を禁じます。"),
    "zh": ("章", "作者", "目录", "版权所有。"),
}

# (reader letter, bonus, about the author, next step)
_MATTER_LABELS: dict[str, tuple[str, str, str, str]] = {
    "en": ("Letter to the Reader", "Exclusive Bonus", "About the Author", "Next Step"),
    "pt": ("Carta ao Leitor", "Bônus Exclusivos", "Sobre o Autor", "Próximo Passo"),
    "es": ("Carta al Lector", "Bonos Exclusivos", "Sobre el Autor", "Próximo Paso"),
    "fr": ("Lettre au Lecteur", "Bonus Exclusifs", "À propos de l'auteur", "Prochaine Étape"),
    "de": ("Brief an den Leser", "Exklusive Boni", "Über den Autor", "Nächster Schritt"),
}

_STYLE = """
body { font-family: Georgia, 'Times New Roman', serif; line-height: 1.6; margin: 0 auto; max-width: 42em; padding: 2em; color: #222; }
.cover { text-align: center; padding-top: 30%; page-break-after: always; }
.cover h1 { font-size: 2.4em; margin-bottom: 0.5em; }
.cover .cover-subtitle { font-size: 1.3em; color: #555; margin-bottom: 1.5em; }
.cover .author { font-size: 1.2em; font-style: italic; }
.rights { page-break-after: always; font-size: 0.9em; color: #555; }
.toc { page-break-after: always; }
.toc ol { padding-left: 1.2em; }
.reader-letter { page-break-after: always; font-style: italic; }
.chapter { page-break-before: always; }
.chapter h1 { font-size: 1.8em; border-bottom: 1px solid #ccc; padding-bottom: 0.3em; }
.chapter h2 { font-size: 1.3em; margin-top: 1.5em; }
.chapter-hook { margin-top: 2em; padding: 1em; border-left: 4px solid #888; font-style: italic; }
.bonus, .about-author, .cta-next { page-break-before: always; }
.cta-next { text-align: center; }
p { text-align: justify; margin: 0 0 1em; }
"""

# (field, CSS class) of every back matter block, in reading order
_BACK_MATTER: list[tuple[str, str]] = [
    ("bonus", "bonus"),
    ("about_author", "about-author"),
    ("cta_next", "cta-next"),
]


def labels_for(language: str) -> tuple[str, str, str, str]:
    return _LABELS.get(language, _LABELS["en"])


def matter_labels_for(language: str) -> tuple[str, str, str, str]:
    return _MATTER_LABELS.get(language, _MATTER_LABELS["en"])


def _chapter_heading(label: str, number: int, language: str) -> str:
    if language in ("ja", "zh"):
        return f"第{number}{label[-1]}"
    return f"{label} {number}"


def _chapter_items(chapters: Iterable) -> list[tuple[str, str, str]]:
    """(title, content, hook) for chapter objects or dicts."""
    items = []
    for ch in chapters:
        if isinstance(ch, dict):
            items.append((ch["title"], ch["content"], ch.get("hook") or ""))
        else:
            items.append((ch.title, ch.content, getattr(ch, "hook", "") or ""))
    return items


def render_content(content: str) -> str:
    """Render chapter text: ``## `` lines become h2, blank-line blocks become paragraphs."""
    blocks: list[str] = []
    paragraph: list[str] = []

    def flush():
        if paragraph:
            blocks.append(f"<p>{escape(' '.join(paragraph))}</p>")
            paragraph.clear()

    for raw in content.splitlines():
        line = raw.strip()
        if line.startswith("## "):
            flush()
            blocks.append(f"<h2>{escape(line[3:].strip())}</h2>")
        elif not line:
            flush()
        else:
            paragraph.append(line)
    flush()
    return "\n".join(blocks)


def _chapter_section(number: int, heading: str, ch_title: str, content: str, hook: str) -> str:
    hook_html = f'<div class="chapter-hook">\n{render_content(hook)}\n</div>\n' if hook.strip() else ""
    return (
        f'<section class="chapter" id="chapter-{number}">\n'
        f"<h1>{escape(heading)}: {escape(ch_title)}</h1>\n"
        f"{render_content(content)}\n"
        f"{hook_html}"
        "</section>"
    )


def _matter_block(css_class: str, heading: str, text: str) -> str:
    return (
        f'<div class="{css_class}">\n'
        f"<h1>{escape(heading)}</h1>\n"
        f"{render_content(text)}\n"
        "</div>\n"
    )


def compile_to_html(
    title: str,
    author: str,
    chapters: Iterable,
    language: str = "pt",
    year: Optional[int] = None,
    subtitle: str = "",
    reader_letter: str = "",
    bonus: str = "",
    about_author: str = "",
    cta_next: str = "",
) -> str:
    """Build the full HTML document.

    ``chapters`` holds objects with ``title``, ``content`` and optional
    ``hook`` attributes, or dicts with the same keys. Blank subtitle, hooks
    and matter are left out. Output depends only on the arguments.
    """
    chapter_label, by_label, contents_label, rights_label = labels_for(language)
    letter_label, *back_labels = matter_labels_for(language)
    year = year or datetime.now().year
    items = _chapter_items(chapters)
    back_texts = {"bonus": bonus, "about_author": about_author, "cta_next": cta_next}

    toc = "\n".join(
        f'<li><a href="#chapter-{i}">{escape(_chapter_heading(chapter_label, i, language))}: '
        f"{escape(ch_title)}</a></li>"
        for i, (ch_title, _, _) in enumerate(items, start=1)
    )
    body = "\n".join(
        _chapter_section(i, _chapter_heading(chapter_label, i, language), ch_title, content, hook)
        for i, (ch_title, content, hook) in enumerate(items, start=1)
    )
    subtitle_html = f'<p class="cover-subtitle">{escape(subtitle)}</p>\n' if subtitle.strip() else ""
    letter_html = _matter_block("reader-letter", letter_label, reader_letter) if reader_letter.strip() else ""
    back_html = "".join(
        _matter_block(css_class, label, back_texts[name])
        for (name, css_class), label in zip(_BACK_MATTER, back_labels)
        if back_texts[name].strip()
    )

    return (
        "<!DOCTYPE html>\n"
        f'<html lang="{escape(language)}">\n'
        "<head>\n"
        '<meta charset="utf-8">\n'
        f"<title>{escape(title)}</title>\n"
        f"<style>{_STYLE}</style>\n"
        "</head>\n"
        "<body>\n"
        '<div class="cover">\n'
        f"<h1>{escape(title)}</h1>\n"
        f"{subtitle_html}"
        f'<p class="author">{escape(by_label)} {escape(author)}</p>\n'
        "</div>\n"
        '<div class="rights">\n'
        f"<p>&copy; {year} {escape(author)}. {escape(rights_label)}</p>\n"
        "</div>\n"
        '<nav class="toc">\n'
        f"<h2>{escape(contents_label)}</h2>\n"
        f"<ol>\n{toc}\n</ol>\n"
        "</nav>\n"
        f"{letter_html}"
        f"{body}\n"
        f"{back_html}"
        "</body>\n"
        "</html>\n"
    )


def compile_to_epub(
    title: str,
    author: str,
    chapters: Iterable,
    language: str = "pt",
    identifier: Optional[str] = None,
    year: Optional[int] = None,
    subtitle: str = "",
    reader_letter: str = "",
    bonus: str = "",
    about_author: str = "",
    cta_next: str = "",
) -> bytes:
    """Build an EPUB package with one XHTML document per chapter.

    Front matter (title page, letter to the reader) precedes the chapters,
    back matter follows them; blank parts are left out.
    """
    chapter_label, by_label, _, rights_label = labels_for(language)
    letter_label, *back_labels = matter_labels_for(language)
    year = year or datetime.now().year
    items = _chapter_items(chapters)

    book = epub.EpubBook()
    book.set_identifier(identifier or str(uuid.uuid5(uuid.NAMESPACE_URL, f"{title}|{author}|{language}")))
    book.set_title(title)
    book.set_language(language)
    book.add_author(author)
    if subtitle.strip():
        book.add_metadata("DC", "description", subtitle)

    css_item = epub.EpubItem(
        uid="style", file_name="style/default.css",
        media_type="text/css", content=_STYLE.encode("utf-8"),
    )
    book.add_item(css_item)

    def _page(page_title: str, file_name: str, html: str) -> epub.EpubHtml:
        page = epub.EpubHtml(title=page_title, file_name=file_name, lang=language)
        page.content = html.encode("utf-8")
        page.add_item(css_item)
        book.add_item(page)
        return page

    subtitle_html = f'<p class="cover-subtitle">{escape(subtitle)}</p>' if subtitle.strip() else ""
    title_page = _page(title, "title.xhtml", (
        f'<div class="cover"><h1>{escape(title)}</h1>{subtitle_html}'
        f'<p class="author">{escape(by_label)} {escape(author)}</p></div>'
        f'<div class="rights"><p>&copy; {year} {escape(author)}. {escape(rights_label)}</p></div>'
    ))
    spine: list = ["nav", title_page]
    toc: list = []

    if reader_letter.strip():
        letter = _page(letter_label, "reader_letter.xhtml",
                       _matter_block("reader-letter", letter_label, reader_letter))
        spine.append(letter)
        toc.append(letter)

    for i, (ch_title, content, hook) in enumerate(items, start=1):
        heading = _chapter_heading(chapter_label, i, language)
        chapter = _page(f"{heading}: {ch_title}", f"chapter_{i:02d}.xhtml",
                        _chapter_section(i, heading, ch_title, content, hook))
        spine.append(chapter)
        toc.append(chapter)

    back_texts = {"bonus": bonus, "about_author": about_author, "cta_next": cta_next}
    for (name, css_class), label in zip(_BACK_MATTER, back_labels):
        if not back_texts[name].strip():
            continue
        page = _page(label, f"{name}.xhtml", _matter_block(css_class, label, back_texts[name]))
        spine.append(page)
        toc.append(page)

    book.toc = toc
    book.spine = spine
    book.add_item(epub.EpubNcx())
    book.add_item(epub.EpubNav())

    buffer = io.BytesIO()
    epub.write_epub(buffer, book, {})
    data = buffer.getvalue()
    logger.debug("EPUB '%s' compiled: %d chapter(s), %d bytes", title, len(items), len(data))
    return data


def build_cover_prompt(title: str, theme: str) -> str:
    """Image prompt for a cover; the title is used as given, the theme untranslated."""
    return (
        f'Professional ebook cover for a book titled "{title}" about {theme}. '
        "Modern, clean and eye-catching design, vertical format, with the title "
        "clearly legible. No extra text, no watermark."
    )
