"""Ebook, per-language file and metadata models."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from models.enums import EbookStatus


@dataclass
class Ebook:
    """One generation request; carries the primary language's artifacts."""
    id: Optional[int] = None
    user_id: int = 0
    title: str = ""
    theme: str = ""
    author: str = ""
    languages: str = ""  # comma-joined codes, first is primary
    num_chapters: int = 5
    status: EbookStatus = EbookStatus.PROCESSING
    epub_url: Optional[str] = None
    pdf_url: Optional[str] = None
    cover_url: Optional[str] = None
    content: Optional[str] = None  # JSON: primary-language chapters
    error_message: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def language_list(self) -> list[str]:
        return [code.strip() for code in self.languages.split(",") if code.strip()]


@dataclass
class EbookFile:
    """Artifact set for one (ebook, language) pair."""
    id: Optional[int] = None
    ebook_id: int = 0
    language_code: str = ""
    title: str = ""
    epub_url: Optional[str] = None
    pdf_url: Optional[str] = None
    cover_url: Optional[str] = None
    status: EbookStatus = EbookStatus.PROCESSING
    error_message: Optional[str] = None
    created_at: Optional[datetime] = None


@dataclass
class EbookMetadata:
    """SEO and monetization metadata, one per ebook."""
    id: Optional[int] = None
    ebook_id: int = 0
    optimized_title: str = ""
    short_description: str = ""
    long_description: str = ""
    keywords: list[str] = field(default_factory=list)
    categories: list[str] = field(default_factory=list)
    suggested_price: str = ""
    target_audience: str = ""
    platform_recommendations: list[dict] = field(default_factory=list)
    created_at: Optional[datetime] = None
