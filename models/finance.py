"""Publication tracking, publishing guides and financial rollup models."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from models.enums import Platform

# Steps a publishing guide starts with, per platform
DEFAULT_CHECKLISTS: dict[Platform, list[str]] = {
    Platform.AMAZON_KDP: [
        "Create or sign in to the KDP account",
        "Fill in title, subtitle and description",
        "Add the 7 keywords and 2 categories",
        "Upload the EPUB manuscript and the cover",
        "Set the price and royalty plan",
        "Publish and wait for review",
    ],
    Platform.HOTMART: [
        "Register the product as an ebook",
        "Upload the file to the members area",
        "Write the sales page copy",
        "Set price and payment options",
        "Configure the affiliate program",
    ],
    Platform.EDUZZ: [
        "Create the digital product",
        "Upload the ebook file",
        "Set price and checkout",
        "Submit for approval",
    ],
    Platform.MONETIZZE: [
        "Create the product",
        "Upload the ebook file",
        "Set price and affiliate commission",
        "Submit for approval",
    ],
    Platform.KIWIFY: [
        "Create the product",
        "Upload the ebook file",
        "Customize the checkout",
        "Set price and publish",
    ],
    Platform.VOOMP: [
        "Create the product",
        "Upload the ebook file",
        "Set price and affiliate rules",
        "Publish",
    ],
}


def default_checklist(platform: Platform) -> list[dict]:
    return [{"item": step, "done": False} for step in DEFAULT_CHECKLISTS.get(Platform(platform), [])]


@dataclass
class Publication:
    """An ebook marked as published on one platform, with its own numbers."""
    id: Optional[int] = None
    ebook_id: int = 0
    platform: Platform = Platform.AMAZON_KDP
    published: bool = True
    publication_url: Optional[str] = None
    published_at: Optional[datetime] = None
    notes: Optional[str] = None
    # Money is kept as decimal strings
    traffic_cost: str = "0"
    other_costs: str = "0"
    revenue: str = "0"
    sales_count: int = 0


@dataclass
class PublishingGuide:
    """Step-by-step publishing checklist for one ebook on one platform.

    ``checklist`` holds ``{"item": str, "done": bool}`` entries in order.
    """
    id: Optional[int] = None
    ebook_id: int = 0
    platform: Platform = Platform.AMAZON_KDP
    completed: bool = False
    checklist: list[dict] = field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass
class FinancialMetric:
    """Ebook-level cost and revenue rollup (not per platform)."""
    id: Optional[int] = None
    ebook_id: int = 0
    traffic_cost: str = "0"
    other_costs: str = "0"
    revenue: str = "0"
    notes: Optional[str] = None
    updated_at: Optional[datetime] = None
