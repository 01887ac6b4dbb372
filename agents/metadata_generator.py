"""Metadata Generator: SEO and pricing metadata for publishing platforms."""

import logging
from dataclasses import dataclass, field
from typing import Optional

from agents.base_agent import BaseAgent
from config.settings import Settings
from models.enums import Platform
from tools.agent_sdk_client import AgentSDKClient

logger = logging.getLogger(__name__)

DEFAULT_PRICE = "R$ 27,00"

_METADATA_SCHEMA = {
    "type": "object",
    "properties": {
        "optimizedTitle": {"type": "string", "description": "Keyword-rich title, max 200 chars"},
        "shortDescription": {"type": "string", "description": "Persuasive blurb, max 200 chars"},
        "longDescription": {"type": "string", "description": "Benefit-driven description, max 4000 chars"},
        "keywords": {"type": "array", "items": {"type": "string"}, "description": "7 keywords"},
        "categories": {"type": "array", "items": {"type": "string"}, "description": "3 categories"},
        "suggestedPrice": {"type": "string", "description": "Price in BRL, e.g. R$ 27,00"},
        "targetAudience": {"type": "string", "description": "Detailed target audience"},
    },
    "required": [
        "optimizedTitle", "shortDescription", "longDescription",
        "keywords", "categories", "suggestedPrice", "targetAudience",
    ],
    "additionalProperties": False,
}


@dataclass
class OptimizedMetadata:
    optimized_title: str
    short_description: str = ""
    long_description: str = ""
    keywords: list[str] = field(default_factory=list)
    categories: list[str] = field(default_factory=list)
    suggested_price: str = DEFAULT_PRICE
    target_audience: str = ""


def _string_list(value) -> list[str]:
    if not isinstance(value, list):
        return []
    return [str(v).strip() for v in value if str(v).strip()]


class MetadataGenerator(BaseAgent):
    """Derives store metadata from a generated ebook's title and content."""

    def __init__(
        self,
        llm_client: Optional[AgentSDKClient] = None,
        settings: Optional[Settings] = None,
    ):
        super().__init__(llm_client, settings)

    async def generate(self, original_title: str, theme: str, content_preview: str) -> OptimizedMetadata:
        """Ask the model for metadata and fill defaults for anything left blank."""
        data = await self.llm.chat_json(
            system_prompt=(
                "You are a digital marketing and SEO specialist for ebooks. Create "
                "optimized metadata that maximizes sales and visibility."
            ),
            user_prompt=(
                "Create optimized metadata for an ebook with the following information:\n\n"
                f"Original title: {original_title}\n"
                f"Theme: {theme}\n"
                f"Content preview: {self._clip(content_preview, 500)}\n\n"
                "Produce:\n"
                "1. Optimized title (max 200 characters, with keywords)\n"
                "2. Short description (max 200 characters, persuasive)\n"
                "3. Long description (max 4000 characters, detailed, benefit-driven)\n"
                "4. 7 relevant keywords (for Amazon KDP)\n"
                "5. 3 main categories\n"
                "6. Suggested price in Brazilian reais (consider perceived value)\n"
                "7. Detailed target audience"
            ),
            schema=_METADATA_SCHEMA,
            model=self.settings.llm_model_metadata,
        )

        return OptimizedMetadata(
            optimized_title=str(data.get("optimizedTitle") or "").strip() or original_title,
            short_description=str(data.get("shortDescription") or ""),
            long_description=str(data.get("longDescription") or ""),
            keywords=_string_list(data.get("keywords")),
            categories=_string_list(data.get("categories")),
            suggested_price=str(data.get("suggestedPrice") or "").strip() or DEFAULT_PRICE,
            target_audience=str(data.get("targetAudience") or ""),
        )


def format_for_platform(metadata: OptimizedMetadata, platform: Platform) -> dict:
    """Shape metadata into the field names each platform's listing form uses."""
    base = {
        "title": metadata.optimized_title,
        "description": metadata.long_description,
        "price": metadata.suggested_price,
        "keywords": ", ".join(metadata.keywords),
        "categories": ", ".join(metadata.categories),
    }

    if platform == Platform.AMAZON_KDP:
        categories = metadata.categories + [None, None]
        return {
            **base,
            "subtitle": metadata.short_description,
            "keywords": list(metadata.keywords),
            "primary_category": categories[0],
            "secondary_category": categories[1],
        }
    if platform in (Platform.HOTMART, Platform.KIWIFY):
        return {
            **base,
            "product_name": metadata.optimized_title,
            "sales_page_description": metadata.long_description,
            "tags": ", ".join(metadata.keywords),
        }
    if platform == Platform.EDUZZ:
        return {
            **base,
            "product_title": metadata.optimized_title,
            "sales_description": metadata.long_description,
        }
    if platform in (Platform.MONETIZZE, Platform.VOOMP):
        return {**base, "product_name": metadata.optimized_title}
    return base
