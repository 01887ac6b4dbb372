"""Platform Recommender: ranks publishing platforms for an ebook's niche."""

import logging
from typing import Optional

from agents.base_agent import BaseAgent
from config.exceptions import LLMError
from config.settings import Settings
from models.enums import Platform, SalesPotential
from tools.agent_sdk_client import AgentSDKClient

logger = logging.getLogger(__name__)

_PLATFORM_GUIDE = """\
1. amazon_kdp - Largest global reach, 35-70% royalties, general fiction and non-fiction
2. hotmart - Brazilian leader, strong affiliate program, personal development, business, health
3. eduzz - Own checkout, cart recovery, info-products and digital marketing
4. monetizze - Robust affiliates, lucrative niches (weight loss, finance, relationships)
5. kiwify - Modern and simple, good for beginners and every niche
6. voomp - Education focus, deep courses and educational content"""

_RECOMMENDATION_SCHEMA = {
    "type": "object",
    "properties": {
        "recommendations": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "platform": {"type": "string", "enum": [p.value for p in Platform]},
                    "score": {"type": "number"},
                    "reason": {"type": "string"},
                    "target_audience": {"type": "string"},
                    "sales_potential": {"type": "string", "enum": [s.value for s in SalesPotential]},
                },
                "required": ["platform", "score", "reason", "target_audience", "sales_potential"],
            },
        },
    },
    "required": ["recommendations"],
}

FALLBACK_RECOMMENDATIONS: list[dict] = [
    {
        "platform": Platform.HOTMART.value,
        "score": 85,
        "reason": "Leading Brazilian platform with wide reach",
        "target_audience": "Brazilian readers interested in personal development and business",
        "sales_potential": SalesPotential.HIGH.value,
    },
    {
        "platform": Platform.AMAZON_KDP.value,
        "score": 80,
        "reason": "Largest global reach and credibility",
        "target_audience": "Global readers across niches",
        "sales_potential": SalesPotential.HIGH.value,
    },
    {
        "platform": Platform.KIWIFY.value,
        "score": 75,
        "reason": "Modern platform that is easy to use",
        "target_audience": "Brazilian buyers of info-products",
        "sales_potential": SalesPotential.MEDIUM.value,
    },
]


def _normalize(item) -> Optional[dict]:
    if not isinstance(item, dict):
        return None
    try:
        platform = Platform(str(item.get("platform", "")).strip().lower())
        score = max(0.0, min(100.0, float(item.get("score", 0))))
    except (ValueError, TypeError):
        return None
    potential = str(item.get("sales_potential") or "")
    if potential not in {s.value for s in SalesPotential}:
        potential = SalesPotential.MEDIUM.value
    return {
        "platform": platform.value,
        "score": score,
        "reason": str(item.get("reason") or ""),
        "target_audience": str(item.get("target_audience") or ""),
        "sales_potential": potential,
    }


class PlatformRecommender(BaseAgent):
    """Recommends the three best platforms for publishing an ebook."""

    def __init__(
        self,
        llm_client: Optional[AgentSDKClient] = None,
        settings: Optional[Settings] = None,
    ):
        super().__init__(llm_client, settings)

    async def recommend(self, theme: str, title: str, description: str = "") -> list[dict]:
        """Return recommendations sorted by score, or the fixed fallback list on LLM failure."""
        prompt = (
            "Analyze this ebook and recommend the 3 best platforms to publish it.\n"
            f"- Theme: {theme}\n- Title: {title}\n"
        )
        if description:
            prompt += f"- Description: {self._clip(description, 500)}\n"
        prompt += (
            f"\nAvailable platforms:\n{_PLATFORM_GUIDE}\n\n"
            "For each recommended platform give a suitability score (0-100), a one-sentence "
            "reason, the expected audience and the sales potential."
        )

        try:
            data = await self.llm.chat_json(
                system_prompt=(
                    "You are a digital market analyst who recommends ebook sales platforms."
                ),
                user_prompt=prompt,
                schema=_RECOMMENDATION_SCHEMA,
                model=self.settings.llm_model_metadata,
            )
        except LLMError as e:
            logger.error("Platform recommendation failed, using fallback: %s", e)
            return [dict(item) for item in FALLBACK_RECOMMENDATIONS]

        recommendations = [r for r in map(_normalize, data.get("recommendations") or []) if r]
        if not recommendations:
            logger.warning("Platform recommendation returned nothing usable, using fallback")
            return [dict(item) for item in FALLBACK_RECOMMENDATIONS]
        recommendations.sort(key=lambda r: r["score"], reverse=True)
        return recommendations[:3]
