"""Trending Topics Agent: suggests currently popular ebook themes."""

import logging
from dataclasses import dataclass
from typing import Optional

from agents.base_agent import BaseAgent
from config.settings import Settings
from tools.agent_sdk_client import AgentSDKClient

logger = logging.getLogger(__name__)

_TOPICS_SCHEMA = {
    "type": "object",
    "properties": {
        "topics": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "topic": {"type": "string"},
                    "description": {"type": "string"},
                    "relevance": {"type": "string"},
                },
                "required": ["topic", "description", "relevance"],
            },
        },
    },
    "required": ["topics"],
}


@dataclass
class TrendingTopic:
    topic: str
    description: str = ""
    relevance: str = ""


class TrendingTopicsAgent(BaseAgent):
    """Asks the model for themes in demand. No caching: every call is fresh."""

    def __init__(
        self,
        llm_client: Optional[AgentSDKClient] = None,
        settings: Optional[Settings] = None,
    ):
        super().__init__(llm_client, settings)

    async def find_topics(self, category: Optional[str] = None, count: int = 5) -> list[TrendingTopic]:
        scope = f'in the "{category}" category' if category else "in general"
        data = await self.llm.chat_json(
            system_prompt=(
                "You are a market trends and digital marketing expert. Identify popular, "
                "relevant themes for ebook creation."
            ),
            user_prompt=(
                f"List {count} trending themes {scope} that would make excellent, profitable "
                "ebooks. Consider current trends, market demand and monetization potential."
            ),
            schema=_TOPICS_SCHEMA,
            model=self.settings.llm_model_research,
        )

        topics = []
        for item in data.get("topics") or []:
            if not isinstance(item, dict):
                continue
            topic = str(item.get("topic") or "").strip()
            if topic:
                topics.append(TrendingTopic(
                    topic=topic,
                    description=str(item.get("description") or ""),
                    relevance=str(item.get("relevance") or ""),
                ))
        return topics[:count]

    async def next_topic(self, category: Optional[str] = None) -> str:
        """One theme for an automatic run, falling back to a fixed topic."""
        topics = await self.find_topics(category, 1)
        if not topics:
            logger.warning("No trending topic returned, using fallback '%s'",
                           self.settings.trending_fallback_topic)
            return self.settings.trending_fallback_topic
        return topics[0].topic
