"""Base agent class holding the LLM client and settings."""

import logging
from typing import Optional

from config.settings import Settings
from tools.agent_sdk_client import AgentSDKClient

logger = logging.getLogger(__name__)


class BaseAgent:
    """Base class for all LLM-backed generators."""

    def __init__(
        self,
        llm_client: Optional[AgentSDKClient] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or Settings()
        self.llm = llm_client or AgentSDKClient(self.settings)

    @staticmethod
    def _clip(text: str, limit: int) -> str:
        """Trim ``text`` to ``limit`` characters for prompt previews."""
        text = (text or "").strip()
        if len(text) <= limit:
            return text
        return text[:limit].rstrip() + "..."
