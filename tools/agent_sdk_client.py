"""Claude Agent SDK wrapper used for every text and JSON generation call."""

import logging
import os
from typing import Optional

from claude_agent_sdk import (
    query,
    ClaudeAgentOptions,
    ResultMessage,
    AssistantMessage,
)

from config.settings import Settings
from config.exceptions import LLMError, LLMResponseParseError
from tools.llm_client import missing_required_fields, parse_json_response, schema_instructions

logger = logging.getLogger(__name__)

# The SDK refuses to start when it thinks it is nested inside a CLI session.
os.environ.pop("CLAUDECODE", None)


class AgentSDKClient:
    """Single-turn access to Claude through claude_agent_sdk.query().

    Authentication is handled by the Claude Code CLI.
    """

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or Settings()
        self.total_calls = 0

    async def chat(
        self,
        system_prompt: str,
        user_prompt: str,
        model: Optional[str] = None,
    ) -> str:
        """Send a request and return the text result.

        Raises:
            LLMError: If the query fails.
        """
        model = model or self.settings.llm_model_writing
        self.total_calls += 1

        logger.debug("AgentSDK call: model=%s, prompt=%d chars", model, len(user_prompt))

        result_text = ""
        fallback_text = ""
        try:
            # The generator must be exhausted; breaking out early trips anyio cancel scopes.
            async for message in query(
                prompt=user_prompt,
                options=ClaudeAgentOptions(
                    system_prompt=system_prompt,
                    model=model,
                    max_turns=1,
                ),
            ):
                if isinstance(message, ResultMessage):
                    result_text = message.result or ""
                    logger.debug(
                        "AgentSDK result: %d chars, cost=$%s",
                        len(result_text),
                        message.total_cost_usd,
                    )
                elif isinstance(message, AssistantMessage) and not fallback_text:
                    fallback_text = "".join(
                        getattr(block, "text", "") for block in message.content
                    )
        except Exception as e:
            raise LLMError(f"Agent SDK query failed: {e}") from e

        result_text = result_text or fallback_text
        if not result_text:
            logger.warning("AgentSDK returned no content (model=%s)", model)
        return result_text

    async def chat_json(
        self,
        system_prompt: str,
        user_prompt: str,
        schema: Optional[dict] = None,
        model: Optional[str] = None,
    ) -> dict:
        """Send a request and parse the response as a JSON object.

        When ``schema`` is given the prompt carries it and every required
        top-level key must be present in the answer.

        Raises:
            LLMResponseParseError: If the response is empty, not JSON, or
                misses required fields.
        """
        if schema:
            user_prompt += schema_instructions(schema)

        text = await self.chat(system_prompt, user_prompt, model)
        try:
            data = parse_json_response(text)
        except ValueError as e:
            raise LLMResponseParseError(str(e), raw_response=text) from e

        missing = missing_required_fields(data, schema)
        if missing:
            raise LLMResponseParseError(
                f"LLM response missing required fields: {', '.join(missing[:5])}",
                raw_response=text,
            )
        return data

    def get_usage_summary(self) -> dict:
        """Return call count statistics."""
        return {"total_calls": self.total_calls}
