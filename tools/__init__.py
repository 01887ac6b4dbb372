"""Tools package: LLM, image and storage clients plus JSON parsing."""

from tools.agent_sdk_client import AgentSDKClient
from tools.image_client import ImageClient
from tools.llm_client import parse_json_response
from tools.storage import LocalStorage

__all__ = [
    "AgentSDKClient",
    "ImageClient",
    "LocalStorage",
    "parse_json_response",
]
