"""Agents package: LLM-backed generators."""

from agents.base_agent import BaseAgent
from agents.content_generator import ContentGenerator, GeneratedChapter, GeneratedEbook
from agents.translator import Translator, SUPPORTED_LANGUAGES, validate_languages
from agents.metadata_generator import MetadataGenerator, OptimizedMetadata, format_for_platform
from agents.trending_agent import TrendingTopicsAgent, TrendingTopic
from agents.platform_recommender import PlatformRecommender

__all__ = [
    "BaseAgent",
    "ContentGenerator",
    "GeneratedChapter",
    "GeneratedEbook",
    "Translator",
    "SUPPORTED_LANGUAGES",
    "validate_languages",
    "MetadataGenerator",
    "OptimizedMetadata",
    "format_for_platform",
    "TrendingTopicsAgent",
    "TrendingTopic",
    "PlatformRecommender",
]
