"""Configuration settings loaded from .env file."""

from pathlib import Path
from typing import Optional

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings, loaded from .env file.

    The Claude Agent SDK authenticates through the Claude Code CLI, so no
    Anthropic key lives here. Cover images go through OpenAI and need
    ``openai_api_key``.
    """

    # LLM models, one per role
    llm_model_writing: str = "claude-sonnet-4-5"      # ContentGenerator
    llm_model_translation: str = "claude-sonnet-4-5"  # Translator
    llm_model_metadata: str = "claude-haiku-4-5"      # MetadataGenerator / PlatformRecommender
    llm_model_research: str = "claude-haiku-4-5"      # TrendingTopicsAgent

    # Cover images
    image_model: str = "dall-e-3"
    image_size: str = "1024x1792"
    openai_api_key: Optional[str] = None

    # Database
    sqlite_db_path: Path = Path("./data/ebooks.db")

    # Object storage
    storage_dir: Path = Path("./data/storage")
    storage_base_url: str = "http://localhost:8000/files"

    # Generation
    default_num_chapters: int = 5
    min_chapters: int = 3
    max_chapters: int = 10
    default_languages: str = "pt"
    fallback_theme: str = "Marketing Digital"
    trending_fallback_topic: str = "Marketing Digital para Iniciantes"
    generation_workers: int = 2

    # Scheduler
    scheduler_interval_seconds: int = 60

    # API auth
    jwt_secret: str = "dev-secret-change-me"
    jwt_algorithm: str = "HS256"

    # Logging
    log_dir: Path = Path("./data/logs")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @field_validator("min_chapters", "max_chapters", "default_num_chapters")
    @classmethod
    def validate_chapter_counts(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Chapter count must be >= 1")
        return v

    @field_validator("scheduler_interval_seconds", "generation_workers")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("value must be >= 1")
        return v

    @field_validator("sqlite_db_path", "log_dir")
    @classmethod
    def ensure_parent_dirs(cls, v: Path) -> Path:
        v.parent.mkdir(parents=True, exist_ok=True)
        return v

    @field_validator("storage_base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @model_validator(mode="after")
    def validate_chapter_range(self) -> "Settings":
        if not self.min_chapters <= self.default_num_chapters <= self.max_chapters:
            raise ValueError(
                f"default_num_chapters ({self.default_num_chapters}) must be within "
                f"[{self.min_chapters}, {self.max_chapters}] chapter range"
            )
        return self

    @property
    def default_language_list(self) -> list[str]:
        return [code.strip() for code in self.default_languages.split(",") if code.strip()]


_settings_instance: Settings | None = None


def get_settings() -> Settings:
    """Get cached settings instance."""
    global _settings_instance
    if _settings_instance is None:
        _settings_instance = Settings()
    return _settings_instance
