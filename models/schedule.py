"""Recurring generation schedule model."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from models.enums import Frequency, ThemeMode


@dataclass
class Schedule:
    """A recurring ebook generation job.

    Progress fields (generated_count, last_run_at, next_run_at, active) are
    written only by the scheduler worker.
    """
    id: Optional[int] = None
    user_id: int = 0
    name: str = ""
    frequency: Frequency = Frequency.DAILY
    scheduled_time: Optional[str] = None  # HH:MM
    total_ebooks: int = 1
    generated_count: int = 0
    theme_mode: ThemeMode = ThemeMode.SINGLE_THEME
    single_theme: Optional[str] = None
    themes: list[str] = field(default_factory=list)
    author: str = ""
    languages: str = "pt"
    num_chapters: int = 5
    active: bool = True
    last_run_at: Optional[datetime] = None
    next_run_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    @property
    def language_list(self) -> list[str]:
        return [code.strip() for code in self.languages.split(",") if code.strip()]

    @property
    def is_exhausted(self) -> bool:
        return self.generated_count >= self.total_ebooks
