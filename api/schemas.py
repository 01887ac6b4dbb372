"""Request bodies for the HTTP API. Fields accept snake_case or camelCase."""

from decimal import Decimal
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from models.enums import Frequency, Platform, ThemeMode


class _Request(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class EbookCreate(_Request):
    theme: str = Field(min_length=1)
    author: str = Field(min_length=1)
    num_chapters: Optional[int] = None
    languages: Optional[Union[list[str], str]] = None


class ScheduleCreate(_Request):
    name: str = Field(min_length=1)
    frequency: Frequency
    total_ebooks: int = Field(ge=1)
    theme_mode: ThemeMode
    author: str = Field(min_length=1)
    themes: Optional[list[str]] = None
    single_theme: Optional[str] = None
    scheduled_time: Optional[str] = None
    languages: Optional[Union[list[str], str]] = None
    num_chapters: Optional[int] = None


class PublicationCreate(_Request):
    ebook_id: int
    platform: Platform
    publication_url: Optional[str] = None
    notes: Optional[str] = None
    traffic_cost: Decimal = Decimal("0")
    other_costs: Decimal = Decimal("0")
    revenue: Decimal = Decimal("0")
    sales_count: int = 0


class PublicationUpdate(_Request):
    platform: Optional[Platform] = None
    published: Optional[bool] = None
    publication_url: Optional[str] = None
    notes: Optional[str] = None
    traffic_cost: Optional[Decimal] = None
    other_costs: Optional[Decimal] = None
    revenue: Optional[Decimal] = None
    sales_count: Optional[int] = None


class FinancialUpdate(_Request):
    traffic_cost: Decimal = Decimal("0")
    other_costs: Decimal = Decimal("0")
    revenue: Decimal = Decimal("0")
    notes: Optional[str] = None


class GuideCreate(_Request):
    ebook_id: int
    platform: Platform


class ChecklistItem(_Request):
    item: str = Field(min_length=1)
    done: bool = False


class GuideChecklistUpdate(_Request):
    checklist: list[ChecklistItem]


class GuideCompletedUpdate(_Request):
    completed: bool
