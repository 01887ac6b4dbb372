"""Application services: ownership checks, validation and CRUD over the database.

Every ebook-scoped operation resolves the parent ebook first and compares its
owner with the caller; a missing ebook and someone else's ebook raise the same
``ForbiddenError``.
"""

import logging
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Callable, Optional

from agents.metadata_generator import OptimizedMetadata, format_for_platform
from agents.translator import validate_languages
from agents.trending_agent import TrendingTopic, TrendingTopicsAgent
from config.exceptions import (
    EmptyThemeListError,
    ForbiddenError,
    InvalidScheduleError,
    NotFoundError,
    ValidationError,
)
from config.settings import Settings
from models.database import Database
from models.ebook import Ebook, EbookFile, EbookMetadata
from models.enums import EbookStatus, Frequency, Platform, ThemeMode
from models.finance import FinancialMetric, Publication, PublishingGuide, default_checklist
from models.schedule import Schedule
from workflow.scheduler import SchedulerWorker, first_run_at, parse_scheduled_time

logger = logging.getLogger(__name__)


def assert_ebook_owner(db: Database, ebook_id: int, user_id: int) -> Ebook:
    ebook = db.get_ebook(ebook_id)
    if ebook is None or ebook.user_id != user_id:
        logger.warning("User %s denied access to ebook %s", user_id, ebook_id)
        raise ForbiddenError()
    return ebook


def _require_text(value: Optional[str], field: str) -> str:
    text = (value or "").strip()
    if not text:
        raise ValidationError(f"{field} is required", {"field": field})
    return text


def _money(value, field: str) -> str:
    """Normalize a money amount to a decimal string with two places."""
    try:
        amount = Decimal(str(value if value not in (None, "") else "0"))
    except InvalidOperation:
        raise ValidationError(f"{field} must be a decimal amount", {"field": field}) from None
    if not amount.is_finite() or amount < 0:
        raise ValidationError(f"{field} must be a non-negative amount", {"field": field})
    return str(amount.quantize(Decimal("0.01")))


def _check_chapters(num_chapters: int, settings: Settings):
    if not settings.min_chapters <= num_chapters <= settings.max_chapters:
        raise ValidationError(
            f"num_chapters must be between {settings.min_chapters} and {settings.max_chapters}",
            {"num_chapters": num_chapters},
        )


# ---- Ebooks ----

async def list_ebooks(db: Database, user_id: int) -> list[Ebook]:
    return db.list_ebooks(user_id)


async def get_ebook(db: Database, user_id: int, ebook_id: int) -> Ebook:
    return assert_ebook_owner(db, ebook_id, user_id)


async def create_ebook(
    db: Database,
    user_id: int,
    submit: Callable[[int], object],
    theme: str,
    author: str,
    num_chapters: Optional[int] = None,
    languages=None,
    settings: Optional[Settings] = None,
) -> dict:
    """Validate, insert a processing row, queue generation and return at once."""
    settings = settings or Settings()
    theme = _require_text(theme, "theme")
    author = _require_text(author, "author")
    if num_chapters is None:
        num_chapters = settings.default_num_chapters
    _check_chapters(num_chapters, settings)
    codes = validate_languages(languages or settings.default_language_list)

    ebook_id = db.create_ebook(Ebook(
        user_id=user_id,
        title=f"eBook sobre {theme}",
        theme=theme,
        author=author,
        languages=",".join(codes),
        num_chapters=num_chapters,
        status=EbookStatus.PROCESSING,
    ))
    submit(ebook_id)
    logger.info("User %s requested ebook %d (%s)", user_id, ebook_id, ",".join(codes))
    return {"id": ebook_id, "status": EbookStatus.PROCESSING.value}


async def get_ebook_files(db: Database, user_id: int, ebook_id: int) -> list[EbookFile]:
    assert_ebook_owner(db, ebook_id, user_id)
    return db.get_ebook_files(ebook_id)


async def delete_ebook(db: Database, user_id: int, ebook_id: int):
    assert_ebook_owner(db, ebook_id, user_id)
    db.delete_ebook(ebook_id)


# ---- Schedules ----

def _get_owned_schedule(db: Database, user_id: int, schedule_id: int) -> Schedule:
    schedule = db.get_schedule(schedule_id)
    if schedule is None:
        raise NotFoundError(f"Schedule {schedule_id} not found")
    if schedule.user_id != user_id:
        raise ForbiddenError("FORBIDDEN: Unauthorized access to schedule")
    return schedule


async def list_schedules(db: Database, user_id: int) -> list[Schedule]:
    return db.list_schedules(user_id)


async def create_schedule(
    db: Database,
    user_id: int,
    name: str,
    frequency: Frequency,
    total_ebooks: int,
    theme_mode: ThemeMode,
    author: str,
    themes: Optional[list[str]] = None,
    single_theme: Optional[str] = None,
    scheduled_time: Optional[str] = None,
    languages=None,
    num_chapters: Optional[int] = None,
    settings: Optional[Settings] = None,
    now: Optional[datetime] = None,
) -> Schedule:
    settings = settings or Settings()
    name = _require_text(name, "name")
    author = _require_text(author, "author")
    frequency = Frequency(frequency)
    theme_mode = ThemeMode(theme_mode)
    if total_ebooks < 1:
        raise InvalidScheduleError("total_ebooks must be at least 1", {"total_ebooks": total_ebooks})
    parse_scheduled_time(scheduled_time)
    if num_chapters is None:
        num_chapters = settings.default_num_chapters
    _check_chapters(num_chapters, settings)
    codes = validate_languages(languages or settings.default_language_list)

    cleaned_themes: list[str] = []
    if theme_mode == ThemeMode.SINGLE_THEME:
        single_theme = _require_text(single_theme, "single_theme")
    elif theme_mode == ThemeMode.CUSTOM_LIST:
        cleaned_themes = [t.strip() for t in themes or [] if t and t.strip()]
        if not cleaned_themes:
            raise EmptyThemeListError()
        single_theme = None
    else:
        single_theme = None

    schedule = Schedule(
        user_id=user_id,
        name=name,
        frequency=frequency,
        scheduled_time=(scheduled_time or "").strip() or None,
        total_ebooks=total_ebooks,
        theme_mode=theme_mode,
        single_theme=single_theme,
        themes=cleaned_themes,
        author=author,
        languages=",".join(codes),
        num_chapters=num_chapters,
        active=True,
        next_run_at=first_run_at(now or datetime.now(), scheduled_time),
    )
    schedule.id = db.create_schedule(schedule)
    logger.info("User %s created schedule %d (%s, %s)",
                user_id, schedule.id, frequency.value, theme_mode.value)
    return schedule


async def delete_schedule(db: Database, user_id: int, schedule_id: int):
    _get_owned_schedule(db, user_id, schedule_id)
    db.delete_schedule(schedule_id)


async def trigger_schedule(
    db: Database, user_id: int, schedule_id: int, scheduler: SchedulerWorker,
) -> list[int]:
    """Run one schedule right away through the regular sweep."""
    schedule = _get_owned_schedule(db, user_id, schedule_id)
    if not schedule.active:
        raise InvalidScheduleError(f"Schedule {schedule_id} is not active")
    return await scheduler.trigger_now(schedule_id)


async def trending_topics(
    agent: TrendingTopicsAgent, category: Optional[str] = None, count: int = 5,
) -> list[TrendingTopic]:
    return await agent.find_topics(category, count)


# ---- Publications ----

def _get_owned_publication(db: Database, user_id: int, publication_id: int) -> Publication:
    publication = db.get_publication(publication_id)
    if publication is None:
        raise ForbiddenError()
    assert_ebook_owner(db, publication.ebook_id, user_id)
    return publication


async def get_publications(db: Database, user_id: int, ebook_id: int) -> list[Publication]:
    assert_ebook_owner(db, ebook_id, user_id)
    return db.list_publications(ebook_id)


async def list_all_publications(db: Database, user_id: int) -> list[Publication]:
    return db.list_publications_by_user(user_id)


async def publish(
    db: Database,
    user_id: int,
    ebook_id: int,
    platform: Platform,
    publication_url: Optional[str] = None,
    notes: Optional[str] = None,
    traffic_cost="0",
    other_costs="0",
    revenue="0",
    sales_count: int = 0,
) -> Publication:
    assert_ebook_owner(db, ebook_id, user_id)
    if sales_count < 0:
        raise ValidationError("sales_count must be non-negative", {"sales_count": sales_count})
    publication = Publication(
        ebook_id=ebook_id,
        platform=Platform(platform),
        published=True,
        publication_url=publication_url,
        notes=notes,
        traffic_cost=_money(traffic_cost, "traffic_cost"),
        other_costs=_money(other_costs, "other_costs"),
        revenue=_money(revenue, "revenue"),
        sales_count=sales_count,
    )
    publication.id = db.create_publication(publication)
    return db.get_publication(publication.id)


async def update_publication(db: Database, user_id: int, publication_id: int, **changes) -> Publication:
    """Apply the given fields; anything passed as None is left unchanged."""
    publication = _get_owned_publication(db, user_id, publication_id)
    for key in ("traffic_cost", "other_costs", "revenue"):
        if changes.get(key) is not None:
            setattr(publication, key, _money(changes[key], key))
    if changes.get("platform") is not None:
        publication.platform = Platform(changes["platform"])
    if changes.get("sales_count") is not None:
        if changes["sales_count"] < 0:
            raise ValidationError("sales_count must be non-negative")
        publication.sales_count = changes["sales_count"]
    for key in ("published", "publication_url", "notes"):
        if changes.get(key) is not None:
            setattr(publication, key, changes[key])
    db.update_publication(publication)
    return db.get_publication(publication_id)


async def delete_publication(db: Database, user_id: int, publication_id: int):
    _get_owned_publication(db, user_id, publication_id)
    db.delete_publication(publication_id)


# ---- Publishing guides ----

def _get_owned_guide(db: Database, user_id: int, guide_id: int) -> PublishingGuide:
    guide = db.get_publishing_guide(guide_id)
    if guide is None:
        raise ForbiddenError()
    assert_ebook_owner(db, guide.ebook_id, user_id)
    return guide


def _clean_checklist(checklist) -> list[dict]:
    if not isinstance(checklist, list):
        raise ValidationError("checklist must be a list of items")
    cleaned = []
    for entry in checklist:
        item = str(entry.get("item") or "").strip() if isinstance(entry, dict) else ""
        if not item:
            raise ValidationError("every checklist entry needs a non-empty item", {"entry": entry})
        cleaned.append({"item": item, "done": bool(entry.get("done", False))})
    return cleaned


async def get_guides(db: Database, user_id: int, ebook_id: int) -> list[PublishingGuide]:
    assert_ebook_owner(db, ebook_id, user_id)
    return db.list_publishing_guides(ebook_id)


async def create_guide(db: Database, user_id: int, ebook_id: int, platform: Platform) -> PublishingGuide:
    """Open the guide for one platform with its default checklist; returns the
    existing guide when one is already there."""
    assert_ebook_owner(db, ebook_id, user_id)
    platform = Platform(platform)
    guide_id = db.create_publishing_guide(PublishingGuide(
        ebook_id=ebook_id, platform=platform, checklist=default_checklist(platform),
    ))
    return db.get_publishing_guide(guide_id)


async def update_guide_checklist(db: Database, user_id: int, guide_id: int, checklist) -> PublishingGuide:
    _get_owned_guide(db, user_id, guide_id)
    db.update_publishing_guide(guide_id, checklist=_clean_checklist(checklist))
    return db.get_publishing_guide(guide_id)


async def mark_guide_completed(db: Database, user_id: int, guide_id: int, completed: bool) -> PublishingGuide:
    _get_owned_guide(db, user_id, guide_id)
    db.update_publishing_guide(guide_id, completed=bool(completed))
    return db.get_publishing_guide(guide_id)


# ---- Financial metrics ----

async def get_financial(db: Database, user_id: int, ebook_id: int) -> Optional[FinancialMetric]:
    assert_ebook_owner(db, ebook_id, user_id)
    return db.get_financial_metric(ebook_id)


async def update_financial(
    db: Database,
    user_id: int,
    ebook_id: int,
    traffic_cost="0",
    other_costs="0",
    revenue="0",
    notes: Optional[str] = None,
) -> FinancialMetric:
    assert_ebook_owner(db, ebook_id, user_id)
    db.upsert_financial_metric(FinancialMetric(
        ebook_id=ebook_id,
        traffic_cost=_money(traffic_cost, "traffic_cost"),
        other_costs=_money(other_costs, "other_costs"),
        revenue=_money(revenue, "revenue"),
        notes=notes,
    ))
    return db.get_financial_metric(ebook_id)


# ---- Metadata ----

async def get_metadata(db: Database, user_id: int, ebook_id: int) -> Optional[EbookMetadata]:
    assert_ebook_owner(db, ebook_id, user_id)
    return db.get_ebook_metadata(ebook_id)


async def get_platform_listing(db: Database, user_id: int, ebook_id: int, platform: Platform) -> dict:
    """Stored metadata shaped for one platform's listing form.

    Raises:
        NotFoundError: If the ebook has no metadata yet.
    """
    assert_ebook_owner(db, ebook_id, user_id)
    stored = db.get_ebook_metadata(ebook_id)
    if stored is None:
        raise NotFoundError(f"Ebook {ebook_id} has no metadata yet")
    metadata = OptimizedMetadata(
        optimized_title=stored.optimized_title,
        short_description=stored.short_description,
        long_description=stored.long_description,
        keywords=stored.keywords,
        categories=stored.categories,
        suggested_price=stored.suggested_price,
        target_audience=stored.target_audience,
    )
    return format_for_platform(metadata, Platform(platform))


# ---- Analytics ----

async def analytics_summary(db: Database, user_id: int) -> dict:
    """Totals across the user's ebooks, publications and financial metrics."""
    ebooks = db.list_ebooks(user_id)
    publications = db.list_publications_by_user(user_id)
    metrics = db.list_financial_metrics_by_user(user_id)

    revenue = sum((Decimal(p.revenue) for p in publications), Decimal("0"))
    revenue += sum((Decimal(m.revenue) for m in metrics), Decimal("0"))
    costs = sum((Decimal(p.traffic_cost) + Decimal(p.other_costs) for p in publications), Decimal("0"))
    costs += sum((Decimal(m.traffic_cost) + Decimal(m.other_costs) for m in metrics), Decimal("0"))
    profit = revenue - costs
    roi = (profit / costs * 100).quantize(Decimal("0.01")) if costs else None

    by_status = {status.value: 0 for status in EbookStatus}
    for ebook in ebooks:
        by_status[ebook.status.value] += 1
    by_platform: dict[str, dict] = {}
    for p in publications:
        entry = by_platform.setdefault(p.platform.value, {"publications": 0, "sales": 0, "revenue": Decimal("0")})
        entry["publications"] += 1
        entry["sales"] += p.sales_count
        entry["revenue"] += Decimal(p.revenue)

    return {
        "total_ebooks": len(ebooks),
        "ebooks_by_status": by_status,
        "total_publications": len(publications),
        "total_sales": sum(p.sales_count for p in publications),
        "total_revenue": str(revenue.quantize(Decimal("0.01"))),
        "total_costs": str(costs.quantize(Decimal("0.01"))),
        "profit": str(profit.quantize(Decimal("0.01"))),
        "roi_percent": str(roi) if roi is not None else None,
        "by_platform": {
            name: {**entry, "revenue": str(entry["revenue"].quantize(Decimal("0.01")))}
            for name, entry in by_platform.items()
        },
    }
