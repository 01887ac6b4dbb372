"""Scheduler worker: turns due recurring schedules into queued ebooks."""

import asyncio
import calendar
import logging
from datetime import datetime, timedelta
from typing import Callable, Optional

from agents.trending_agent import TrendingTopicsAgent
from config.exceptions import EmptyThemeListError, InvalidScheduleError, NotFoundError
from config.settings import Settings
from models.database import Database
from models.ebook import Ebook
from models.enums import EbookStatus, Frequency, ThemeMode
from models.schedule import Schedule

logger = logging.getLogger(__name__)


def parse_scheduled_time(value: Optional[str]) -> Optional[tuple[int, int]]:
    """Parse ``HH:MM``; None or blank means no time-of-day anchor."""
    if value is None or not value.strip():
        return None
    try:
        hours, minutes = (int(part) for part in value.strip().split(":"))
    except ValueError:
        raise InvalidScheduleError(f"Invalid scheduled time: {value!r}", {"scheduled_time": value}) from None
    if not (0 <= hours < 24 and 0 <= minutes < 60):
        raise InvalidScheduleError(f"Invalid scheduled time: {value!r}", {"scheduled_time": value})
    return hours, minutes


def add_months(moment: datetime, months: int = 1) -> datetime:
    """Add calendar months, clamping the day to the target month's last day."""
    month_index = moment.month - 1 + months
    year = moment.year + month_index // 12
    month = month_index % 12 + 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def add_cadence(moment: datetime, frequency: Frequency) -> datetime:
    if frequency == Frequency.DAILY:
        return moment + timedelta(days=1)
    if frequency == Frequency.WEEKLY:
        return moment + timedelta(days=7)
    return add_months(moment, 1)


def compute_next_run(now: datetime, frequency: Frequency, scheduled_time: Optional[str] = None) -> datetime:
    """Snap to the HH:MM anchor on ``now``'s date (if any), then add one cadence unit.

    The result is always strictly after ``now``.
    """
    anchor = parse_scheduled_time(scheduled_time)
    next_run = now
    if anchor is not None:
        next_run = now.replace(hour=anchor[0], minute=anchor[1], second=0, microsecond=0)
    next_run = add_cadence(next_run, frequency)
    while next_run <= now:
        next_run = add_cadence(next_run, frequency)
    return next_run


def first_run_at(now: datetime, scheduled_time: Optional[str] = None) -> datetime:
    """First ``next_run_at`` for a new schedule: the next HH:MM occurrence, or now."""
    anchor = parse_scheduled_time(scheduled_time)
    if anchor is None:
        return now.replace(microsecond=0)
    candidate = now.replace(hour=anchor[0], minute=anchor[1], second=0, microsecond=0)
    if candidate < now:
        candidate += timedelta(days=1)
    return candidate


class SchedulerWorker:
    """Polls due schedules and submits one ebook per due schedule per sweep.

    Schedules are processed one after another; an error in one is logged and
    the sweep moves on. Progress fields are only written by this worker.
    """

    def __init__(
        self,
        db: Database,
        submit: Callable[[int], object],
        settings: Optional[Settings] = None,
        trending_agent: Optional[TrendingTopicsAgent] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.db = db
        self.submit = submit
        self.settings = settings or Settings()
        self._trending_agent = trending_agent
        self.clock = clock

    @property
    def trending_agent(self) -> TrendingTopicsAgent:
        if self._trending_agent is None:
            self._trending_agent = TrendingTopicsAgent(settings=self.settings)
        return self._trending_agent

    async def resolve_theme(self, schedule: Schedule) -> str:
        if schedule.theme_mode == ThemeMode.SINGLE_THEME:
            return (schedule.single_theme or "").strip() or self.settings.fallback_theme
        if schedule.theme_mode == ThemeMode.CUSTOM_LIST:
            if not schedule.themes:
                raise EmptyThemeListError(schedule.id)
            theme = schedule.themes[schedule.generated_count % len(schedule.themes)]
            return (theme or "").strip() or self.settings.fallback_theme
        return await self.trending_agent.next_topic()

    async def sweep(self, now: Optional[datetime] = None) -> list[int]:
        """Process every due schedule once. Returns the ids of ebooks created."""
        now = (now or self.clock()).replace(microsecond=0)
        due = self.db.list_due_schedules(now)
        logger.info("Scheduler sweep at %s: %d due schedule(s)", now.isoformat(), len(due))

        created = []
        for schedule in due:
            try:
                ebook_id = await self._run_schedule(schedule, now)
            except Exception:
                logger.exception("Schedule %d failed in this sweep", schedule.id)
                continue
            if ebook_id is not None:
                created.append(ebook_id)
        return created

    async def _run_schedule(self, schedule: Schedule, now: datetime) -> Optional[int]:
        if schedule.is_exhausted:
            logger.info("Schedule %d reached %d ebook(s), deactivating",
                        schedule.id, schedule.total_ebooks)
            self.db.deactivate_schedule(schedule.id)
            return None

        next_run = compute_next_run(now, schedule.frequency, schedule.scheduled_time)
        if not self.db.claim_schedule(schedule.id, schedule.next_run_at, next_run):
            logger.info("Schedule %d already claimed elsewhere, skipping", schedule.id)
            return None

        try:
            theme = await self.resolve_theme(schedule)
            if not self.db.get_schedule(schedule.id):
                logger.warning("Schedule %d was deleted, skipping run", schedule.id)
                return None

            ebook_id = self.db.create_ebook(Ebook(
                user_id=schedule.user_id,
                title=f"eBook sobre {theme}",
                theme=theme,
                author=schedule.author,
                languages=schedule.languages,
                num_chapters=schedule.num_chapters,
                status=EbookStatus.PROCESSING,
            ))
        except Exception:
            # Put next_run_at back so the run is retried on the next sweep
            self.db.claim_schedule(schedule.id, next_run, schedule.next_run_at)
            raise

        self.submit(ebook_id)

        generated = schedule.generated_count + 1
        active = generated < schedule.total_ebooks
        if not self.db.record_schedule_run(schedule.id, generated, now, next_run, active):
            logger.warning("Schedule %d was deleted before its progress could be saved", schedule.id)
        else:
            logger.info("Schedule %d: ebook %d queued with theme %r, %d/%d, next run %s",
                        schedule.id, ebook_id, theme, generated, schedule.total_ebooks,
                        next_run.isoformat() if active else "none (finished)")
        return ebook_id

    async def trigger_now(self, schedule_id: int, now: Optional[datetime] = None) -> list[int]:
        """Make one schedule due immediately and run a regular sweep."""
        now = (now or self.clock()).replace(microsecond=0)
        if not self.db.set_schedule_next_run(schedule_id, now):
            raise NotFoundError(f"Schedule {schedule_id} not found")
        return await self.sweep(now)

    async def run_forever(self, interval: Optional[float] = None, stop_event: Optional[asyncio.Event] = None):
        """Sweep on a timer until ``stop_event`` is set or the task is cancelled."""
        interval = interval or self.settings.scheduler_interval_seconds
        stop_event = stop_event or asyncio.Event()
        logger.info("Scheduler started, sweeping every %ss", interval)
        while not stop_event.is_set():
            try:
                await self.sweep()
            except Exception:
                logger.exception("Scheduler sweep failed")
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=interval)
            except asyncio.TimeoutError:
                pass
        logger.info("Scheduler stopped")
