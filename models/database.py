"""SQLite database initialization and CRUD operations."""

import json
import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Iterator, Optional

from config.exceptions import DatabaseError
from models.ebook import Ebook, EbookFile, EbookMetadata
from models.enums import EbookStatus, Frequency, Platform, ThemeMode
from models.finance import FinancialMetric, Publication, PublishingGuide
from models.schedule import Schedule

logger = logging.getLogger(__name__)

_CREATE_TABLES_SQL = """
CREATE TABLE IF NOT EXISTS ebooks (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id INTEGER NOT NULL,
    title TEXT NOT NULL DEFAULT '',
    theme TEXT NOT NULL,
    author TEXT NOT NULL,
    languages TEXT NOT NULL DEFAULT 'pt',
    num_chapters INTEGER NOT NULL DEFAULT 5,
    status TEXT NOT NULL DEFAULT 'processing',
    epub_url TEXT,
    pdf_url TEXT,
    cover_url TEXT,
    content TEXT,
    error_message TEXT,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS ebook_files (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    ebook_id INTEGER NOT NULL REFERENCES ebooks(id) ON DELETE CASCADE,
    language_code TEXT NOT NULL,
    title TEXT NOT NULL DEFAULT '',
    epub_url TEXT,
    pdf_url TEXT,
    cover_url TEXT,
    status TEXT NOT NULL DEFAULT 'processing',
    error_message TEXT,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS ebook_metadata (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    ebook_id INTEGER NOT NULL REFERENCES ebooks(id) ON DELETE CASCADE,
    optimized_title TEXT,
    short_description TEXT,
    long_description TEXT,
    keywords TEXT,
    categories TEXT,
    suggested_price TEXT,
    target_audience TEXT,
    platform_recommendations TEXT,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS schedules (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id INTEGER NOT NULL,
    name TEXT NOT NULL,
    frequency TEXT NOT NULL,
    scheduled_time TEXT,
    total_ebooks INTEGER NOT NULL,
    generated_count INTEGER NOT NULL DEFAULT 0,
    theme_mode TEXT NOT NULL,
    single_theme TEXT,
    themes TEXT,
    author TEXT NOT NULL,
    languages TEXT NOT NULL DEFAULT 'pt',
    num_chapters INTEGER NOT NULL DEFAULT 5,
    active INTEGER NOT NULL DEFAULT 1,
    last_run_at TEXT,
    next_run_at TEXT,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS publications (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    ebook_id INTEGER NOT NULL REFERENCES ebooks(id) ON DELETE CASCADE,
    platform TEXT NOT NULL,
    published INTEGER NOT NULL DEFAULT 1,
    publication_url TEXT,
    published_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    notes TEXT,
    traffic_cost TEXT DEFAULT '0',
    other_costs TEXT DEFAULT '0',
    revenue TEXT DEFAULT '0',
    sales_count INTEGER DEFAULT 0
);

CREATE TABLE IF NOT EXISTS publishing_guides (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    ebook_id INTEGER NOT NULL REFERENCES ebooks(id) ON DELETE CASCADE,
    platform TEXT NOT NULL,
    completed INTEGER NOT NULL DEFAULT 0,
    checklist TEXT,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS financial_metrics (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    ebook_id INTEGER NOT NULL REFERENCES ebooks(id) ON DELETE CASCADE,
    traffic_cost TEXT DEFAULT '0',
    other_costs TEXT DEFAULT '0',
    revenue TEXT DEFAULT '0',
    notes TEXT,
    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);
"""

# Indexes added via migration (idempotent)
_MIGRATION_SQL = [
    "CREATE UNIQUE INDEX IF NOT EXISTS idx_ebook_files_lang ON ebook_files(ebook_id, language_code)",
    "CREATE UNIQUE INDEX IF NOT EXISTS idx_ebook_metadata_ebook ON ebook_metadata(ebook_id)",
    "CREATE UNIQUE INDEX IF NOT EXISTS idx_financial_metrics_ebook ON financial_metrics(ebook_id)",
    "CREATE INDEX IF NOT EXISTS idx_ebooks_user ON ebooks(user_id)",
    "CREATE INDEX IF NOT EXISTS idx_ebooks_status ON ebooks(status)",
    "CREATE INDEX IF NOT EXISTS idx_schedules_due ON schedules(active, next_run_at)",
    "CREATE INDEX IF NOT EXISTS idx_publications_ebook ON publications(ebook_id)",
    "CREATE UNIQUE INDEX IF NOT EXISTS idx_publishing_guides_platform ON publishing_guides(ebook_id, platform)",
]


def _to_db(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    return value.isoformat(timespec="seconds")


def _from_db(value) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))


def _load_list(value: Optional[str]) -> list:
    if not value:
        return []
    return json.loads(value)


class Database:
    """SQLite database manager for ebooks, schedules and publishing data."""

    def __init__(self, db_path: str | Path):
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    @contextmanager
    def _get_conn(self) -> Iterator[sqlite3.Connection]:
        """Yield a connection that commits on success and always closes.

        Raises:
            DatabaseError: Wrapping any sqlite3 error raised inside the block.
        """
        conn = sqlite3.connect(str(self.db_path))
        conn.row_factory = sqlite3.Row
        try:
            conn.execute("PRAGMA foreign_keys = ON")
            conn.execute("PRAGMA journal_mode = WAL")
            yield conn
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            raise DatabaseError(f"Database operation failed: {e}", {"db_path": str(self.db_path)}) from e
        except BaseException:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _init_db(self):
        with self._get_conn() as conn:
            conn.executescript(_CREATE_TABLES_SQL)
        self._migrate()

    def _migrate(self):
        """Apply idempotent schema migrations (indexes, constraints)."""
        with self._get_conn() as conn:
            for sql in _MIGRATION_SQL:
                try:
                    conn.execute(sql)
                except sqlite3.OperationalError as e:
                    logger.debug("Migration skipped (already applied): %s", e)

    # ---- Ebook CRUD ----

    def create_ebook(self, ebook: Ebook) -> int:
        with self._get_conn() as conn:
            cursor = conn.execute(
                "INSERT INTO ebooks (user_id, title, theme, author, languages, "
                "num_chapters, status) VALUES (?, ?, ?, ?, ?, ?, ?)",
                (ebook.user_id, ebook.title, ebook.theme, ebook.author,
                 ebook.languages, ebook.num_chapters, ebook.status.value),
            )
            return cursor.lastrowid

    def get_ebook(self, ebook_id: int) -> Optional[Ebook]:
        with self._get_conn() as conn:
            row = conn.execute("SELECT * FROM ebooks WHERE id = ?", (ebook_id,)).fetchone()
            return self._row_to_ebook(row) if row else None

    def ebook_exists(self, ebook_id: int) -> bool:
        with self._get_conn() as conn:
            row = conn.execute("SELECT 1 FROM ebooks WHERE id = ?", (ebook_id,)).fetchone()
            return row is not None

    def list_ebooks(self, user_id: int) -> list[Ebook]:
        with self._get_conn() as conn:
            rows = conn.execute(
                "SELECT * FROM ebooks WHERE user_id = ? ORDER BY created_at, id",
                (user_id,),
            ).fetchall()
            return [self._row_to_ebook(r) for r in rows]

    def list_ebooks_by_status(self, status: EbookStatus) -> list[Ebook]:
        with self._get_conn() as conn:
            rows = conn.execute(
                "SELECT * FROM ebooks WHERE status = ? ORDER BY id",
                (status.value,),
            ).fetchall()
            return [self._row_to_ebook(r) for r in rows]

    def transition_ebook(
        self,
        ebook_id: int,
        status: EbookStatus,
        title: Optional[str] = None,
        epub_url: Optional[str] = None,
        pdf_url: Optional[str] = None,
        cover_url: Optional[str] = None,
        content: Optional[str] = None,
        error_message: Optional[str] = None,
    ) -> bool:
        """Move a processing ebook into a terminal state.

        Returns False when the row is gone or already terminal, so a status is
        never overwritten once set.
        """
        with self._get_conn() as conn:
            cursor = conn.execute(
                "UPDATE ebooks SET status=?, title=COALESCE(?, title), "
                "epub_url=COALESCE(?, epub_url), pdf_url=COALESCE(?, pdf_url), "
                "cover_url=COALESCE(?, cover_url), content=COALESCE(?, content), "
                "error_message=?, updated_at=CURRENT_TIMESTAMP "
                "WHERE id=? AND status=?",
                (status.value, title, epub_url, pdf_url, cover_url, content,
                 error_message, ebook_id, EbookStatus.PROCESSING.value),
            )
            return cursor.rowcount == 1

    def delete_ebook(self, ebook_id: int):
        """Delete an ebook and everything hanging off it."""
        with self._get_conn() as conn:
            conn.execute("DELETE FROM ebook_files WHERE ebook_id = ?", (ebook_id,))
            conn.execute("DELETE FROM ebook_metadata WHERE ebook_id = ?", (ebook_id,))
            conn.execute("DELETE FROM publications WHERE ebook_id = ?", (ebook_id,))
            conn.execute("DELETE FROM publishing_guides WHERE ebook_id = ?", (ebook_id,))
            conn.execute("DELETE FROM financial_metrics WHERE ebook_id = ?", (ebook_id,))
            conn.execute("DELETE FROM ebooks WHERE id = ?", (ebook_id,))
        logger.info("Ebook %d and all associated data deleted", ebook_id)

    def _row_to_ebook(self, row) -> Ebook:
        return Ebook(
            id=row["id"], user_id=row["user_id"], title=row["title"],
            theme=row["theme"], author=row["author"],
            languages=row["languages"], num_chapters=row["num_chapters"],
            status=EbookStatus(row["status"]),
            epub_url=row["epub_url"], pdf_url=row["pdf_url"],
            cover_url=row["cover_url"], content=row["content"],
            error_message=row["error_message"],
            created_at=row["created_at"], updated_at=row["updated_at"],
        )

    # ---- Ebook files ----

    def upsert_ebook_file(self, file: EbookFile) -> int:
        with self._get_conn() as conn:
            conn.execute(
                "INSERT INTO ebook_files (ebook_id, language_code, title, epub_url, "
                "pdf_url, cover_url, status, error_message) VALUES (?, ?, ?, ?, ?, ?, ?, ?) "
                "ON CONFLICT(ebook_id, language_code) DO UPDATE SET title=excluded.title, "
                "epub_url=excluded.epub_url, pdf_url=excluded.pdf_url, "
                "cover_url=excluded.cover_url, status=excluded.status, "
                "error_message=excluded.error_message",
                (file.ebook_id, file.language_code, file.title, file.epub_url,
                 file.pdf_url, file.cover_url, file.status.value, file.error_message),
            )
            row = conn.execute(
                "SELECT id FROM ebook_files WHERE ebook_id = ? AND language_code = ?",
                (file.ebook_id, file.language_code),
            ).fetchone()
            return row["id"]

    def get_ebook_files(self, ebook_id: int) -> list[EbookFile]:
        with self._get_conn() as conn:
            rows = conn.execute(
                "SELECT * FROM ebook_files WHERE ebook_id = ? ORDER BY id",
                (ebook_id,),
            ).fetchall()
            return [
                EbookFile(
                    id=r["id"], ebook_id=r["ebook_id"],
                    language_code=r["language_code"], title=r["title"],
                    epub_url=r["epub_url"], pdf_url=r["pdf_url"],
                    cover_url=r["cover_url"], status=EbookStatus(r["status"]),
                    error_message=r["error_message"], created_at=r["created_at"],
                )
                for r in rows
            ]

    # ---- Ebook metadata ----

    def save_ebook_metadata(self, metadata: EbookMetadata) -> int:
        """Insert metadata; a rerun for the same ebook replaces the previous row."""
        with self._get_conn() as conn:
            conn.execute(
                "INSERT INTO ebook_metadata (ebook_id, optimized_title, short_description, "
                "long_description, keywords, categories, suggested_price, target_audience, "
                "platform_recommendations) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?) "
                "ON CONFLICT(ebook_id) DO UPDATE SET optimized_title=excluded.optimized_title, "
                "short_description=excluded.short_description, "
                "long_description=excluded.long_description, keywords=excluded.keywords, "
                "categories=excluded.categories, suggested_price=excluded.suggested_price, "
                "target_audience=excluded.target_audience, "
                "platform_recommendations=excluded.platform_recommendations",
                (metadata.ebook_id, metadata.optimized_title, metadata.short_description,
                 metadata.long_description,
                 json.dumps(metadata.keywords, ensure_ascii=False),
                 json.dumps(metadata.categories, ensure_ascii=False),
                 metadata.suggested_price, metadata.target_audience,
                 json.dumps(metadata.platform_recommendations, ensure_ascii=False)),
            )
            row = conn.execute(
                "SELECT id FROM ebook_metadata WHERE ebook_id = ?", (metadata.ebook_id,),
            ).fetchone()
            return row["id"]

    def get_ebook_metadata(self, ebook_id: int) -> Optional[EbookMetadata]:
        with self._get_conn() as conn:
            row = conn.execute(
                "SELECT * FROM ebook_metadata WHERE ebook_id = ?", (ebook_id,),
            ).fetchone()
            if not row:
                return None
            return EbookMetadata(
                id=row["id"], ebook_id=row["ebook_id"],
                optimized_title=row["optimized_title"] or "",
                short_description=row["short_description"] or "",
                long_description=row["long_description"] or "",
                keywords=_load_list(row["keywords"]),
                categories=_load_list(row["categories"]),
                suggested_price=row["suggested_price"] or "",
                target_audience=row["target_audience"] or "",
                platform_recommendations=_load_list(row["platform_recommendations"]),
                created_at=row["created_at"],
            )

    # ---- Schedule CRUD ----

    def create_schedule(self, schedule: Schedule) -> int:
        with self._get_conn() as conn:
            cursor = conn.execute(
                "INSERT INTO schedules (user_id, name, frequency, scheduled_time, "
                "total_ebooks, generated_count, theme_mode, single_theme, themes, author, "
                "languages, num_chapters, active, last_run_at, next_run_at) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (schedule.user_id, schedule.name, schedule.frequency.value,
                 schedule.scheduled_time, schedule.total_ebooks,
                 schedule.generated_count, schedule.theme_mode.value,
                 schedule.single_theme,
                 json.dumps(schedule.themes, ensure_ascii=False),
                 schedule.author, schedule.languages, schedule.num_chapters,
                 int(schedule.active), _to_db(schedule.last_run_at),
                 _to_db(schedule.next_run_at)),
            )
            return cursor.lastrowid

    def get_schedule(self, schedule_id: int) -> Optional[Schedule]:
        with self._get_conn() as conn:
            row = conn.execute("SELECT * FROM schedules WHERE id = ?", (schedule_id,)).fetchone()
            return self._row_to_schedule(row) if row else None

    def list_schedules(self, user_id: int) -> list[Schedule]:
        with self._get_conn() as conn:
            rows = conn.execute(
                "SELECT * FROM schedules WHERE user_id = ? ORDER BY id", (user_id,),
            ).fetchall()
            return [self._row_to_schedule(r) for r in rows]

    def list_due_schedules(self, now: datetime) -> list[Schedule]:
        """Active schedules whose next_run_at is at or before ``now``."""
        with self._get_conn() as conn:
            rows = conn.execute(
                "SELECT * FROM schedules WHERE active = 1 AND next_run_at IS NOT NULL "
                "AND next_run_at <= ? ORDER BY next_run_at, id",
                (_to_db(now),),
            ).fetchall()
            return [self._row_to_schedule(r) for r in rows]

    def claim_schedule(
        self, schedule_id: int, expected_next_run: Optional[datetime], new_next_run: datetime,
    ) -> bool:
        """Conditionally move next_run_at forward; False if another worker got there first."""
        with self._get_conn() as conn:
            cursor = conn.execute(
                "UPDATE schedules SET next_run_at = ? "
                "WHERE id = ? AND active = 1 AND next_run_at IS ?",
                (_to_db(new_next_run), schedule_id, _to_db(expected_next_run)),
            )
            return cursor.rowcount == 1

    def set_schedule_next_run(self, schedule_id: int, next_run_at: datetime) -> bool:
        with self._get_conn() as conn:
            cursor = conn.execute(
                "UPDATE schedules SET next_run_at = ? WHERE id = ?",
                (_to_db(next_run_at), schedule_id),
            )
            return cursor.rowcount == 1

    def record_schedule_run(
        self,
        schedule_id: int,
        generated_count: int,
        last_run_at: datetime,
        next_run_at: datetime,
        active: bool,
    ) -> bool:
        """Persist progress after a run. Returns False if the schedule was deleted."""
        with self._get_conn() as conn:
            cursor = conn.execute(
                "UPDATE schedules SET generated_count = ?, last_run_at = ?, "
                "next_run_at = ?, active = ? WHERE id = ?",
                (generated_count, _to_db(last_run_at), _to_db(next_run_at),
                 int(active), schedule_id),
            )
            return cursor.rowcount == 1

    def deactivate_schedule(self, schedule_id: int) -> bool:
        with self._get_conn() as conn:
            cursor = conn.execute(
                "UPDATE schedules SET active = 0 WHERE id = ?", (schedule_id,),
            )
            return cursor.rowcount == 1

    def delete_schedule(self, schedule_id: int):
        with self._get_conn() as conn:
            conn.execute("DELETE FROM schedules WHERE id = ?", (schedule_id,))
        logger.info("Schedule %d deleted", schedule_id)

    def _row_to_schedule(self, row) -> Schedule:
        return Schedule(
            id=row["id"], user_id=row["user_id"], name=row["name"],
            frequency=Frequency(row["frequency"]),
            scheduled_time=row["scheduled_time"],
            total_ebooks=row["total_ebooks"],
            generated_count=row["generated_count"],
            theme_mode=ThemeMode(row["theme_mode"]),
            single_theme=row["single_theme"],
            themes=_load_list(row["themes"]),
            author=row["author"], languages=row["languages"],
            num_chapters=row["num_chapters"],
            active=bool(row["active"]),
            last_run_at=_from_db(row["last_run_at"]),
            next_run_at=_from_db(row["next_run_at"]),
            created_at=row["created_at"],
        )

    # ---- Publications ----

    def create_publication(self, publication: Publication) -> int:
        with self._get_conn() as conn:
            cursor = conn.execute(
                "INSERT INTO publications (ebook_id, platform, published, publication_url, "
                "notes, traffic_cost, other_costs, revenue, sales_count) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (publication.ebook_id, publication.platform.value,
                 int(publication.published), publication.publication_url,
                 publication.notes, publication.traffic_cost,
                 publication.other_costs, publication.revenue,
                 publication.sales_count),
            )
            return cursor.lastrowid

    def get_publication(self, publication_id: int) -> Optional[Publication]:
        with self._get_conn() as conn:
            row = conn.execute(
                "SELECT * FROM publications WHERE id = ?", (publication_id,),
            ).fetchone()
            return self._row_to_publication(row) if row else None

    def list_publications(self, ebook_id: int) -> list[Publication]:
        with self._get_conn() as conn:
            rows = conn.execute(
                "SELECT * FROM publications WHERE ebook_id = ? ORDER BY id", (ebook_id,),
            ).fetchall()
            return [self._row_to_publication(r) for r in rows]

    def list_publications_by_user(self, user_id: int) -> list[Publication]:
        with self._get_conn() as conn:
            rows = conn.execute(
                "SELECT p.* FROM publications p JOIN ebooks e ON e.id = p.ebook_id "
                "WHERE e.user_id = ? ORDER BY p.id",
                (user_id,),
            ).fetchall()
            return [self._row_to_publication(r) for r in rows]

    def update_publication(self, publication: Publication):
        with self._get_conn() as conn:
            conn.execute(
                "UPDATE publications SET platform=?, published=?, publication_url=?, "
                "notes=?, traffic_cost=?, other_costs=?, revenue=?, sales_count=? "
                "WHERE id=?",
                (publication.platform.value, int(publication.published),
                 publication.publication_url, publication.notes,
                 publication.traffic_cost, publication.other_costs,
                 publication.revenue, publication.sales_count, publication.id),
            )

    def delete_publication(self, publication_id: int):
        with self._get_conn() as conn:
            conn.execute("DELETE FROM publications WHERE id = ?", (publication_id,))

    def _row_to_publication(self, row) -> Publication:
        return Publication(
            id=row["id"], ebook_id=row["ebook_id"],
            platform=Platform(row["platform"]),
            published=bool(row["published"]),
            publication_url=row["publication_url"],
            published_at=row["published_at"], notes=row["notes"],
            traffic_cost=row["traffic_cost"] or "0",
            other_costs=row["other_costs"] or "0",
            revenue=row["revenue"] or "0",
            sales_count=row["sales_count"] or 0,
        )

    # ---- Publishing guides ----

    def create_publishing_guide(self, guide: PublishingGuide) -> int:
        """Insert a guide; an existing guide for the same platform is kept as is."""
        with self._get_conn() as conn:
            conn.execute(
                "INSERT INTO publishing_guides (ebook_id, platform, completed, checklist) "
                "VALUES (?, ?, ?, ?) ON CONFLICT(ebook_id, platform) DO NOTHING",
                (guide.ebook_id, guide.platform.value, int(guide.completed),
                 json.dumps(guide.checklist, ensure_ascii=False)),
            )
            row = conn.execute(
                "SELECT id FROM publishing_guides WHERE ebook_id = ? AND platform = ?",
                (guide.ebook_id, guide.platform.value),
            ).fetchone()
            return row["id"]

    def get_publishing_guide(self, guide_id: int) -> Optional[PublishingGuide]:
        with self._get_conn() as conn:
            row = conn.execute(
                "SELECT * FROM publishing_guides WHERE id = ?", (guide_id,),
            ).fetchone()
            return self._row_to_guide(row) if row else None

    def list_publishing_guides(self, ebook_id: int) -> list[PublishingGuide]:
        with self._get_conn() as conn:
            rows = conn.execute(
                "SELECT * FROM publishing_guides WHERE ebook_id = ? ORDER BY id", (ebook_id,),
            ).fetchall()
            return [self._row_to_guide(r) for r in rows]

    def update_publishing_guide(
        self,
        guide_id: int,
        checklist: Optional[list[dict]] = None,
        completed: Optional[bool] = None,
    ) -> bool:
        """Update the given fields and bump updated_at; False if the guide is gone."""
        with self._get_conn() as conn:
            cursor = conn.execute(
                "UPDATE publishing_guides SET checklist=COALESCE(?, checklist), "
                "completed=COALESCE(?, completed), updated_at=CURRENT_TIMESTAMP WHERE id=?",
                (json.dumps(checklist, ensure_ascii=False) if checklist is not None else None,
                 int(completed) if completed is not None else None, guide_id),
            )
            return cursor.rowcount == 1

    def _row_to_guide(self, row) -> PublishingGuide:
        return PublishingGuide(
            id=row["id"], ebook_id=row["ebook_id"],
            platform=Platform(row["platform"]),
            completed=bool(row["completed"]),
            checklist=_load_list(row["checklist"]),
            created_at=row["created_at"], updated_at=row["updated_at"],
        )

    # ---- Financial metrics ----

    def upsert_financial_metric(self, metric: FinancialMetric) -> int:
        with self._get_conn() as conn:
            conn.execute(
                "INSERT INTO financial_metrics (ebook_id, traffic_cost, other_costs, "
                "revenue, notes) VALUES (?, ?, ?, ?, ?) "
                "ON CONFLICT(ebook_id) DO UPDATE SET traffic_cost=excluded.traffic_cost, "
                "other_costs=excluded.other_costs, revenue=excluded.revenue, "
                "notes=excluded.notes, updated_at=CURRENT_TIMESTAMP",
                (metric.ebook_id, metric.traffic_cost, metric.other_costs,
                 metric.revenue, metric.notes),
            )
            row = conn.execute(
                "SELECT id FROM financial_metrics WHERE ebook_id = ?", (metric.ebook_id,),
            ).fetchone()
            return row["id"]

    def get_financial_metric(self, ebook_id: int) -> Optional[FinancialMetric]:
        with self._get_conn() as conn:
            row = conn.execute(
                "SELECT * FROM financial_metrics WHERE ebook_id = ?", (ebook_id,),
            ).fetchone()
            return self._row_to_metric(row) if row else None

    def list_financial_metrics_by_user(self, user_id: int) -> list[FinancialMetric]:
        with self._get_conn() as conn:
            rows = conn.execute(
                "SELECT f.* FROM financial_metrics f JOIN ebooks e ON e.id = f.ebook_id "
                "WHERE e.user_id = ? ORDER BY f.id",
                (user_id,),
            ).fetchall()
            return [self._row_to_metric(r) for r in rows]

    def _row_to_metric(self, row) -> FinancialMetric:
        return FinancialMetric(
            id=row["id"], ebook_id=row["ebook_id"],
            traffic_cost=row["traffic_cost"] or "0",
            other_costs=row["other_costs"] or "0",
            revenue=row["revenue"] or "0",
            notes=row["notes"], updated_at=row["updated_at"],
        )
