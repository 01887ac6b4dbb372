"""FastAPI application: routes, auth dependency, error mapping and lifespan."""

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlparse

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from fastapi.staticfiles import StaticFiles
from jose import JWTError, jwt

from agents.trending_agent import TrendingTopicsAgent
from api import services
from api.schemas import (
    EbookCreate,
    FinancialUpdate,
    GuideChecklistUpdate,
    GuideCompletedUpdate,
    GuideCreate,
    PublicationCreate,
    PublicationUpdate,
    ScheduleCreate,
)
from config.exceptions import (
    EbookForgeError,
    ForbiddenError,
    LLMError,
    NotFoundError,
    ValidationError,
)
from config.settings import Settings, get_settings
from models.database import Database
from models.enums import Platform
from workflow.pipeline import EbookGenerationPipeline
from workflow.queue import GenerationQueue
from workflow.scheduler import SchedulerWorker

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


@dataclass
class AppState:
    """Long-lived collaborators shared by every request."""
    settings: Settings
    db: Database
    queue: GenerationQueue
    scheduler: SchedulerWorker
    trending: TrendingTopicsAgent


def build_state(settings: Optional[Settings] = None, pipeline: Optional[EbookGenerationPipeline] = None) -> AppState:
    settings = settings or get_settings()
    db = pipeline.db if pipeline else Database(settings.sqlite_db_path)
    pipeline = pipeline or EbookGenerationPipeline(db, settings)
    queue = GenerationQueue(pipeline, workers=settings.generation_workers)
    trending = TrendingTopicsAgent(settings=settings)
    scheduler = SchedulerWorker(db, queue.submit, settings=settings, trending_agent=trending)
    return AppState(settings=settings, db=db, queue=queue, scheduler=scheduler, trending=trending)


def create_app(state: Optional[AppState] = None, run_background: bool = True) -> FastAPI:
    """Build the app. ``run_background`` starts the queue workers and the scheduler loop."""
    state = state or build_state()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        stop_event = asyncio.Event()
        scheduler_task = None
        if run_background:
            state.queue.start(recover=True)
            scheduler_task = asyncio.create_task(
                state.scheduler.run_forever(stop_event=stop_event), name="scheduler",
            )
        logger.info("ebookforge API started")
        yield
        stop_event.set()
        if scheduler_task:
            await scheduler_task
        await state.queue.stop(timeout=5)
        logger.info("ebookforge API stopped")

    app = FastAPI(
        title="ebookforge",
        description="AI ebook generation, schedules and publishing tracker",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.forge = state

    def current_user(token: Optional[HTTPAuthorizationCredentials] = Depends(security)) -> int:
        credentials_exception = HTTPException(status_code=401, detail="Could not validate credentials")
        if token is None:
            raise credentials_exception
        try:
            payload = jwt.decode(
                token.credentials, state.settings.jwt_secret,
                algorithms=[state.settings.jwt_algorithm],
            )
            return int(payload["sub"])
        except (JWTError, KeyError, TypeError, ValueError):
            raise credentials_exception from None

    _register_error_handlers(app)
    db = state.db

    @app.get("/health")
    async def health():
        return {"status": "ok", "queue_running": state.queue.running}

    # ---- Ebooks ----

    @app.get("/ebooks")
    async def list_ebooks(user_id: int = Depends(current_user)):
        return await services.list_ebooks(db, user_id)

    @app.post("/ebooks", status_code=202)
    async def create_ebook(body: EbookCreate, user_id: int = Depends(current_user)):
        return await services.create_ebook(
            db, user_id, state.queue.submit,
            theme=body.theme, author=body.author,
            num_chapters=body.num_chapters, languages=body.languages,
            settings=state.settings,
        )

    @app.get("/ebooks/{ebook_id}")
    async def get_ebook(ebook_id: int, user_id: int = Depends(current_user)):
        return await services.get_ebook(db, user_id, ebook_id)

    @app.get("/ebooks/{ebook_id}/files")
    async def get_ebook_files(ebook_id: int, user_id: int = Depends(current_user)):
        return await services.get_ebook_files(db, user_id, ebook_id)

    @app.delete("/ebooks/{ebook_id}", status_code=204)
    async def delete_ebook(ebook_id: int, user_id: int = Depends(current_user)):
        await services.delete_ebook(db, user_id, ebook_id)

    # ---- Schedules ----

    @app.get("/schedules")
    async def list_schedules(user_id: int = Depends(current_user)):
        return await services.list_schedules(db, user_id)

    @app.post("/schedules", status_code=201)
    async def create_schedule(body: ScheduleCreate, user_id: int = Depends(current_user)):
        return await services.create_schedule(
            db, user_id, settings=state.settings, **body.model_dump(),
        )

    @app.delete("/schedules/{schedule_id}", status_code=204)
    async def delete_schedule(schedule_id: int, user_id: int = Depends(current_user)):
        await services.delete_schedule(db, user_id, schedule_id)

    @app.post("/schedules/{schedule_id}/trigger")
    async def trigger_schedule(schedule_id: int, user_id: int = Depends(current_user)):
        created = await services.trigger_schedule(db, user_id, schedule_id, state.scheduler)
        return {"schedule_id": schedule_id, "ebook_ids": created}

    @app.get("/schedules/trending-topics")
    async def trending_topics(category: Optional[str] = None, count: int = 5,
                              user_id: int = Depends(current_user)):
        return await services.trending_topics(state.trending, category, count)

    # ---- Publications ----

    @app.get("/publications")
    async def list_publications(user_id: int = Depends(current_user)):
        return await services.list_all_publications(db, user_id)

    @app.get("/publications/ebook/{ebook_id}")
    async def get_publications(ebook_id: int, user_id: int = Depends(current_user)):
        return await services.get_publications(db, user_id, ebook_id)

    @app.post("/publications", status_code=201)
    async def publish(body: PublicationCreate, user_id: int = Depends(current_user)):
        return await services.publish(db, user_id, **body.model_dump())

    @app.patch("/publications/{publication_id}")
    async def update_publication(publication_id: int, body: PublicationUpdate,
                                 user_id: int = Depends(current_user)):
        return await services.update_publication(
            db, user_id, publication_id, **body.model_dump(exclude_none=True),
        )

    @app.delete("/publications/{publication_id}", status_code=204)
    async def delete_publication(publication_id: int, user_id: int = Depends(current_user)):
        await services.delete_publication(db, user_id, publication_id)

    # ---- Publishing guides ----

    @app.get("/guides/ebook/{ebook_id}")
    async def get_guides(ebook_id: int, user_id: int = Depends(current_user)):
        return await services.get_guides(db, user_id, ebook_id)

    @app.post("/guides", status_code=201)
    async def create_guide(body: GuideCreate, user_id: int = Depends(current_user)):
        return await services.create_guide(db, user_id, body.ebook_id, body.platform)

    @app.put("/guides/{guide_id}/checklist")
    async def update_guide_checklist(guide_id: int, body: GuideChecklistUpdate,
                                     user_id: int = Depends(current_user)):
        checklist = [entry.model_dump() for entry in body.checklist]
        return await services.update_guide_checklist(db, user_id, guide_id, checklist)

    @app.put("/guides/{guide_id}/completed")
    async def mark_guide_completed(guide_id: int, body: GuideCompletedUpdate,
                                   user_id: int = Depends(current_user)):
        return await services.mark_guide_completed(db, user_id, guide_id, body.completed)

    # ---- Financial, metadata, analytics ----

    @app.get("/financial/{ebook_id}")
    async def get_financial(ebook_id: int, user_id: int = Depends(current_user)):
        return await services.get_financial(db, user_id, ebook_id)

    @app.put("/financial/{ebook_id}")
    async def update_financial(ebook_id: int, body: FinancialUpdate,
                               user_id: int = Depends(current_user)):
        return await services.update_financial(db, user_id, ebook_id, **body.model_dump())

    @app.get("/metadata/{ebook_id}")
    async def get_metadata(ebook_id: int, user_id: int = Depends(current_user)):
        return await services.get_metadata(db, user_id, ebook_id)

    @app.get("/metadata/{ebook_id}/listing/{platform}")
    async def get_platform_listing(ebook_id: int, platform: Platform,
                                   user_id: int = Depends(current_user)):
        return await services.get_platform_listing(db, user_id, ebook_id, platform)

    @app.get("/analytics/summary")
    async def analytics_summary(user_id: int = Depends(current_user)):
        return await services.analytics_summary(db, user_id)

    # ---- Stored artifacts ----

    mount_path = storage_mount_path(state.settings)
    if mount_path:
        state.settings.storage_dir.mkdir(parents=True, exist_ok=True)
        app.mount(mount_path, StaticFiles(directory=state.settings.storage_dir), name="files")
        logger.debug("Serving %s at %s", state.settings.storage_dir, mount_path)

    return app


def storage_mount_path(settings: Settings) -> str:
    """URL path under which stored files are served, or "" when the base URL
    points at an external host root."""
    return urlparse(settings.storage_base_url).path.rstrip("/")


def _register_error_handlers(app: FastAPI):
    status_map = [
        (ForbiddenError, 403),
        (NotFoundError, 404),
        (ValidationError, 422),
        (LLMError, 502),
    ]

    async def handle(request: Request, exc: EbookForgeError):
        status = next((code for kind, code in status_map if isinstance(exc, kind)), 500)
        if status >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc)
        return JSONResponse(status_code=status, content={"error": exc.message, "details": jsonable_encoder(exc.details)})

    app.add_exception_handler(EbookForgeError, handle)
