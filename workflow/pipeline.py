"""Background generation chain for one ebook: processing -> completed | failed."""

import json
import logging
from typing import Optional

from agents.metadata_generator import MetadataGenerator
from agents.platform_recommender import PlatformRecommender
from config.exceptions import NoLanguagesGeneratedError
from config.settings import Settings
from models.database import Database
from models.ebook import EbookFile, EbookMetadata
from models.enums import EbookStatus, Platform
from models.finance import PublishingGuide, default_checklist
from tools.agent_sdk_client import AgentSDKClient
from workflow.orchestrator import LanguageBatch, MultiLanguageOrchestrator

logger = logging.getLogger(__name__)


class EbookGenerationPipeline:
    """Runs the orchestrator for a persisted ebook and records the outcome.

    Every run ends with the ebook in a terminal state, unless the row was
    deleted while generation was in flight; then nothing more is written.
    """

    def __init__(
        self,
        db: Database,
        settings: Optional[Settings] = None,
        llm_client: Optional[AgentSDKClient] = None,
        orchestrator: Optional[MultiLanguageOrchestrator] = None,
        metadata_generator: Optional[MetadataGenerator] = None,
        platform_recommender: Optional[PlatformRecommender] = None,
    ):
        self.db = db
        self.settings = settings or Settings()
        llm = llm_client
        if llm is None and not (orchestrator and metadata_generator and platform_recommender):
            llm = AgentSDKClient(self.settings)
        self.orchestrator = orchestrator or MultiLanguageOrchestrator(llm, self.settings)
        self.metadata_generator = metadata_generator or MetadataGenerator(llm, self.settings)
        self.platform_recommender = platform_recommender or PlatformRecommender(llm, self.settings)

    async def run(self, ebook_id: int) -> Optional[EbookStatus]:
        """Generate the ebook and return its final status (None if it vanished)."""
        ebook = self.db.get_ebook(ebook_id)
        if ebook is None:
            logger.warning("Ebook %d no longer exists, skipping generation", ebook_id)
            return None
        if ebook.status != EbookStatus.PROCESSING:
            logger.info("Ebook %d already %s, nothing to do", ebook_id, ebook.status.value)
            return ebook.status

        logger.info("Generating ebook %d: theme=%r, languages=%s",
                    ebook_id, ebook.theme, ebook.languages)
        try:
            batch = await self.orchestrator.run(
                theme=ebook.theme,
                author=ebook.author,
                languages=ebook.language_list,
                user_id=ebook.user_id,
                ebook_id=ebook_id,
                num_chapters=ebook.num_chapters,
            )
            if not self._still_exists(ebook_id):
                return None
            self._save_files(ebook_id, batch)

            if batch.all_failed:
                raise NoLanguagesGeneratedError(batch.requested, batch.failures)
            primary = batch.primary

            metadata = await self.metadata_generator.generate(
                primary.title, ebook.theme, primary.ebook.preview(),
            )
            recommendations = await self.platform_recommender.recommend(
                ebook.theme, metadata.optimized_title, metadata.short_description,
            )
            if not self._still_exists(ebook_id):
                return None

            self.db.save_ebook_metadata(EbookMetadata(
                ebook_id=ebook_id,
                optimized_title=metadata.optimized_title,
                short_description=metadata.short_description,
                long_description=metadata.long_description,
                keywords=metadata.keywords,
                categories=metadata.categories,
                suggested_price=metadata.suggested_price,
                target_audience=metadata.target_audience,
                platform_recommendations=recommendations,
            ))
            self._seed_guides(ebook_id, recommendations)
            self.db.transition_ebook(
                ebook_id,
                EbookStatus.COMPLETED,
                title=primary.title,
                epub_url=primary.epub_url,
                pdf_url=primary.pdf_url,
                cover_url=primary.cover_url,
                content=json.dumps(primary.ebook.to_dict()["chapters"], ensure_ascii=False),
            )
            if batch.partial:
                logger.warning("Ebook %d completed without: %s",
                               ebook_id, ", ".join(batch.failures))
            logger.info("Ebook %d completed (primary language %s)", ebook_id, primary.language_code)
            return EbookStatus.COMPLETED

        except Exception as e:
            logger.exception("Ebook %d generation failed", ebook_id)
            if not self._still_exists(ebook_id):
                return None
            self.db.transition_ebook(
                ebook_id, EbookStatus.FAILED, error_message=str(e) or type(e).__name__,
            )
            return EbookStatus.FAILED

    async def backfill_files(self) -> dict:
        """Regenerate language files for completed ebooks that have none.

        Ebooks with at least one file row are skipped. A failure is logged and
        counted, and the next ebook is attempted. Nothing is written for an
        ebook whose every language failed, so a later run retries it.
        """
        ebooks = self.db.list_ebooks_by_status(EbookStatus.COMPLETED)
        result = {"total": len(ebooks), "processed": 0, "failed": 0, "skipped": 0}
        logger.info("Backfill: %d completed ebook(s) found", len(ebooks))

        for ebook in ebooks:
            if self.db.get_ebook_files(ebook.id):
                result["skipped"] += 1
                continue
            try:
                batch = await self.orchestrator.run(
                    theme=ebook.theme,
                    author=ebook.author,
                    languages=ebook.language_list or ["pt"],
                    user_id=ebook.user_id,
                    ebook_id=ebook.id,
                    num_chapters=ebook.num_chapters,
                )
                if batch.all_failed:
                    raise NoLanguagesGeneratedError(batch.requested, batch.failures)
                if not self._still_exists(ebook.id):
                    continue
                self._save_files(ebook.id, batch)
                result["processed"] += 1
                logger.info("Backfill: ebook %d now has %d language file(s)", ebook.id, len(batch.files))
            except Exception:
                logger.exception("Backfill: ebook %d failed", ebook.id)
                result["failed"] += 1
        return result

    def _still_exists(self, ebook_id: int) -> bool:
        if self.db.ebook_exists(ebook_id):
            return True
        logger.warning("Ebook %d was deleted during generation, discarding results", ebook_id)
        return False

    def _seed_guides(self, ebook_id: int, recommendations: list[dict]):
        """Open a publishing checklist for every recommended platform."""
        for rec in recommendations:
            try:
                platform = Platform(rec.get("platform"))
            except ValueError:
                logger.debug("Ebook %d: no guide for unknown platform %r", ebook_id, rec.get("platform"))
                continue
            self.db.create_publishing_guide(PublishingGuide(
                ebook_id=ebook_id, platform=platform, checklist=default_checklist(platform),
            ))

    def _save_files(self, ebook_id: int, batch: LanguageBatch):
        for item in batch.files:
            self.db.upsert_ebook_file(EbookFile(
                ebook_id=ebook_id,
                language_code=item.language_code,
                title=item.title,
                epub_url=item.epub_url,
                pdf_url=item.pdf_url,
                cover_url=item.cover_url,
                status=EbookStatus.COMPLETED,
            ))
        for code, message in batch.failures.items():
            self.db.upsert_ebook_file(EbookFile(
                ebook_id=ebook_id,
                language_code=code,
                status=EbookStatus.FAILED,
                error_message=message,
            ))
