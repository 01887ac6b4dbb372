"""Tests for the compiler, orchestrator, generation pipeline and queue."""

import asyncio
import json

import pytest
from unittest.mock import AsyncMock, MagicMock

from config.exceptions import LLMError, StorageError
from models.enums import EbookStatus


# ---------------------------------------------------------------------------
# Compiler
# ---------------------------------------------------------------------------

class TestCompiler:
    def test_escapes_and_renders_headings(self):
        from workflow.compiler import compile_to_html
        html = compile_to_html(
            "Guia <Completo>", "Ana & Bia",
            [{"title": "Um", "content": "## Introdução\n\nTexto <b>cru</b>.\nContinua.\n\nOutro."}],
            language="pt", year=2024,
        )
        assert "<title>Guia &lt;Completo&gt;</title>" in html
        assert "Ana &amp; Bia" in html
        assert "<h2>Introdução</h2>" in html
        assert "<p>Texto &lt;b&gt;cru&lt;/b&gt;. Continua.</p>" in html
        assert "<p>Outro.</p>" in html
        assert "&copy; 2024" in html

    def test_chapters_have_page_breaks_and_toc_anchors(self, generated_ebook):
        from workflow.compiler import compile_to_html
        html = compile_to_html("T", "A", generated_ebook.chapters, language="pt", year=2024)
        assert html.count('<section class="chapter"') == 3
        assert 'href="#chapter-3"' in html and 'id="chapter-3"' in html
        assert "page-break-before: always" in html
        assert "Sumário" in html and "Capítulo 1" in html

    def test_unknown_language_uses_english_labels(self, generated_ebook):
        from workflow.compiler import compile_to_html
        html = compile_to_html("T", "A", generated_ebook.chapters, language="hi", year=2024)
        assert "Contents" in html and "All rights reserved." in html

    def test_deterministic(self, generated_ebook):
        from workflow.compiler import compile_to_html
        args = ("T", "A", generated_ebook.chapters, "en", 2024)
        assert compile_to_html(*args) == compile_to_html(*args)

    def test_front_and_back_matter_rendered_in_order(self):
        from workflow.compiler import compile_to_html
        html = compile_to_html(
            "Guia", "Ana",
            [{"title": "Um", "content": "Texto.", "hook": "E agora?"}],
            language="pt", year=2024, subtitle="Do zero à liberdade",
            reader_letter="Querido leitor,", bonus="Planilha.",
            about_author="Ana escreve.", cta_next="Comece hoje.",
        )
        assert '<p class="cover-subtitle">Do zero à liberdade</p>' in html
        assert '<div class="chapter-hook">\n<p>E agora?</p>' in html
        assert "<h1>Carta ao Leitor</h1>" in html and "<h1>Sobre o Autor</h1>" in html
        order = [html.index(marker) for marker in (
            '<nav class="toc">', '<div class="reader-letter">', '<section class="chapter"',
            '<div class="bonus">', '<div class="about-author">', '<div class="cta-next">',
        )]
        assert order == sorted(order)
        assert ".bonus, .about-author, .cta-next { page-break-before: always; }" in html

    def test_blank_matter_is_left_out(self, generated_ebook):
        from workflow.compiler import compile_to_html
        html = compile_to_html("T", "A", generated_ebook.chapters, language="en", year=2024)
        for marker in ('class="cover-subtitle"', '<div class="reader-letter">',
                       '<div class="bonus">', '<div class="cta-next">', '<div class="chapter-hook">'):
            assert marker not in html

    def test_epub_is_a_valid_package(self, generated_ebook):
        import io
        import zipfile
        from workflow.compiler import compile_to_epub

        data = compile_to_epub(
            "Guia", "Ana", generated_ebook.chapters, language="pt", identifier="ebook-1-pt",
            year=2024, reader_letter="Querido leitor,", cta_next="Comece hoje.",
        )
        with zipfile.ZipFile(io.BytesIO(data)) as archive:
            names = archive.namelist()
            assert archive.read("mimetype") == b"application/epub+zip"
            chapter = next(n for n in names if n.endswith("chapter_01.xhtml"))
            assert "Capítulo 1" in archive.read(chapter).decode("utf-8")
            letter = next(n for n in names if n.endswith("reader_letter.xhtml"))
            assert "Carta ao Leitor" in archive.read(letter).decode("utf-8")
            opf = next(n for n in names if n.endswith(".opf"))
            assert "ebook-1-pt" in archive.read(opf).decode("utf-8")
        assert sum(n.endswith("chapter_03.xhtml") for n in names) == 1
        assert not any(n.endswith("bonus.xhtml") for n in names)

    def test_cover_prompt_uses_title_and_theme(self):
        from workflow.compiler import build_cover_prompt
        prompt = build_cover_prompt("Complete Guide", "Finanças")
        assert '"Complete Guide"' in prompt and "Finanças" in prompt


# ---------------------------------------------------------------------------
# Orchestrator
# ---------------------------------------------------------------------------

def _orchestrator(settings, generated_ebook, fake_storage, fake_images, translate=None):
    from workflow.orchestrator import MultiLanguageOrchestrator

    generator = MagicMock()
    generator.generate = AsyncMock(return_value=generated_ebook)

    async def _translate(ebook, code):
        from agents.content_generator import GeneratedEbook
        return GeneratedEbook(title=f"{ebook.title} [{code}]", chapters=ebook.chapters, language=code)

    translator = MagicMock()
    translator.translate_ebook = AsyncMock(side_effect=translate or _translate)
    return MultiLanguageOrchestrator(
        llm_client=MagicMock(), settings=settings, storage=fake_storage,
        image_client=fake_images, generator=generator, translator=translator,
    )


class TestOrchestrator:
    @pytest.mark.asyncio
    async def test_all_languages_succeed(self, settings, generated_ebook, fake_storage, fake_images):
        orchestrator = _orchestrator(settings, generated_ebook, fake_storage, fake_images)
        batch = await orchestrator.run("Finanças", "Ana", ["pt", "en", "es"], user_id=7, ebook_id=3)

        assert [f.language_code for f in batch.files] == ["pt", "en", "es"]
        assert batch.failures == {}
        assert batch.primary.title == "Guia Completo"
        assert batch.files[1].title == "Guia Completo [en]"
        assert batch.files[1].pdf_url == "http://files.test/ebooks/7/3/en/ebook.html"
        assert batch.files[1].epub_url == "http://files.test/ebooks/7/3/en/ebook.epub"
        assert fake_storage.stored["ebooks/7/3/en/ebook.epub"][:2] == b"PK"
        put_types = {c.args[0]: c.args[2] for c in fake_storage.put.await_args_list}
        assert put_types["ebooks/7/3/en/ebook.epub"] == "application/epub+zip"
        orchestrator.generator.generate.assert_awaited_once_with("Finanças", 5, "pt", author="Ana")
        assert orchestrator.translator.translate_ebook.await_count == 2

    @pytest.mark.asyncio
    async def test_failed_translation_is_skipped(self, settings, generated_ebook, fake_storage, fake_images):
        from agents.content_generator import GeneratedEbook

        async def _translate(ebook, code):
            if code == "en":
                raise LLMError("translation exploded")
            return GeneratedEbook(title=f"{ebook.title} [{code}]", chapters=ebook.chapters, language=code)

        orchestrator = _orchestrator(settings, generated_ebook, fake_storage, fake_images, _translate)
        batch = await orchestrator.run("Finanças", "Ana", ["pt", "en", "es"], user_id=1, ebook_id=1)

        assert [f.language_code for f in batch.files] == ["pt", "es"]
        assert list(batch.failures) == ["en"]
        assert "translation exploded" in batch.failures["en"]
        assert batch.partial and not batch.all_failed

    @pytest.mark.asyncio
    async def test_cover_prompt_uses_translated_title(self, settings, generated_ebook, fake_storage, fake_images):
        orchestrator = _orchestrator(settings, generated_ebook, fake_storage, fake_images)
        await orchestrator.run("Finanças", "Ana", ["pt", "fr"], user_id=1, ebook_id=1)
        prompts = [c.args[0] for c in fake_images.generate.await_args_list]
        assert any("Guia Completo [fr]" in p and "Finanças" in p for p in prompts)

    @pytest.mark.asyncio
    async def test_every_language_failing_returns_empty_batch(
        self, settings, generated_ebook, fake_storage, fake_images,
    ):
        fake_storage.put = AsyncMock(side_effect=StorageError("disk full"))
        orchestrator = _orchestrator(settings, generated_ebook, fake_storage, fake_images)
        batch = await orchestrator.run("Finanças", "Ana", ["pt", "en"], user_id=1, ebook_id=1)
        assert batch.all_failed
        assert set(batch.failures) == {"pt", "en"}

    @pytest.mark.asyncio
    async def test_base_generation_failure_propagates(
        self, settings, generated_ebook, fake_storage, fake_images,
    ):
        orchestrator = _orchestrator(settings, generated_ebook, fake_storage, fake_images)
        orchestrator.generator.generate = AsyncMock(side_effect=LLMError("down"))
        with pytest.raises(LLMError):
            await orchestrator.run("Finanças", "Ana", ["pt"], user_id=1, ebook_id=1)
        fake_storage.put.assert_not_awaited()


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------

def _batch(generated_ebook, codes, failures=None):
    from workflow.orchestrator import LanguageBatch, LanguageFile
    files = [
        LanguageFile(
            language_code=code, title=f"T-{code}", epub_url=f"e/{code}",
            pdf_url=f"p/{code}", cover_url=f"c/{code}", ebook=generated_ebook,
        )
        for code in codes
    ]
    requested = list(codes) + list(failures or {})
    return LanguageBatch(base=generated_ebook, requested=requested, files=files, failures=failures or {})


def _pipeline(db, settings, batch=None, error=None):
    from agents.metadata_generator import OptimizedMetadata
    from workflow.pipeline import EbookGenerationPipeline

    orchestrator = MagicMock()
    orchestrator.run = AsyncMock(return_value=batch, side_effect=error)
    metadata = MagicMock()
    metadata.generate = AsyncMock(return_value=OptimizedMetadata(
        optimized_title="Guia Otimizado", keywords=["a", "b", "c"], categories=["Negócios"],
    ))
    recommender = MagicMock()
    recommender.recommend = AsyncMock(return_value=[{"platform": "hotmart", "score": 90}])
    return EbookGenerationPipeline(
        db, settings, orchestrator=orchestrator,
        metadata_generator=metadata, platform_recommender=recommender,
    )


class TestPipeline:
    @pytest.mark.asyncio
    async def test_success_completes_with_primary_artifacts(self, db, settings, sample_ebook, generated_ebook):
        pipeline = _pipeline(db, settings, _batch(generated_ebook, ["pt", "en"]))
        assert await pipeline.run(sample_ebook.id) == EbookStatus.COMPLETED

        ebook = db.get_ebook(sample_ebook.id)
        assert ebook.status == EbookStatus.COMPLETED
        assert (ebook.title, ebook.pdf_url, ebook.epub_url, ebook.cover_url) == ("T-pt", "p/pt", "e/pt", "c/pt")
        assert len(json.loads(ebook.content)) == 3
        assert [f.language_code for f in db.get_ebook_files(sample_ebook.id)] == ["pt", "en"]
        metadata = db.get_ebook_metadata(sample_ebook.id)
        assert metadata.keywords == ["a", "b", "c"]
        assert metadata.platform_recommendations == [{"platform": "hotmart", "score": 90}]
        [guide] = db.list_publishing_guides(sample_ebook.id)
        assert guide.platform.value == "hotmart"
        assert guide.checklist and guide.completed is False

    @pytest.mark.asyncio
    async def test_partial_failure_still_completes(self, db, settings, sample_ebook, generated_ebook):
        batch = _batch(generated_ebook, ["en"], failures={"pt": "LLM down"})
        pipeline = _pipeline(db, settings, batch)
        assert await pipeline.run(sample_ebook.id) == EbookStatus.COMPLETED

        assert db.get_ebook(sample_ebook.id).title == "T-en"
        files = {f.language_code: f for f in db.get_ebook_files(sample_ebook.id)}
        assert files["en"].status == EbookStatus.COMPLETED
        assert files["pt"].status == EbookStatus.FAILED
        assert files["pt"].error_message == "LLM down"

    @pytest.mark.asyncio
    async def test_zero_languages_marks_failed(self, db, settings, sample_ebook, generated_ebook):
        batch = _batch(generated_ebook, [], failures={"pt": "boom", "en": "boom"})
        pipeline = _pipeline(db, settings, batch)
        assert await pipeline.run(sample_ebook.id) == EbookStatus.FAILED

        ebook = db.get_ebook(sample_ebook.id)
        assert ebook.status == EbookStatus.FAILED
        assert ebook.error_message
        pipeline.metadata_generator.generate.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_exception_marks_failed_with_message(self, db, settings, sample_ebook):
        pipeline = _pipeline(db, settings, error=LLMError("provider unavailable"))
        assert await pipeline.run(sample_ebook.id) == EbookStatus.FAILED
        assert "provider unavailable" in db.get_ebook(sample_ebook.id).error_message

    @pytest.mark.asyncio
    async def test_deleted_mid_generation_is_not_written(self, db, settings, sample_ebook, generated_ebook):
        pipeline = _pipeline(db, settings, _batch(generated_ebook, ["pt"]))

        async def _delete_then_return(**kwargs):
            db.delete_ebook(sample_ebook.id)
            return _batch(generated_ebook, ["pt"])

        pipeline.orchestrator.run = AsyncMock(side_effect=_delete_then_return)
        assert await pipeline.run(sample_ebook.id) is None
        assert db.get_ebook(sample_ebook.id) is None
        assert db.get_ebook_files(sample_ebook.id) == []
        assert db.get_ebook_metadata(sample_ebook.id) is None

    @pytest.mark.asyncio
    async def test_terminal_ebook_is_left_alone(self, db, settings, sample_ebook, generated_ebook):
        db.transition_ebook(sample_ebook.id, EbookStatus.FAILED, error_message="old")
        pipeline = _pipeline(db, settings, _batch(generated_ebook, ["pt"]))
        assert await pipeline.run(sample_ebook.id) == EbookStatus.FAILED
        pipeline.orchestrator.run.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_missing_ebook(self, db, settings):
        pipeline = _pipeline(db, settings)
        assert await pipeline.run(12345) is None


class TestBackfill:
    def _completed(self, db, **overrides):
        from models.ebook import Ebook
        fields = dict(user_id=1, theme="Finanças", author="Ana", languages="pt,en", num_chapters=4)
        fields.update(overrides)
        ebook_id = db.create_ebook(Ebook(**fields))
        db.transition_ebook(ebook_id, EbookStatus.COMPLETED, title="Pronto")
        return ebook_id

    @pytest.mark.asyncio
    async def test_only_ebooks_without_files_are_regenerated(self, db, settings, generated_ebook):
        from models.ebook import EbookFile
        missing = self._completed(db)
        has_files = self._completed(db)
        db.upsert_ebook_file(EbookFile(ebook_id=has_files, language_code="pt", status=EbookStatus.COMPLETED))
        pipeline = _pipeline(db, settings, _batch(generated_ebook, ["pt", "en"]))

        result = await pipeline.backfill_files()

        assert result == {"total": 2, "processed": 1, "failed": 0, "skipped": 1}
        pipeline.orchestrator.run.assert_awaited_once_with(
            theme="Finanças", author="Ana", languages=["pt", "en"],
            user_id=1, ebook_id=missing, num_chapters=4,
        )
        files = db.get_ebook_files(missing)
        assert [f.language_code for f in files] == ["pt", "en"]
        assert all(f.status == EbookStatus.COMPLETED for f in files)
        assert db.get_ebook(missing).title == "Pronto"

    @pytest.mark.asyncio
    async def test_failures_are_counted_and_left_for_retry(self, db, settings, generated_ebook):
        first = self._completed(db)
        second = self._completed(db, languages="")
        pipeline = _pipeline(db, settings)
        pipeline.orchestrator.run = AsyncMock(side_effect=[
            LLMError("provider unavailable"),
            _batch(generated_ebook, [], failures={"pt": "boom"}),
        ])

        result = await pipeline.backfill_files()

        assert result == {"total": 2, "processed": 0, "failed": 2, "skipped": 0}
        assert pipeline.orchestrator.run.await_args.kwargs["languages"] == ["pt"]
        assert db.get_ebook_files(first) == []
        assert db.get_ebook_files(second) == []

    @pytest.mark.asyncio
    async def test_processing_ebooks_are_ignored(self, db, settings, sample_ebook, generated_ebook):
        pipeline = _pipeline(db, settings, _batch(generated_ebook, ["pt"]))
        assert await pipeline.backfill_files() == {"total": 0, "processed": 0, "failed": 0, "skipped": 0}
        pipeline.orchestrator.run.assert_not_awaited()


# ---------------------------------------------------------------------------
# Queue
# ---------------------------------------------------------------------------

class TestGenerationQueue:
    @pytest.mark.asyncio
    async def test_submit_runs_pipeline(self, db, sample_ebook):
        from workflow.queue import GenerationQueue
        pipeline = MagicMock()
        pipeline.db = db
        pipeline.run = AsyncMock(return_value=EbookStatus.COMPLETED)

        queue = GenerationQueue(pipeline, workers=2)
        queue.start(recover=False)
        assert queue.submit(sample_ebook.id) is True
        await asyncio.wait_for(queue.join(), timeout=5)
        await queue.stop()

        pipeline.run.assert_awaited_once_with(sample_ebook.id)
        assert not queue.running

    @pytest.mark.asyncio
    async def test_duplicate_submit_ignored(self, db):
        from workflow.queue import GenerationQueue
        pipeline = MagicMock()
        pipeline.db = db
        queue = GenerationQueue(pipeline)
        assert queue.submit(1) is True
        assert queue.submit(1) is False

    @pytest.mark.asyncio
    async def test_recover_requeues_processing_rows(self, db, sample_ebook):
        from models.ebook import Ebook
        from workflow.queue import GenerationQueue

        done_id = db.create_ebook(Ebook(user_id=1, theme="X", author="A"))
        db.transition_ebook(done_id, EbookStatus.COMPLETED)

        pipeline = MagicMock()
        pipeline.db = db
        pipeline.run = AsyncMock(return_value=EbookStatus.COMPLETED)
        queue = GenerationQueue(pipeline, workers=1)

        assert queue.recover() == [sample_ebook.id]
        queue.start(recover=False)
        await asyncio.wait_for(queue.join(), timeout=5)
        await queue.stop()
        pipeline.run.assert_awaited_once_with(sample_ebook.id)

    @pytest.mark.asyncio
    async def test_worker_survives_pipeline_crash(self, db):
        from workflow.queue import GenerationQueue
        pipeline = MagicMock()
        pipeline.db = db
        pipeline.run = AsyncMock(side_effect=[RuntimeError("crash"), EbookStatus.COMPLETED])

        queue = GenerationQueue(pipeline, workers=1)
        queue.start(recover=False)
        queue.submit(1)
        queue.submit(2)
        await asyncio.wait_for(queue.join(), timeout=5)
        await queue.stop()
        assert pipeline.run.await_count == 2
