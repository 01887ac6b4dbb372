"""Workflow package: compiler, orchestrator, pipeline, queue and scheduler."""

from workflow.compiler import compile_to_html, compile_to_epub, build_cover_prompt
from workflow.orchestrator import MultiLanguageOrchestrator, LanguageBatch, LanguageFile
from workflow.pipeline import EbookGenerationPipeline
from workflow.queue import GenerationQueue
from workflow.scheduler import SchedulerWorker, compute_next_run, first_run_at

__all__ = [
    "compile_to_html",
    "compile_to_epub",
    "build_cover_prompt",
    "MultiLanguageOrchestrator",
    "LanguageBatch",
    "LanguageFile",
    "EbookGenerationPipeline",
    "GenerationQueue",
    "SchedulerWorker",
    "compute_next_run",
    "first_run_at",
]
