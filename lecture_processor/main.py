"""Command-line entry point for processing a single lecture.

Builds the pipeline from environment configuration, runs one lecture in the
foreground and exits non-zero unless it completed. Intended for operators
re-running a stuck or failed lecture; web handlers embed
LectureProcessingPipeline directly.
"""

import asyncio
import logging
import os
import sys

import typer

from lecture_processor.asr.registry import get_transcriber
from lecture_processor.enhance.registry import get_enhancer
from lecture_processor.notes.registry import get_note_generator
from lecture_processor.observability.logger import StructuredJsonFormatter
from lecture_processor.pipeline import LectureProcessingPipeline
from lecture_processor.storage.audio_storage import AudioStorage
from lecture_processor.storage.supabase import (
    SupabaseLectureStore,
    SupabaseProfileStore,
    SupabaseRestClient,
)
from lecture_processor.utils.errors import PreconditionError

logger = logging.getLogger(__name__)

EXIT_COMPLETED = 0
EXIT_FAILED = 1
EXIT_REJECTED = 2

cli = typer.Typer(
    add_completion=False,
    help="Transcribe a lecture recording and generate study notes.",
)


def _setup_logging() -> None:
    """Configure root logger with structured JSON output."""
    root = logging.getLogger()
    root.setLevel(os.environ.get("LOG_LEVEL", "INFO").upper())
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(StructuredJsonFormatter())
    root.addHandler(handler)


def build_pipeline(
    supabase_client: SupabaseRestClient | None = None,
) -> LectureProcessingPipeline:
    """Construct a pipeline with collaborators configured from the environment.

    The remote enhancer is used only when AUDIO_ENHANCER_URL is set;
    otherwise audio passes through unchanged.
    """
    if supabase_client is None:
        supabase_client = SupabaseRestClient()

    enhancer_provider = "http"
    if not os.environ.get("AUDIO_ENHANCER_URL"):
        logger.info("AUDIO_ENHANCER_URL not set, skipping enhancement")
        enhancer_provider = "passthrough"

    return LectureProcessingPipeline(
        lecture_store=SupabaseLectureStore(supabase_client),
        profile_store=SupabaseProfileStore(supabase_client),
        audio_storage=AudioStorage(),
        enhancer=get_enhancer(enhancer_provider),
        transcriber=get_transcriber(
            os.environ.get("TRANSCRIBER_PROVIDER", "deepgram")
        ),
        note_generator=get_note_generator(
            os.environ.get("NOTES_PROVIDER", "anthropic")
        ),
    )


async def _run(lecture_id: str, owner_id: str, retry_failed: bool) -> int:
    supabase_client = SupabaseRestClient()
    try:
        pipeline = build_pipeline(supabase_client)
        try:
            result = await pipeline.process(
                lecture_id, owner_id, retry_failed=retry_failed
            )
        except PreconditionError as exc:
            logger.error("Lecture %s rejected: %s", lecture_id, exc)
            return EXIT_REJECTED
    finally:
        await supabase_client.close()

    if result.status != "completed":
        return EXIT_FAILED
    return EXIT_COMPLETED


@cli.command()
def process(
    lecture_id: str = typer.Argument(..., help="ID of the lecture to process"),
    owner: str = typer.Option(
        ..., "--owner", help="ID of the user who owns the lecture"
    ),
    retry_failed: bool = typer.Option(
        False,
        "--retry-failed",
        help="Re-run a lecture whose previous processing failed.",
    ),
) -> None:
    """Process the lecture named on the command line."""
    _setup_logging()
    logger.info("Lecture processor starting for lecture %s", lecture_id)
    code = asyncio.run(_run(lecture_id, owner, retry_failed))
    raise typer.Exit(code=code)


if __name__ == "__main__":
    cli()
