"""Lecture processing orchestrator.

Orchestrates: load -> mark transcribing -> download -> enhance -> transcribe
-> validate -> save transcript -> generate notes -> save notes -> usage.

Every status change is a compare-and-swap against the status this run last
persisted, so a concurrent run that already advanced the lecture makes this
run stop instead of overwriting it. The transcript is saved before notes are
generated, so a generation failure never loses transcription work.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Literal

import httpx

from lecture_processor.asr.interface import Transcriber, TranscriptionResult
from lecture_processor.enhance.interface import AudioEnhancer
from lecture_processor.models import PROCESSABLE_STATUSES, Lecture, PlanTier, Profile
from lecture_processor.notes.interface import NoteGenerator
from lecture_processor.observability.metrics import (
    LectureMetrics,
    StageTimer,
    failed_stage,
    log_lecture_metrics,
)
from lecture_processor.storage.audio_storage import AudioBlob, AudioStorage
from lecture_processor.storage.interface import LectureStore, ProfileStore
from lecture_processor.usage import UsageAccountant, resolve_active_plan
from lecture_processor.utils.errors import (
    AudioFetchError,
    ContentQualityError,
    EnhancementError,
    LectureAlreadyProcessedError,
    LectureNotFoundError,
    NetworkError,
    NoteGenerationError,
    PipelineError,
    TransitionConflictError,
    TranscriptionError,
)
from lecture_processor.utils.retry import call_with_retry, is_transient_error

logger = logging.getLogger(__name__)

MIN_TRANSCRIPT_CHARS = 100

NETWORK_ERROR_MESSAGE = (
    "Network connection error. Please check your internet and try again."
)
ENHANCEMENT_ERROR_MESSAGE = "Audio processing failed. Please try again."
TRANSCRIPTION_ERROR_MESSAGE = "Audio transcription failed. Please try again."
GENERATION_ERROR_MESSAGE = "Note generation failed. Please try again."
NO_SPEECH_MESSAGE = (
    "We couldn't detect enough speech in your audio. Please ensure your "
    "recording has clear spoken content and try again."
)


@dataclass(frozen=True)
class RetryBudget:
    """Attempt limit and base backoff delay (seconds) for one call site."""

    max_attempts: int
    base_delay: float


ENHANCE_RETRY = RetryBudget(max_attempts=3, base_delay=2.0)
TRANSCRIBE_RETRY = RetryBudget(max_attempts=5, base_delay=3.0)
GENERATE_RETRY = RetryBudget(max_attempts=5, base_delay=3.0)
STORE_RETRY = RetryBudget(max_attempts=3, base_delay=1.0)


def user_message_for(exc: BaseException) -> str:
    """Map an error to the sanitized message stored on the lecture."""
    if isinstance(exc, (NetworkError, httpx.TransportError)):
        return NETWORK_ERROR_MESSAGE
    if isinstance(exc, EnhancementError):
        return ENHANCEMENT_ERROR_MESSAGE
    if isinstance(exc, TranscriptionError):
        return TRANSCRIPTION_ERROR_MESSAGE
    if isinstance(exc, NoteGenerationError):
        return GENERATION_ERROR_MESSAGE
    if isinstance(exc, PipelineError):
        return exc.message
    return str(exc) or type(exc).__name__


@dataclass
class ProcessingError:
    """Details about a processing failure."""

    stage: str
    message: str
    user_message: str
    exception_type: str
    retry_count: int = 0


@dataclass
class ProcessingResult:
    """Outcome of one pipeline run."""

    status: Literal["completed", "failed"]
    lecture_id: str
    plan: PlanTier
    metrics: LectureMetrics
    transcript: str | None = None
    notes: str | None = None
    usage_count: int | None = None
    error: ProcessingError | None = None


@dataclass
class _RunContext:
    """Mutable state of a single run."""

    lecture: Lecture
    profile: Profile | None
    plan: PlanTier
    persisted_status: str
    wall_start: float = field(default_factory=time.monotonic)
    timings: dict[str, float] = field(default_factory=dict)
    audio_size_bytes: int = 0
    enhanced_audio_size_bytes: int = 0
    enhanced: bool = False
    transcription: TranscriptionResult | None = None
    notes: str | None = None

    @property
    def lecture_id(self) -> str:
        return self.lecture.id

    @property
    def owner_id(self) -> str:
        return self.lecture.user_id


class LectureProcessingPipeline:
    """Turns one uploaded lecture recording into study notes.

    All collaborators are injected; nothing is looked up from process-wide
    state.

    Args:
        lecture_store: Lecture record store.
        profile_store: Profile store (plan and usage).
        audio_storage: Object storage holding the uploaded audio.
        enhancer: Audio enhancer (failures are tolerated).
        transcriber: Speech transcriber.
        note_generator: Study note generator.
        usage_accountant: Records free-plan usage (default built on
            profile_store).
        enhance_retry: Retry budget for enhancement.
        transcribe_retry: Retry budget for transcription.
        generate_retry: Retry budget for note generation.
        store_retry: Retry budget for record store reads and writes.
        min_transcript_chars: Shortest transcript accepted as speech.
    """

    def __init__(
        self,
        lecture_store: LectureStore,
        profile_store: ProfileStore,
        audio_storage: AudioStorage,
        enhancer: AudioEnhancer,
        transcriber: Transcriber,
        note_generator: NoteGenerator,
        usage_accountant: UsageAccountant | None = None,
        enhance_retry: RetryBudget = ENHANCE_RETRY,
        transcribe_retry: RetryBudget = TRANSCRIBE_RETRY,
        generate_retry: RetryBudget = GENERATE_RETRY,
        store_retry: RetryBudget = STORE_RETRY,
        min_transcript_chars: int = MIN_TRANSCRIPT_CHARS,
    ) -> None:
        self._lecture_store = lecture_store
        self._profile_store = profile_store
        self._audio_storage = audio_storage
        self._enhancer = enhancer
        self._transcriber = transcriber
        self._note_generator = note_generator
        self._usage_accountant = usage_accountant or UsageAccountant(profile_store)
        self._enhance_retry = enhance_retry
        self._transcribe_retry = transcribe_retry
        self._generate_retry = generate_retry
        self._store_retry = store_retry
        self._min_transcript_chars = min_transcript_chars

    async def process(
        self,
        lecture_id: str,
        owner_id: str,
        *,
        retry_failed: bool = False,
    ) -> ProcessingResult:
        """Run the pipeline for one lecture owned by ``owner_id``.

        Args:
            lecture_id: The lecture to process.
            owner_id: The requesting user; must own the lecture.
            retry_failed: Allow re-running a lecture that previously failed.

        Returns:
            ProcessingResult with status "completed" or "failed". Failed runs
            carry a ProcessingError; the lecture record holds the same
            user-facing message.

        Raises:
            LectureNotFoundError: If the lecture does not exist for the owner.
            LectureAlreadyProcessedError: If the lecture is completed, or
                failed without ``retry_failed``.
            TransitionConflictError: If a concurrent run changed the status.
            StorageError: If the lecture or profile cannot be read.
        """
        lecture = await self._load_lecture(lecture_id, owner_id, retry_failed)
        profile = await self._with_store_retry(
            lambda: self._profile_store.get(owner_id), "Fetch profile"
        )
        plan = resolve_active_plan(profile)

        ctx = _RunContext(
            lecture=lecture,
            profile=profile,
            plan=plan,
            persisted_status=lecture.status,
        )
        logger.info(
            "Starting processing for lecture %s (plan=%s, status=%s)",
            lecture_id,
            plan,
            lecture.status,
            extra={"lecture_id": lecture_id, "user_id": owner_id},
        )

        try:
            await self._run(ctx)
        except TransitionConflictError as exc:
            logger.warning(
                "Lecture %s was changed by another run, aborting: %s",
                lecture_id,
                exc,
                extra={"lecture_id": lecture_id},
            )
            self._emit_metrics(ctx, "aborted", error=exc)
            raise
        except Exception as exc:
            return await self._fail(ctx, exc)

        usage_count = await self._record_usage(ctx)
        metrics = self._emit_metrics(ctx, "completed")
        logger.info(
            "Processing completed for lecture %s in %.1fs",
            lecture_id,
            metrics.processing_wall_time_seconds,
            extra={"lecture_id": lecture_id},
        )
        return ProcessingResult(
            status="completed",
            lecture_id=lecture_id,
            plan=plan,
            metrics=metrics,
            transcript=ctx.transcription.transcript if ctx.transcription else None,
            notes=ctx.notes,
            usage_count=usage_count,
        )

    async def _load_lecture(
        self, lecture_id: str, owner_id: str, retry_failed: bool
    ) -> Lecture:
        lecture = await self._with_store_retry(
            lambda: self._lecture_store.get(lecture_id, owner_id), "Fetch lecture"
        )
        if lecture is None:
            raise LectureNotFoundError("Lecture not found", lecture_id=lecture_id)
        if lecture.status in PROCESSABLE_STATUSES:
            return lecture
        if lecture.status == "failed":
            if retry_failed:
                return lecture
            message = "Lecture processing already failed"
        else:
            message = "Lecture already processed"
        raise LectureAlreadyProcessedError(
            message, lecture_id=lecture_id, status=lecture.status
        )

    async def _run(self, ctx: _RunContext) -> None:
        """Execute steps 1-8. Raises on any fatal failure."""
        # Step 1: make progress visible before any external call
        stale = {"error_message": None} if ctx.lecture.error_message else {}
        with StageTimer("start", ctx.timings):
            await self._transition(ctx, "transcribing", **stale)

        # Step 2: fetch the uploaded audio
        with StageTimer("download", ctx.timings):
            blob = await self._download(ctx)
        ctx.audio_size_bytes = len(blob.data)

        # Step 3: enhancement is best-effort
        with StageTimer("enhance", ctx.timings):
            audio, mime_type = await self._enhance(ctx, blob)

        # Step 4: transcribe
        with StageTimer("transcribe", ctx.timings):
            transcription = await call_with_retry(
                lambda: self._transcriber.transcribe(audio, mime_type),
                max_attempts=self._transcribe_retry.max_attempts,
                base_delay=self._transcribe_retry.base_delay,
                label="Transcribe audio",
            )
        logger.info(
            "Transcription complete: %d chars",
            len(transcription.transcript),
            extra={"lecture_id": ctx.lecture_id, "stage": "transcribe"},
        )

        # Step 5: reject near-silent recordings before spending a generation
        with StageTimer("validate", ctx.timings):
            if len(transcription.transcript) < self._min_transcript_chars:
                raise ContentQualityError(NO_SPEECH_MESSAGE)

        # Step 6: persist transcript together with the status change
        with StageTimer("save_transcript", ctx.timings):
            await self._transition(
                ctx,
                "generating",
                transcript=transcription.transcript,
                audio_duration=transcription.duration,
            )
        ctx.transcription = transcription

        # Step 7: generate notes
        with StageTimer("generate", ctx.timings):
            notes = await call_with_retry(
                lambda: self._note_generator.generate(
                    transcription.transcript, ctx.plan
                ),
                max_attempts=self._generate_retry.max_attempts,
                base_delay=self._generate_retry.base_delay,
                label="Generate notes",
            )

        # Step 8: persist notes, terminal success
        with StageTimer("save_notes", ctx.timings):
            await self._transition(ctx, "completed", notes=notes)
        ctx.notes = notes

    async def _transition(self, ctx: _RunContext, status: str, **fields: Any) -> None:
        """Persist ``fields`` and ``status`` if the lecture is still unchanged.

        A write whose response was lost may already have committed, in which
        case the retried compare-and-swap misses. The miss is accepted only
        when the stored row already holds exactly this write.
        """
        expected = ctx.persisted_status
        update = {**fields, "status": status}
        ambiguous = False

        async def write() -> None:
            nonlocal ambiguous
            try:
                await self._lecture_store.update(
                    ctx.lecture_id, update, expected_status=expected
                )
            except TransitionConflictError:
                if ambiguous and await self._write_landed(ctx, update):
                    logger.info(
                        "Lecture %s: earlier %s write had committed",
                        ctx.lecture_id,
                        status,
                        extra={"lecture_id": ctx.lecture_id},
                    )
                    return
                raise
            except Exception as exc:
                if is_transient_error(exc):
                    ambiguous = True
                raise

        await self._with_store_retry(write, f"Set status {status}")
        ctx.persisted_status = status
        logger.info(
            "Lecture %s: %s -> %s",
            ctx.lecture_id,
            expected,
            status,
            extra={"lecture_id": ctx.lecture_id},
        )

    async def _write_landed(self, ctx: _RunContext, update: dict[str, Any]) -> bool:
        """Return True if the stored lecture already matches ``update``."""
        try:
            current = await self._lecture_store.get(ctx.lecture_id, ctx.owner_id)
        except Exception:
            logger.warning(
                "Could not re-read lecture %s after a conflicting write",
                ctx.lecture_id,
                exc_info=True,
                extra={"lecture_id": ctx.lecture_id},
            )
            return False
        if current is None:
            return False
        return all(getattr(current, key) == value for key, value in update.items())

    async def _download(self, ctx: _RunContext) -> AudioBlob:
        """Fetch the lecture audio. Not retried; any failure is fatal."""
        location = ctx.lecture.audio_url
        try:
            return await self._audio_storage.download(location)
        except AudioFetchError:
            raise
        except Exception as exc:
            raise AudioFetchError(
                f"Failed to download audio file: {exc}", key=location
            ) from exc

    async def _enhance(self, ctx: _RunContext, blob: AudioBlob) -> tuple[bytes, str]:
        """Return enhanced audio, or the original audio if enhancement fails."""
        try:
            enhanced = await call_with_retry(
                lambda: self._enhancer.enhance(blob.data, blob.mime_type),
                max_attempts=self._enhance_retry.max_attempts,
                base_delay=self._enhance_retry.base_delay,
                label="Enhance audio",
            )
        except Exception:
            logger.warning(
                "Audio enhancement failed for lecture %s, using original audio",
                ctx.lecture_id,
                exc_info=True,
                extra={"lecture_id": ctx.lecture_id, "stage": "enhance"},
            )
            return blob.data, blob.mime_type

        if not enhanced:
            logger.warning(
                "Enhancer returned no audio for lecture %s, using original audio",
                ctx.lecture_id,
                extra={"lecture_id": ctx.lecture_id, "stage": "enhance"},
            )
            return blob.data, blob.mime_type

        ctx.enhanced = True
        ctx.enhanced_audio_size_bytes = len(enhanced)
        return enhanced, self._enhancer.output_mime_type or blob.mime_type

    async def _record_usage(self, ctx: _RunContext) -> int | None:
        """Meter a completed free-plan lecture. Failures are only logged."""
        if ctx.plan != "free":
            return None
        try:
            with StageTimer("usage", ctx.timings):
                return await self._with_store_retry(
                    lambda: self._usage_accountant.record_usage(
                        ctx.owner_id, ctx.profile
                    ),
                    "Update usage",
                )
        except Exception:
            logger.error(
                "Failed to update usage for user %s after lecture %s",
                ctx.owner_id,
                ctx.lecture_id,
                exc_info=True,
                extra={"lecture_id": ctx.lecture_id, "user_id": ctx.owner_id},
            )
            return None

    async def _fail(self, ctx: _RunContext, exc: Exception) -> ProcessingResult:
        """Mark the lecture failed (best-effort) and build the failed result."""
        stage = failed_stage(ctx.timings) or "unknown"
        user_message = user_message_for(exc)
        retry_count = getattr(exc, "_retry_count", 0)

        logger.error(
            "Processing failed at stage '%s' for lecture %s: %s",
            stage,
            ctx.lecture_id,
            exc,
            exc_info=True,
            extra={"lecture_id": ctx.lecture_id, "stage": stage},
        )

        try:
            await self._lecture_store.update(
                ctx.lecture_id,
                {"status": "failed", "error_message": user_message},
                expected_status=ctx.persisted_status,
            )
            ctx.persisted_status = "failed"
        except Exception:
            logger.error(
                "Failed to update lecture status for lecture %s",
                ctx.lecture_id,
                exc_info=True,
                extra={"lecture_id": ctx.lecture_id},
            )

        error = ProcessingError(
            stage=stage,
            message=str(exc),
            user_message=user_message,
            exception_type=type(exc).__name__,
            retry_count=retry_count,
        )
        metrics = self._emit_metrics(ctx, "failed", error=exc, stage=stage)
        return ProcessingResult(
            status="failed",
            lecture_id=ctx.lecture_id,
            plan=ctx.plan,
            metrics=metrics,
            transcript=ctx.transcription.transcript if ctx.transcription else None,
            error=error,
        )

    async def _with_store_retry(self, operation: Any, label: str) -> Any:
        return await call_with_retry(
            operation,
            max_attempts=self._store_retry.max_attempts,
            base_delay=self._store_retry.base_delay,
            label=label,
        )

    def _emit_metrics(
        self,
        ctx: _RunContext,
        status: str,
        error: BaseException | None = None,
        stage: str | None = None,
    ) -> LectureMetrics:
        transcription = ctx.transcription
        metrics = LectureMetrics(
            lecture_id=ctx.lecture_id,
            user_id=ctx.owner_id,
            status=status,
            plan=ctx.plan,
            processing_wall_time_seconds=time.monotonic() - ctx.wall_start,
            audio_size_bytes=ctx.audio_size_bytes,
            enhanced_audio_size_bytes=ctx.enhanced_audio_size_bytes,
            enhanced=ctx.enhanced,
            audio_duration_seconds=transcription.duration if transcription else 0.0,
            transcript_chars=len(transcription.transcript) if transcription else 0,
            notes_chars=len(ctx.notes) if ctx.notes else 0,
            stage_timings=dict(ctx.timings),
            retry_count=getattr(error, "_retry_count", 0) if error else 0,
            error_stage=stage,
            error_message=str(error) if error else None,
        )
        log_lecture_metrics(metrics)
        return metrics
