"""Processing metrics collection and reporting.

Provides the LectureMetrics dataclass, the StageTimer context manager for
measuring pipeline stage durations, and log_lecture_metrics() for emitting
one structured JSON line per pipeline run.
"""

from __future__ import annotations

import json
import time
from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime
from typing import Any


@dataclass
class LectureMetrics:
    """All metrics collected for a single pipeline run."""

    lecture_id: str
    user_id: str
    status: str
    plan: str
    processing_wall_time_seconds: float
    audio_size_bytes: int = 0
    enhanced_audio_size_bytes: int = 0
    enhanced: bool = False
    audio_duration_seconds: float = 0.0
    transcript_chars: int = 0
    notes_chars: int = 0
    stage_timings: dict[str, float] = field(default_factory=dict)
    retry_count: int = 0
    error_stage: str | None = None
    error_message: str | None = None


class StageTimer:
    """Context manager that records wall-clock duration of a pipeline stage.

    On exit the duration is written into ``timings`` under the stage name,
    or under ``_<stage>_failed`` when the block raised.

    Usage:
        timings = {}
        with StageTimer("transcribe", timings):
            await transcribe()
    """

    def __init__(self, stage_name: str, timings: dict[str, float]) -> None:
        self.stage_name = stage_name
        self.duration_seconds: float = 0.0
        self._timings = timings
        self._mono_start: float = 0.0

    def __enter__(self) -> StageTimer:
        self._mono_start = time.monotonic()
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.duration_seconds = time.monotonic() - self._mono_start
        if exc_type is not None:
            self._timings[f"_{self.stage_name}_failed"] = self.duration_seconds
        else:
            self._timings[self.stage_name] = self.duration_seconds


def failed_stage(timings: dict[str, float]) -> str | None:
    """Return the stage recorded as failed by a StageTimer, if any."""
    for key in timings:
        if key.startswith("_") and key.endswith("_failed"):
            return key[1 : -len("_failed")]
    return None


def log_lecture_metrics(metrics: LectureMetrics) -> None:
    """Emit run metrics as a single structured JSON line to stdout.

    Args:
        metrics: Populated LectureMetrics dataclass.
    """
    entry = {
        "timestamp": datetime.now(UTC).isoformat(),
        "severity": "INFO",
        "metric_type": "lecture_processing",
        **asdict(metrics),
    }
    print(json.dumps(entry))
