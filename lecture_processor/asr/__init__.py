"""Speech transcription modules."""

from lecture_processor.asr.registry import get_transcriber

__all__ = ["get_transcriber"]
