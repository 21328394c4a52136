"""Passthrough enhancer that returns audio unchanged.

Used when no enhancement service is configured.
"""

from lecture_processor.enhance.interface import AudioEnhancer


class PassthroughEnhancer(AudioEnhancer):
    """Enhancer that keeps the original audio and mime type."""

    @property
    def output_mime_type(self) -> str | None:
        return None

    async def enhance(self, audio: bytes, mime_type: str) -> bytes:
        return audio
