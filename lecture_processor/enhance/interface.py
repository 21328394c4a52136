"""Abstract audio enhancer interface.

An enhancer cleans up raw lecture audio before transcription. Output is
always normalized to one fixed format, advertised by output_mime_type.
"""

from abc import ABC, abstractmethod


class AudioEnhancer(ABC):
    """Abstract base class for audio enhancer implementations.

    Subclasses must implement the output_mime_type property and the
    enhance() method.
    """

    @property
    @abstractmethod
    def output_mime_type(self) -> str | None:
        """Mime type of enhanced audio, or None if the input type is kept."""

    @abstractmethod
    async def enhance(self, audio: bytes, mime_type: str) -> bytes:
        """Return cleaned audio for the given input.

        Args:
            audio: Raw audio bytes.
            mime_type: Mime type of the raw audio.

        Returns:
            Enhanced audio bytes in the output_mime_type format.

        Raises:
            EnhancementError: On malformed input or service failure.
            NetworkError: If the enhancer cannot be reached.
        """
