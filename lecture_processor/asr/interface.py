"""Abstract transcriber interface.

Defines the Transcriber ABC and the transcription result model.
Concrete implementations (e.g., Deepgram) subclass Transcriber.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass
class TranscriptionResult:
    """Plain-text transcript with recording metadata."""

    transcript: str
    duration: float
    confidence: float = 0.0
    detected_language: str | None = None


class Transcriber(ABC):
    """Abstract base class for transcriber implementations.

    Subclasses must implement the transcribe() method.
    """

    @abstractmethod
    async def transcribe(self, audio: bytes, mime_type: str) -> TranscriptionResult:
        """Transcribe audio bytes.

        Args:
            audio: Audio bytes in any supported container.
            mime_type: Mime type of the audio.

        Returns:
            TranscriptionResult with transcript text and duration in seconds.

        Raises:
            TranscriptionError: On unsupported format or service failure.
            NetworkError: If the service cannot be reached.
        """
