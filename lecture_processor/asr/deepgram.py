"""Deepgram pre-recorded transcription client.

Sends the whole recording to the Deepgram ``/v1/listen`` endpoint in one
request. The default model is tuned for noisy, multi-speaker rooms; language
is auto-detected.
"""

import logging
import os

import httpx

from lecture_processor.asr.interface import Transcriber, TranscriptionResult
from lecture_processor.utils.errors import NetworkError, TranscriptionError

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.deepgram.com/v1"
DEFAULT_MODEL = "nova-2-meeting"


class DeepgramTranscriber(Transcriber):
    """Deepgram pre-recorded audio transcriber.

    Args:
        api_key: Deepgram API key (default from DEEPGRAM_API_KEY).
        model: Deepgram model name (default from DEEPGRAM_MODEL).
        timeout: Request timeout in seconds (default 600).
        base_url: Deepgram API base URL (default production endpoint).
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        timeout: float = 600.0,
        base_url: str = DEFAULT_BASE_URL,
    ) -> None:
        self._api_key = api_key or os.environ.get("DEEPGRAM_API_KEY", "")
        if not self._api_key:
            raise ValueError("DEEPGRAM_API_KEY is required")
        self._model = model or os.environ.get("DEEPGRAM_MODEL", DEFAULT_MODEL)
        self._timeout = httpx.Timeout(timeout, connect=10.0)
        self._base_url = base_url.rstrip("/")

    def _params(self) -> dict[str, str]:
        return {
            "model": self._model,
            "smart_format": "true",
            "punctuate": "true",
            "paragraphs": "true",
            "utterances": "true",
            "detect_language": "true",
            "diarize": "true",
            "filler_words": "true",
            "multichannel": "false",
        }

    async def transcribe(self, audio: bytes, mime_type: str) -> TranscriptionResult:
        """Transcribe audio via the Deepgram pre-recorded API.

        Raises:
            TranscriptionError: If Deepgram rejects the request.
            NetworkError: If Deepgram cannot be reached.
        """
        headers = {
            "Authorization": f"Token {self._api_key}",
            "Content-Type": mime_type,
        }
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.post(
                    f"{self._base_url}/listen",
                    params=self._params(),
                    headers=headers,
                    content=audio,
                )
        except httpx.RequestError as exc:
            raise NetworkError(
                f"Deepgram request failed: {exc}", stage="transcribe"
            ) from exc

        if response.status_code != 200:
            raise TranscriptionError(
                f"Deepgram transcription failed with status "
                f"{response.status_code}: {response.text}",
                provider="deepgram",
            )

        try:
            body = response.json()
        except ValueError as exc:
            raise TranscriptionError(
                "Deepgram returned a non-JSON response", provider="deepgram"
            ) from exc

        try:
            result = self._convert_response(body)
        except (AttributeError, IndexError, TypeError, ValueError) as exc:
            raise TranscriptionError(
                "Unexpected response shape from Deepgram", provider="deepgram"
            ) from exc
        logger.info(
            "Transcription: %d chars, confidence: %.2f, language: %s",
            len(result.transcript),
            result.confidence,
            result.detected_language,
        )
        return result

    @staticmethod
    def _convert_response(body: dict) -> TranscriptionResult:
        """Extract the first channel's best alternative.

        Missing fields fall back to an empty transcript and zero duration,
        leaving quality checks to the caller.
        """
        channels = (body.get("results") or {}).get("channels") or [{}]
        channel = channels[0] or {}
        alternatives = channel.get("alternatives") or [{}]
        best = alternatives[0] or {}
        metadata = body.get("metadata") or {}

        return TranscriptionResult(
            transcript=best.get("transcript") or "",
            duration=float(metadata.get("duration") or 0.0),
            confidence=float(best.get("confidence") or 0.0),
            detected_language=channel.get("detected_language") or "en",
        )
