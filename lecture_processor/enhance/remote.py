"""Client for the remote audio enhancement service.

The service accepts a multipart upload on ``POST /enhance`` and answers with
noise-reduced, loudness-normalized 16-bit mono WAV.
"""

import logging
import os

import httpx

from lecture_processor.enhance.interface import AudioEnhancer
from lecture_processor.utils.errors import EnhancementError, NetworkError

logger = logging.getLogger(__name__)

OUTPUT_MIME_TYPE = "audio/wav"


def extension_for(mime_type: str) -> str:
    """File extension hint sent with the upload."""
    if "mp3" in mime_type or "mpeg" in mime_type:
        return "mp3"
    if "wav" in mime_type:
        return "wav"
    if "m4a" in mime_type:
        return "m4a"
    if "mp4" in mime_type:
        return "mp4"
    return "audio"


class HttpAudioEnhancer(AudioEnhancer):
    """Enhancer backed by the audio enhancement microservice.

    Args:
        base_url: Service base URL (default from AUDIO_ENHANCER_URL).
        timeout: Request timeout in seconds (default 300).
    """

    def __init__(self, base_url: str | None = None, timeout: float = 300.0) -> None:
        self._base_url = (
            base_url or os.environ.get("AUDIO_ENHANCER_URL", "")
        ).rstrip("/")
        if not self._base_url:
            raise ValueError("AUDIO_ENHANCER_URL is required")
        self._timeout = httpx.Timeout(timeout, connect=10.0)

    @property
    def output_mime_type(self) -> str:
        return OUTPUT_MIME_TYPE

    async def enhance(self, audio: bytes, mime_type: str) -> bytes:
        """Send audio to the enhancement service and return the result.

        Raises:
            EnhancementError: If the service rejects the audio.
            NetworkError: If the service cannot be reached.
        """
        logger.info("Sending %d bytes for enhancement", len(audio))
        files = {
            "audio": (f"audio.{extension_for(mime_type)}", audio, mime_type),
        }
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.post(
                    f"{self._base_url}/enhance", files=files
                )
        except httpx.RequestError as exc:
            raise NetworkError(
                f"Audio enhancement request failed: {exc}", stage="enhance"
            ) from exc

        if response.status_code != 200:
            raise EnhancementError(
                f"Audio enhancement failed: {self._error_detail(response)}",
                provider="http",
            )

        processing_time = response.headers.get("X-Processing-Time-Ms")
        logger.info(
            "Enhancement completed in %sms. Original: %d bytes, Enhanced: %d bytes",
            processing_time,
            len(audio),
            len(response.content),
        )
        return response.content

    @staticmethod
    def _error_detail(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return f"HTTP {response.status_code}"
        if isinstance(body, dict):
            return str(
                body.get("message") or body.get("error") or response.status_code
            )
        return f"HTTP {response.status_code}"
