"""Anthropic Messages API note generator."""

import logging
import os

import httpx

from lecture_processor.models import PlanTier
from lecture_processor.notes.interface import NoteGenerator
from lecture_processor.notes.prompts import USER_PROMPT_TEMPLATE, system_prompt_for
from lecture_processor.utils.errors import NetworkError, NoteGenerationError

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.anthropic.com/v1"
DEFAULT_MODEL = "claude-3-haiku-20240307"
API_VERSION = "2023-06-01"
MAX_TOKENS = 4096


class AnthropicNoteGenerator(NoteGenerator):
    """Generates study notes with a Claude model.

    Args:
        api_key: Anthropic API key (default from ANTHROPIC_API_KEY).
        model: Model name (default from NOTES_MODEL).
        timeout: Request timeout in seconds (default 300).
        base_url: API base URL (default production endpoint).
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        timeout: float = 300.0,
        base_url: str = DEFAULT_BASE_URL,
    ) -> None:
        self._api_key = api_key or os.environ.get("ANTHROPIC_API_KEY", "")
        if not self._api_key:
            raise ValueError("ANTHROPIC_API_KEY is required")
        self._model = model or os.environ.get("NOTES_MODEL", DEFAULT_MODEL)
        self._timeout = httpx.Timeout(timeout, connect=10.0)
        self._base_url = base_url.rstrip("/")

    async def generate(self, transcript: str, plan: PlanTier) -> str:
        """Generate notes; student plans also get practice exam questions.

        Raises:
            NoteGenerationError: On an API error or a non-text response.
            NetworkError: If the API cannot be reached.
        """
        payload = {
            "model": self._model,
            "max_tokens": MAX_TOKENS,
            "system": system_prompt_for(plan),
            "messages": [
                {
                    "role": "user",
                    "content": USER_PROMPT_TEMPLATE.format(transcript=transcript),
                }
            ],
        }
        headers = {
            "x-api-key": self._api_key,
            "anthropic-version": API_VERSION,
            "content-type": "application/json",
        }
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.post(
                    f"{self._base_url}/messages", headers=headers, json=payload
                )
        except httpx.RequestError as exc:
            raise NetworkError(
                f"Anthropic request failed: {exc}", stage="generate"
            ) from exc

        if response.status_code != 200:
            raise NoteGenerationError(
                f"Claude note generation failed with status "
                f"{response.status_code}: {response.text}",
                provider="anthropic",
            )

        try:
            body = response.json()
        except ValueError as exc:
            raise NoteGenerationError(
                "Claude returned a non-JSON response", provider="anthropic"
            ) from exc

        content = body.get("content") if isinstance(body, dict) else None
        if not isinstance(content, list) or not content:
            raise NoteGenerationError(
                "Unexpected response shape from Claude", provider="anthropic"
            )
        block = content[0]
        if not isinstance(block, dict) or block.get("type") != "text":
            raise NoteGenerationError(
                "Unexpected response type from Claude", provider="anthropic"
            )

        notes = block.get("text") or ""
        logger.info("Notes generated: %d chars (plan=%s)", len(notes), plan)
        return notes
