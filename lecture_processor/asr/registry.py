"""Transcriber registry with configuration-driven provider selection.

Maps provider name strings to transcriber classes. Use get_transcriber() to
instantiate a transcriber by name with provider-specific configuration.
"""

from lecture_processor.asr.deepgram import DeepgramTranscriber
from lecture_processor.asr.interface import Transcriber
from lecture_processor.utils.errors import TranscriptionError

TRANSCRIBERS: dict[str, type[Transcriber]] = {
    "deepgram": DeepgramTranscriber,
}


def get_transcriber(provider: str, **kwargs: object) -> Transcriber:
    """Create a transcriber instance by provider name.

    Args:
        provider: Provider name (e.g., "deepgram").
        **kwargs: Provider-specific configuration passed to the constructor.

    Returns:
        An initialized Transcriber instance.

    Raises:
        TranscriptionError: If the provider name is not registered.
    """
    transcriber_cls = TRANSCRIBERS.get(provider)
    if not transcriber_cls:
        available = ", ".join(sorted(TRANSCRIBERS.keys()))
        raise TranscriptionError(
            f"Unknown transcription provider: '{provider}'. Available: {available}",
            provider=provider,
        )
    return transcriber_cls(**kwargs)
