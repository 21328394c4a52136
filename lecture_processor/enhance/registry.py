"""Enhancer registry with configuration-driven provider selection.

Maps provider name strings to enhancer classes. Use get_enhancer() to
instantiate an enhancer by name with enhancer-specific configuration.
"""

from lecture_processor.enhance.interface import AudioEnhancer
from lecture_processor.enhance.passthrough import PassthroughEnhancer
from lecture_processor.enhance.remote import HttpAudioEnhancer
from lecture_processor.utils.errors import EnhancementError

ENHANCERS: dict[str, type[AudioEnhancer]] = {
    "http": HttpAudioEnhancer,
    "passthrough": PassthroughEnhancer,
}


def get_enhancer(provider: str, **kwargs: object) -> AudioEnhancer:
    """Create an enhancer instance by provider name.

    Args:
        provider: Provider name (e.g., "http").
        **kwargs: Enhancer-specific configuration passed to the constructor.

    Returns:
        An initialized AudioEnhancer instance.

    Raises:
        EnhancementError: If the provider name is not registered.
    """
    enhancer_cls = ENHANCERS.get(provider)
    if not enhancer_cls:
        available = ", ".join(sorted(ENHANCERS.keys()))
        raise EnhancementError(
            f"Unknown enhancer provider: '{provider}'. Available: {available}",
            provider=provider,
        )
    return enhancer_cls(**kwargs)
