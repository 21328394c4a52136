"""Pluggable audio enhancers.

Public API:
    AudioEnhancer: Abstract base class for enhancer implementations.
    HttpAudioEnhancer: Client for the remote enhancement service.
    PassthroughEnhancer: Returns audio unchanged.
    get_enhancer: Factory to create enhancers by provider name.
"""

from lecture_processor.enhance.interface import AudioEnhancer
from lecture_processor.enhance.passthrough import PassthroughEnhancer
from lecture_processor.enhance.registry import get_enhancer
from lecture_processor.enhance.remote import HttpAudioEnhancer

__all__ = [
    "AudioEnhancer",
    "HttpAudioEnhancer",
    "PassthroughEnhancer",
    "get_enhancer",
]
