"""Note generator registry with configuration-driven provider selection."""

from lecture_processor.notes.claude import AnthropicNoteGenerator
from lecture_processor.notes.interface import NoteGenerator
from lecture_processor.utils.errors import NoteGenerationError

NOTE_GENERATORS: dict[str, type[NoteGenerator]] = {
    "anthropic": AnthropicNoteGenerator,
}


def get_note_generator(provider: str, **kwargs: object) -> NoteGenerator:
    """Create a note generator instance by provider name.

    Raises:
        NoteGenerationError: If the provider name is not registered.
    """
    generator_cls = NOTE_GENERATORS.get(provider)
    if not generator_cls:
        available = ", ".join(sorted(NOTE_GENERATORS.keys()))
        raise NoteGenerationError(
            f"Unknown notes provider: '{provider}'. Available: {available}",
            provider=provider,
        )
    return generator_cls(**kwargs)
