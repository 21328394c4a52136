"""Study note generation modules."""

from lecture_processor.notes.registry import get_note_generator

__all__ = ["get_note_generator"]
