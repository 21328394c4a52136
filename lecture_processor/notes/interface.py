"""Abstract note generator interface."""

from abc import ABC, abstractmethod

from lecture_processor.models import PlanTier


class NoteGenerator(ABC):
    """Abstract base class for note generator implementations.

    Subclasses must implement the generate() method.
    """

    @abstractmethod
    async def generate(self, transcript: str, plan: PlanTier) -> str:
        """Turn a lecture transcript into structured study notes.

        Args:
            transcript: Full transcript text.
            plan: Plan tier; paid tiers receive additional content such as
                practice exam questions.

        Returns:
            Markdown note text.

        Raises:
            NoteGenerationError: If generation fails or returns an
                unexpected response shape.
            NetworkError: If the service cannot be reached.
        """
