"""Abstract record-store interfaces consumed by the pipeline.

Every write is a partial update with the minimal field set; implementations
bump ``updated_at`` themselves.
"""

from abc import ABC, abstractmethod
from typing import Any

from lecture_processor.models import Lecture, Profile


class LectureStore(ABC):
    """Read and partially update lecture records."""

    @abstractmethod
    async def get(self, lecture_id: str, owner_id: str) -> Lecture | None:
        """Return the lecture if it exists and belongs to ``owner_id``."""

    @abstractmethod
    async def update(
        self,
        lecture_id: str,
        fields: dict[str, Any],
        expected_status: str | None = None,
    ) -> None:
        """Apply a partial update to a lecture.

        Args:
            lecture_id: The lecture identifier.
            fields: Columns to set.
            expected_status: When given, the update only commits if the
                stored status still equals this value.

        Raises:
            TransitionConflictError: If ``expected_status`` did not match.
            StorageError: If the write fails.
        """


class ProfileStore(ABC):
    """Read and partially update user profiles."""

    @abstractmethod
    async def get(self, user_id: str) -> Profile | None:
        """Return the user's profile, or None if there is none."""

    @abstractmethod
    async def update(self, user_id: str, fields: dict[str, Any]) -> None:
        """Apply a partial update to a profile.

        Raises:
            StorageError: If the write fails.
        """
