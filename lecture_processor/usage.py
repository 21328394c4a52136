"""Plan resolution and monthly usage accounting.

Quota is checked against the persisted ``lectures_used_this_month`` counter
rather than a count of lecture rows, so deleting processed lectures never
frees up quota. The counter is reset lazily: when the current calendar month
is later than the month of ``usage_reset_date`` the stored count is treated
as zero, and the physical reset happens on the next write.
"""

from __future__ import annotations

import logging
from datetime import UTC, date, datetime

from lecture_processor.models import PlanTier, Profile
from lecture_processor.storage.interface import ProfileStore

logger = logging.getLogger(__name__)

PLAN_LIMITS: dict[str, int] = {
    "free": 2,
    "student": 15,
}


def _now(now: datetime | None) -> datetime:
    return now if now is not None else datetime.now(UTC)


def resolve_active_plan(
    profile: Profile | None, now: datetime | None = None
) -> PlanTier:
    """Return the effective plan for a profile.

    The plan is ``student`` only while the stored plan is ``student`` and the
    subscription end date lies strictly in the future.
    """
    if profile is None or profile.subscription_plan != "student":
        return "free"
    end_date = profile.subscription_end_date
    if end_date is not None and end_date > _now(now):
        return "student"
    return "free"


def is_rollover_due(reset_date: date | None, now: datetime | None = None) -> bool:
    """Return True if the current (year, month) is later than the reset's."""
    if reset_date is None:
        return False
    current = _now(now)
    return (current.year, current.month) > (reset_date.year, reset_date.month)


def effective_usage(profile: Profile | None, now: datetime | None = None) -> int:
    """Usage count for the current month after applying the rollover rule."""
    if profile is None:
        return 0
    if is_rollover_due(profile.usage_reset_date, now):
        return 0
    return profile.lectures_used_this_month


def remaining_quota(
    profile: Profile | None, plan: PlanTier, now: datetime | None = None
) -> int:
    """Lectures the user may still process this month."""
    limit = PLAN_LIMITS[plan]
    return max(limit - effective_usage(profile, now), 0)


def has_quota(
    profile: Profile | None, plan: PlanTier, now: datetime | None = None
) -> bool:
    return remaining_quota(profile, plan, now) > 0


class UsageAccountant:
    """Records monthly lecture consumption for free-plan users.

    Args:
        profile_store: Store used to persist the updated counter.
    """

    def __init__(self, profile_store: ProfileStore) -> None:
        self._profile_store = profile_store

    async def record_usage(
        self,
        user_id: str,
        profile: Profile | None,
        now: datetime | None = None,
    ) -> int:
        """Increment the monthly counter and persist it with today's date.

        Does not deduplicate: the caller invokes this exactly once per
        completed free-plan lecture.

        Args:
            user_id: Owner of the profile.
            profile: Profile as read at the start of the run (None if absent).
            now: Current time, defaults to the UTC clock.

        Returns:
            The new persisted count.

        Raises:
            StorageError: If the profile update fails.
        """
        current = _now(now)
        new_count = effective_usage(profile, current) + 1
        await self._profile_store.update(
            user_id,
            {
                "lectures_used_this_month": new_count,
                "usage_reset_date": current.date().isoformat(),
            },
        )
        logger.info(
            "Usage for user %s is now %d this month",
            user_id,
            new_count,
            extra={"user_id": user_id},
        )
        return new_count
