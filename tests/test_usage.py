"""Tests for lecture_processor.usage module."""

from datetime import UTC, date, datetime, timedelta
from unittest.mock import AsyncMock

import pytest

from lecture_processor.models import Profile
from lecture_processor.usage import (
    PLAN_LIMITS,
    UsageAccountant,
    effective_usage,
    has_quota,
    is_rollover_due,
    remaining_quota,
    resolve_active_plan,
)

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=UTC)


def _profile(**overrides) -> Profile:
    defaults = {
        "user_id": "user-1",
        "subscription_plan": "free",
        "subscription_end_date": None,
        "lectures_used_this_month": 0,
        "usage_reset_date": date(2026, 10, 2),
    }
    defaults.update(overrides)
    return Profile(**defaults)


class TestResolveActivePlan:
    """Tests for effective plan resolution."""

    def test_student_with_future_end_date(self) -> None:
        profile = _profile(
            subscription_plan="student",
            subscription_end_date=NOW + timedelta(days=10),
        )
        assert resolve_active_plan(profile, now=NOW) == "student"

    def test_student_with_expired_end_date_is_free(self) -> None:
        profile = _profile(
            subscription_plan="student",
            subscription_end_date=NOW - timedelta(seconds=1),
        )
        assert resolve_active_plan(profile, now=NOW) == "free"

    def test_end_date_equal_to_now_is_free(self) -> None:
        profile = _profile(subscription_plan="student", subscription_end_date=NOW)
        assert resolve_active_plan(profile, now=NOW) == "free"

    def test_student_without_end_date_is_free(self) -> None:
        profile = _profile(subscription_plan="student")
        assert resolve_active_plan(profile, now=NOW) == "free"

    def test_free_plan_ignores_end_date(self) -> None:
        profile = _profile(
            subscription_plan="free",
            subscription_end_date=NOW + timedelta(days=10),
        )
        assert resolve_active_plan(profile, now=NOW) == "free"

    def test_missing_profile_is_free(self) -> None:
        assert resolve_active_plan(None, now=NOW) == "free"


class TestRollover:
    """Tests for the month rollover rule."""

    def test_same_month_is_not_due(self) -> None:
        assert not is_rollover_due(date(2026, 10, 1), now=NOW)

    def test_previous_month_is_due(self) -> None:
        assert is_rollover_due(date(2026, 9, 30), now=NOW)

    def test_same_month_previous_year_is_due(self) -> None:
        assert is_rollover_due(date(2025, 10, 19), now=NOW)

    def test_december_to_january_is_due(self) -> None:
        january = datetime(2027, 1, 1, tzinfo=UTC)
        assert is_rollover_due(date(2026, 12, 31), now=january)

    def test_future_reset_date_is_not_due(self) -> None:
        assert not is_rollover_due(date(2026, 11, 1), now=NOW)

    def test_missing_reset_date_is_not_due(self) -> None:
        assert not is_rollover_due(None, now=NOW)


class TestQuota:
    """Tests for quota reads."""

    def test_plan_limits(self) -> None:
        assert PLAN_LIMITS == {"free": 2, "student": 15}

    def test_remaining_quota_this_month(self) -> None:
        profile = _profile(lectures_used_this_month=1)
        assert remaining_quota(profile, "free", now=NOW) == 1

    def test_free_user_at_limit_has_no_quota(self) -> None:
        profile = _profile(lectures_used_this_month=2)
        assert remaining_quota(profile, "free", now=NOW) == 0
        assert not has_quota(profile, "free", now=NOW)

    def test_remaining_quota_never_negative(self) -> None:
        profile = _profile(lectures_used_this_month=7)
        assert remaining_quota(profile, "free", now=NOW) == 0

    def test_student_limit(self) -> None:
        profile = _profile(lectures_used_this_month=4)
        assert remaining_quota(profile, "student", now=NOW) == 11

    def test_rollover_resets_effective_usage(self) -> None:
        """A user at the free limit last month is under quota this month."""
        profile = _profile(
            lectures_used_this_month=2, usage_reset_date=date(2026, 9, 28)
        )
        assert effective_usage(profile, now=NOW) == 0
        assert remaining_quota(profile, "free", now=NOW) == 2
        assert has_quota(profile, "free", now=NOW)

    def test_missing_profile_has_full_quota(self) -> None:
        assert remaining_quota(None, "free", now=NOW) == 2


class TestUsageAccountant:
    """Tests for UsageAccountant.record_usage()."""

    @pytest.fixture
    def profile_store(self):
        return AsyncMock()

    async def test_increments_counter_in_same_month(self, profile_store) -> None:
        accountant = UsageAccountant(profile_store)
        profile = _profile(lectures_used_this_month=1)

        new_count = await accountant.record_usage("user-1", profile, now=NOW)

        assert new_count == 2
        profile_store.update.assert_awaited_once_with(
            "user-1",
            {"lectures_used_this_month": 2, "usage_reset_date": "2026-10-19"},
        )

    async def test_rollover_persists_one_with_today(self, profile_store) -> None:
        accountant = UsageAccountant(profile_store)
        profile = _profile(
            lectures_used_this_month=2, usage_reset_date=date(2026, 9, 28)
        )

        new_count = await accountant.record_usage("user-1", profile, now=NOW)

        assert new_count == 1
        profile_store.update.assert_awaited_once_with(
            "user-1",
            {"lectures_used_this_month": 1, "usage_reset_date": "2026-10-19"},
        )

    async def test_missing_profile_starts_at_one(self, profile_store) -> None:
        accountant = UsageAccountant(profile_store)

        assert await accountant.record_usage("user-1", None, now=NOW) == 1

    async def test_does_not_deduplicate(self, profile_store) -> None:
        accountant = UsageAccountant(profile_store)
        profile = _profile(lectures_used_this_month=0)

        await accountant.record_usage("user-1", profile, now=NOW)
        await accountant.record_usage("user-1", profile, now=NOW)

        assert profile_store.update.await_count == 2

    async def test_store_error_propagates(self, profile_store) -> None:
        profile_store.update.side_effect = RuntimeError("db down")
        accountant = UsageAccountant(profile_store)

        with pytest.raises(RuntimeError, match="db down"):
            await accountant.record_usage("user-1", _profile(), now=NOW)
