"""Lecture and profile records as read from the record store."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, date, datetime
from typing import Any, Literal, get_args

LectureStatus = Literal[
    "uploading", "transcribing", "generating", "completed", "failed"
]
PlanTier = Literal["free", "student"]

LECTURE_STATUSES: frozenset[str] = frozenset(get_args(LectureStatus))
TERMINAL_STATUSES: frozenset[str] = frozenset({"completed", "failed"})
PROCESSABLE_STATUSES: frozenset[str] = frozenset(
    {"uploading", "transcribing", "generating"}
)


def _parse_datetime(value: Any) -> datetime | None:
    """Parse an ISO 8601 timestamp; naive values are taken as UTC."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def _parse_date(value: Any) -> date | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    # Accept both "2026-10-01" and full timestamps
    return date.fromisoformat(str(value)[:10])


@dataclass
class Lecture:
    """One user-submitted recording and its processing state."""

    id: str
    user_id: str
    title: str
    audio_url: str
    status: LectureStatus
    audio_duration: float | None = None
    transcript: str | None = None
    notes: str | None = None
    error_message: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> Lecture:
        """Build a Lecture from a ``lectures`` table row.

        Raises:
            ValueError: If required fields are missing or the status is unknown.
        """
        for key in ("id", "user_id", "audio_url", "status"):
            if not row.get(key):
                raise ValueError(f"Missing '{key}' in lecture row")

        status = row["status"]
        if status not in LECTURE_STATUSES:
            raise ValueError(f"Unknown lecture status: '{status}'")

        duration = row.get("audio_duration")
        return cls(
            id=str(row["id"]),
            user_id=str(row["user_id"]),
            title=row.get("title") or "",
            audio_url=row["audio_url"],
            status=status,
            audio_duration=float(duration) if duration is not None else None,
            transcript=row.get("transcript"),
            notes=row.get("notes"),
            error_message=row.get("error_message"),
            created_at=_parse_datetime(row.get("created_at")),
            updated_at=_parse_datetime(row.get("updated_at")),
        )


@dataclass
class Profile:
    """Subscription and monthly usage state for one user."""

    user_id: str
    subscription_plan: str = "free"
    subscription_end_date: datetime | None = None
    lectures_used_this_month: int = 0
    usage_reset_date: date | None = None

    @classmethod
    def from_row(cls, row: dict[str, Any], user_id: str | None = None) -> Profile:
        """Build a Profile from a ``profiles`` table row."""
        return cls(
            user_id=str(row.get("id") or user_id or ""),
            subscription_plan=row.get("subscription_plan") or "free",
            subscription_end_date=_parse_datetime(
                row.get("subscription_end_date")
            ),
            lectures_used_this_month=int(row.get("lectures_used_this_month") or 0),
            usage_reset_date=_parse_date(row.get("usage_reset_date")),
        )
