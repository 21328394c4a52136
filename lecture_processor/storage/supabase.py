"""Supabase record stores over the PostgREST API.

Lecture and profile rows are read and patched with the service role key.
Status transitions use a conditional PATCH (``status=eq.<expected>``) with
``Prefer: return=representation``; an empty representation means no row
matched and the transition lost a race.
"""

from __future__ import annotations

import logging
import os
from datetime import UTC, datetime
from typing import Any

import httpx

from lecture_processor.models import Lecture, Profile
from lecture_processor.storage.interface import LectureStore, ProfileStore
from lecture_processor.utils.errors import (
    NetworkError,
    StorageError,
    TransitionConflictError,
)

logger = logging.getLogger(__name__)

PROFILE_COLUMNS = (
    "id,subscription_plan,subscription_end_date,"
    "lectures_used_this_month,usage_reset_date"
)


class SupabaseRestClient:
    """Thin PostgREST client shared by the Supabase stores.

    Reads configuration from environment variables:
        SUPABASE_URL, SUPABASE_SERVICE_ROLE_KEY
    """

    def __init__(
        self,
        base_url: str | None = None,
        service_key: str | None = None,
        timeout: float = 30.0,
    ) -> None:
        self.base_url = (base_url or os.environ.get("SUPABASE_URL", "")).rstrip(
            "/"
        )
        self.service_key = service_key or os.environ.get(
            "SUPABASE_SERVICE_ROLE_KEY", ""
        )

        if not self.base_url:
            raise StorageError("SUPABASE_URL is required", operation="init")
        if not self.service_key:
            raise StorageError(
                "SUPABASE_SERVICE_ROLE_KEY is required", operation="init"
            )

        self._client = httpx.AsyncClient(timeout=timeout)

    def _headers(self, prefer: str | None = None) -> dict[str, str]:
        """Build service-role authentication headers."""
        headers = {
            "apikey": self.service_key,
            "Authorization": f"Bearer {self.service_key}",
            "Content-Type": "application/json",
        }
        if prefer:
            headers["Prefer"] = prefer
        return headers

    async def close(self) -> None:
        """Close the shared HTTP client and release connection pool."""
        await self._client.aclose()

    async def request(
        self,
        method: str,
        table: str,
        operation: str,
        params: dict[str, str],
        json: dict[str, Any] | None = None,
        prefer: str | None = None,
    ) -> Any:
        """Send one PostgREST request and return the decoded body.

        Raises:
            NetworkError: If the database cannot be reached.
            StorageError: If the API answers with an error status.
        """
        url = f"{self.base_url}/rest/v1/{table}"
        try:
            response = await self._client.request(
                method,
                url,
                params=params,
                headers=self._headers(prefer),
                json=json,
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise StorageError(
                f"Supabase {operation} failed on '{table}': "
                f"HTTP {exc.response.status_code}",
                operation=operation,
            ) from exc
        except httpx.RequestError as exc:
            raise NetworkError(
                f"Supabase {operation} failed on '{table}': {exc}",
                stage="storage",
            ) from exc

        if not response.content:
            return None
        return response.json()


def _timestamp() -> str:
    return datetime.now(UTC).isoformat()


class SupabaseLectureStore(LectureStore):
    """LectureStore backed by the ``lectures`` table."""

    def __init__(self, client: SupabaseRestClient) -> None:
        self._client = client

    async def get(self, lecture_id: str, owner_id: str) -> Lecture | None:
        rows = await self._client.request(
            "GET",
            "lectures",
            "get_lecture",
            params={
                "id": f"eq.{lecture_id}",
                "user_id": f"eq.{owner_id}",
                "select": "*",
            },
        )
        if not rows:
            return None
        return Lecture.from_row(rows[0])

    async def update(
        self,
        lecture_id: str,
        fields: dict[str, Any],
        expected_status: str | None = None,
    ) -> None:
        params = {"id": f"eq.{lecture_id}"}
        if expected_status is not None:
            params["status"] = f"eq.{expected_status}"

        payload = {**fields, "updated_at": _timestamp()}
        rows = await self._client.request(
            "PATCH",
            "lectures",
            "update_lecture",
            params=params,
            json=payload,
            prefer="return=representation",
        )

        if expected_status is not None and not rows:
            raise TransitionConflictError(
                f"Lecture is no longer '{expected_status}'",
                lecture_id=lecture_id,
                expected_status=expected_status,
            )
        logger.debug(
            "Updated lecture %s: %s",
            lecture_id,
            ", ".join(sorted(fields)),
            extra={"lecture_id": lecture_id},
        )


class SupabaseProfileStore(ProfileStore):
    """ProfileStore backed by the ``profiles`` table."""

    def __init__(self, client: SupabaseRestClient) -> None:
        self._client = client

    async def get(self, user_id: str) -> Profile | None:
        rows = await self._client.request(
            "GET",
            "profiles",
            "get_profile",
            params={"id": f"eq.{user_id}", "select": PROFILE_COLUMNS},
        )
        if not rows:
            return None
        return Profile.from_row(rows[0], user_id=user_id)

    async def update(self, user_id: str, fields: dict[str, Any]) -> None:
        await self._client.request(
            "PATCH",
            "profiles",
            "update_profile",
            params={"id": f"eq.{user_id}"},
            json=fields,
        )
