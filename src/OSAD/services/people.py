from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional
import logging

from OSAD.client.fetcher import DashboardFetcher
from OSAD.client.storage import PhotoRef, UrlSigner, resolve_photo
from OSAD.data.envelopes import unwrap_list

logger = logging.getLogger("OSAD.services.people")

StudentStatus = Literal["active", "deactivated"]


def full_name(row: Dict[str, Any]) -> str:
    first = row.get("first_name") or row.get("firstName") or ""
    last = row.get("last_name") or row.get("lastName") or ""
    return f"{first} {last}".strip()


class PeopleService:
    """
    Student and teacher lifecycle: list by status, activate, deactivate,
    delete. Teachers live behind the integration users endpoints.
    """

    def __init__(self, fetcher: DashboardFetcher, signer: Optional[UrlSigner] = None) -> None:
        self.fetcher = fetcher
        self.signer = signer

    # ---- students ----------------------------------------------------

    async def list_students(
        self,
        status: StudentStatus = "active",
        search: Optional[str] = None,
        class_id: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        params: Dict[str, Any] = {
            "status": status,
            "pageSize": self.fetcher.settings.student_page_size,
        }
        if search:
            params["search"] = search
        if class_id:
            params["classId"] = class_id
        raw = await self.fetcher.get("/students/filter", params=params, fallback=None)
        return unwrap_list(raw, "students")

    async def set_student_active(self, student_id: str, active: bool) -> Any:
        action = "activate" if active else "deactivate"
        body = await self.fetcher.put(f"/students/{student_id}/{action}")
        logger.info("Student %s: %sd", student_id, action)
        return body

    async def delete_student(self, student_id: str) -> Any:
        return await self.fetcher.delete(f"/students/{student_id}")

    # ---- teachers ----------------------------------------------------

    async def list_teachers(
        self, active: bool = True, search: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        # Users are filtered by active/inactive, unlike students.
        params: Dict[str, Any] = {"status": "active" if active else "inactive", "pageSize": 1000}
        if search:
            params["search"] = search
        raw = await self.fetcher.get("/integration/users", params=params, fallback=None)
        return unwrap_list(raw, "users")

    async def set_teacher_active(self, user_id: str, active: bool) -> Any:
        action = "activate" if active else "deactivate"
        return await self.fetcher.put(f"/integration/users/{user_id}/{action}")

    # ---- photos ------------------------------------------------------

    def photo_for(self, row: Dict[str, Any]) -> PhotoRef:
        key = row.get("student_photo") or row.get("staff_photo") or row.get("photo")
        return resolve_photo(
            self.signer,
            key,
            full_name(row),
            bucket=self.fetcher.settings.photo_bucket,
            ttl_seconds=self.fetcher.settings.signed_url_ttl,
        )
