from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional
import logging

from OSAD.client.fetcher import DashboardFetcher
from OSAD.data.assignments import (
    AssignmentRef,
    BatchOutcome,
    DisplayClassSubjects,
    FailedItem,
    diff_assignments,
    group_assignments,
)
from OSAD.data.envelopes import unwrap_list
from OSAD.exceptions import WriteFailedError

logger = logging.getLogger("OSAD.services.subjects")

ASSIGNMENTS_ENDPOINT = "/class-subject-assignments/assignments"
ADD_ASSIGNMENT_ENDPOINT = "/class-subject-assignments/add-assignment"


class ClassSubjectService:
    """View and edit which subjects are assigned to each class."""

    def __init__(self, fetcher: DashboardFetcher) -> None:
        self.fetcher = fetcher

    async def _list(self, path: str, key: str, params: Dict[str, Any]) -> List[Dict[str, Any]]:
        raw = await self.fetcher.get(path, params=params, fallback=None)
        return unwrap_list(raw, key)

    async def load_display(self, page_size: int = 100) -> List[DisplayClassSubjects]:
        loads = await self.fetcher.gather_with_fallbacks(
            {
                "classes": (self._list("/classes/filter", "classes", {"limit": 100}), []),
                "subjects": (self._list("/subjects/filter", "subjects", {"limit": 100}), []),
                "assignments": (
                    self._list(
                        ASSIGNMENTS_ENDPOINT,
                        "assignments",
                        {"page": 1, "pageSize": page_size},
                    ),
                    [],
                ),
            }
        )
        return group_assignments(loads["assignments"], loads["classes"], loads["subjects"])

    async def _remove(self, ref: AssignmentRef) -> None:
        if not ref.assignment_id:
            raise WriteFailedError(
                f"Subject {ref.name or ref.subject_id} has no assignment to remove",
                method="DELETE",
            )
        await self.fetcher.delete(f"{ASSIGNMENTS_ENDPOINT}/{ref.assignment_id}")

    async def _add(
        self,
        class_id: str,
        ref: AssignmentRef,
        academic_year_id: Optional[str],
        term_id: Optional[str],
        created_by_id: Optional[str],
    ) -> None:
        await self.fetcher.post(
            ADD_ASSIGNMENT_ENDPOINT,
            json={
                "classId": class_id,
                "subjectActivityId": ref.subject_id,
                "academicYearId": academic_year_id,
                "termId": term_id,
                "createdById": created_by_id,
            },
        )

    async def apply_edit(
        self,
        existing: DisplayClassSubjects,
        edited: Iterable[AssignmentRef],
        *,
        academic_year_id: Optional[str] = None,
        term_id: Optional[str] = None,
        created_by_id: Optional[str] = None,
    ) -> BatchOutcome:
        """
        Submit the minimal set of removals and additions, one call per
        subject. Failed subjects are reported and left selected.
        """
        diff = diff_assignments(existing.subjects, edited)
        outcome = BatchOutcome(label=existing.class_name)
        if diff.is_empty:
            logger.debug("No subject changes for class %s", existing.class_id)
            return outcome

        for ref in diff.to_remove:
            try:
                await self._remove(ref)
                outcome.succeeded.append(ref.name or ref.subject_id)
            except WriteFailedError as e:
                logger.warning("Failed to remove subject %s: %s", ref.name, e)
                outcome.failed.append(FailedItem(ref.name or ref.subject_id, e.get_user_message()))
                outcome.still_selected.append(ref)

        for ref in diff.to_add:
            try:
                await self._add(existing.class_id, ref, academic_year_id, term_id, created_by_id)
                outcome.succeeded.append(ref.name or ref.subject_id)
            except WriteFailedError as e:
                logger.warning("Failed to add subject %s: %s", ref.name, e)
                outcome.failed.append(FailedItem(ref.name or ref.subject_id, e.get_user_message()))
                outcome.still_selected.append(ref)

        logger.info(
            "Subject edit for %s: %d succeeded, %d failed",
            existing.class_name,
            len(outcome.succeeded),
            len(outcome.failed),
        )
        return outcome

    async def delete_group(self, display: DisplayClassSubjects) -> BatchOutcome:
        """Remove every subject assignment of one class."""
        outcome = BatchOutcome(label=display.class_name)
        for ref in display.subjects:
            try:
                await self._remove(ref)
                outcome.succeeded.append(ref.name or ref.subject_id)
            except WriteFailedError as e:
                outcome.failed.append(FailedItem(ref.name or ref.subject_id, e.get_user_message()))
                outcome.still_selected.append(ref)
        return outcome
