from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional
import logging

from OSAD.client.fetcher import DashboardFetcher, ItemResult
from OSAD.data.assignments import BatchOutcome, FailedItem
from OSAD.data.envelopes import unwrap
from OSAD.data.recalculator import format_amount, parse_amount
from OSAD.exceptions import ValidationError, WriteFailedError

logger = logging.getLogger("OSAD.services.marks")

SUBMIT_ENDPOINT = "/marks/submit"
STUDENT_CA_ENDPOINT = "/marks/student-ca"


@dataclass(frozen=True)
class CAComponent:
    field: str
    code: str
    label: str


# Continuous Assessment sub-components, in submission order.
CA_COMPONENTS = (
    CAComponent("cw", "CW", "Class Work"),
    CAComponent("hw", "HW", "Home Work"),
    CAComponent("org", "ORG", "Organization"),
    CAComponent("spart", "SPART", "Student Participation"),
    CAComponent("smgt", "SMGT", "Student Management"),
)


@dataclass
class MarksContext:
    subject_id: str
    exam_set_id: str
    academic_year_id: str
    term_id: str
    class_id: str

    def missing(self) -> List[str]:
        return [name for name, value in vars(self).items() if not value]


class MarksService:
    def __init__(self, fetcher: DashboardFetcher) -> None:
        self.fetcher = fetcher

    @staticmethod
    def component_payloads(
        ctx: MarksContext, rows: Iterable[Dict[str, Any]]
    ) -> Dict[CAComponent, Dict[str, Any]]:
        """One payload per component that has at least one non-zero mark."""
        students = []
        for s in rows:
            if not s.get("id"):
                logger.warning("Skipping marks row without a student id: %r", s)
                continue
            students.append(s)
        payloads: Dict[CAComponent, Dict[str, Any]] = {}
        for comp in CA_COMPONENTS:
            marks = [
                {"studentId": s["id"], "mark": format_amount(parse_amount(s.get(comp.field)))}
                for s in students
                if parse_amount(s.get(comp.field)) > 0
            ]
            if not marks:
                continue
            payloads[comp] = {
                "marks": marks,
                "subjectId": ctx.subject_id,
                "examSetId": ctx.exam_set_id,
                "academicYearId": ctx.academic_year_id,
                "termId": ctx.term_id,
                "classId": ctx.class_id,
                "assessmentType": "CA",
                "caComponent": comp.code,
            }
        return payloads

    async def submit_ca_marks(
        self, ctx: MarksContext, students: Iterable[Dict[str, Any]]
    ) -> BatchOutcome:
        """
        Submit CA marks one component at a time. Each component is retried
        once after a short delay; components that still fail are reported.
        """
        missing = ctx.missing()
        if missing:
            raise ValidationError(f"Missing required selections: {', '.join(missing)}")

        payloads = self.component_payloads(ctx, students)
        if not payloads:
            raise ValidationError(
                "No marks to submit. Please enter marks for at least one component."
            )

        outcome = BatchOutcome(label="CA marks")
        for comp, payload in payloads.items():
            try:
                await self.fetcher.submit_with_retry(
                    lambda payload=payload: self.fetcher.post(SUBMIT_ENDPOINT, json=payload),
                    label=f"CA {comp.label}",
                )
                outcome.succeeded.append(comp.label)
            except WriteFailedError as e:
                logger.error("Failed to submit %s after retry: %s", comp.code, e.get_user_message())
                outcome.failed.append(FailedItem(comp.label, e.get_user_message()))
                outcome.still_selected.append(comp)
        return outcome

    async def _student_ca(self, ctx: MarksContext, student_id: str) -> Optional[Dict[str, Any]]:
        raw = await self.fetcher.get(
            STUDENT_CA_ENDPOINT,
            params={
                "studentId": student_id,
                "termId": ctx.term_id,
                "academicYearId": ctx.academic_year_id,
                "examSetId": ctx.exam_set_id,
            },
            fallback=None,
        )
        for subject in unwrap(raw, "subjects") or []:
            if isinstance(subject, dict) and subject.get("subjectId") == ctx.subject_id:
                return subject.get("caComponents")
        return None

    async def load_existing_marks(
        self, ctx: MarksContext, student_ids: Iterable[str]
    ) -> Dict[str, Optional[Dict[str, Any]]]:
        """Existing CA marks per student, a bounded number of calls at a time."""
        results: List[ItemResult] = await self.fetcher.bounded_map(
            lambda sid: self._student_ca(ctx, sid), list(student_ids)
        )
        return {r.item: (r.value if r.ok else None) for r in results}
