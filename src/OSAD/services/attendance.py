from __future__ import annotations

from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional, Sequence
import logging

from OSAD.client.fetcher import DashboardFetcher
from OSAD.data.aggregator import (
    ABSENT,
    PRESENT,
    AttendanceReport,
    ClassAttendance,
    build_attendance_report,
)
from OSAD.data.envelopes import unwrap, unwrap_list
from OSAD.data.joiner import join_attendance_with_students
from OSAD.exceptions import ValidationError

logger = logging.getLogger("OSAD.services.attendance")

CLASSES_ENDPOINT = "/classes/filter"
STUDENTS_ENDPOINT = "/students/filter"
BY_DATE_ENDPOINT = "/attendance/by-date"
BY_RANGE_ENDPOINT = "/attendance/by-date-range"
SAVE_ENDPOINT = "/attendance/save-attendance"


def _iso(value: Any) -> Optional[str]:
    """Normalize a backend date/datetime string to YYYY-MM-DD, or None."""
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text).date().isoformat()
    except ValueError:
        try:
            return date.fromisoformat(text[:10]).isoformat()
        except ValueError:
            return None


class AttendanceService:
    """Attendance statistics and daily attendance saving."""

    def __init__(self, fetcher: DashboardFetcher) -> None:
        self.fetcher = fetcher

    # ------------------------------------------------------------------
    # Loads
    # ------------------------------------------------------------------

    async def load_classes(self, limit: int = 100) -> List[Dict[str, Any]]:
        raw = await self.fetcher.get(CLASSES_ENDPOINT, params={"limit": limit}, fallback=None)
        return unwrap_list(raw, "classes")

    async def load_master_students(self, **filters: Any) -> List[Dict[str, Any]]:
        params = {"page": 1, "pageSize": self.fetcher.settings.student_page_size}
        params.update({k: v for k, v in filters.items() if v is not None})
        raw = await self.fetcher.get(STUDENTS_ENDPOINT, params=params, fallback=None)
        return unwrap_list(raw, "students")

    async def _load_one_class(self, day: str, cls: Dict[str, Any]) -> Optional[ClassAttendance]:
        raw = await self.fetcher.get(
            BY_DATE_ENDPOINT,
            params={"date": day, "classId": cls.get("id")},
            fallback=None,
        )
        attendance = unwrap(raw, "attendance")
        if not isinstance(attendance, dict):
            return None

        embedded = attendance.get("class") or {}
        return ClassAttendance(
            class_id=str(cls.get("id")),
            name=str(cls.get("name") or embedded.get("name") or ""),
            section=cls.get("section") or embedded.get("section"),
            records=[r for r in attendance.get("records") or [] if isinstance(r, dict)],
        )

    async def load_class_attendance(
        self,
        day: str,
        classes: Sequence[Dict[str, Any]],
        students: Sequence[Dict[str, Any]] = (),
    ) -> List[ClassAttendance]:
        """
        Attendance for every class on ``day``, genders taken from the master
        student list. Classes whose load fails are left out.
        """
        results = await self.fetcher.bounded_map(
            lambda cls: self._load_one_class(day, cls), classes
        )

        loaded: List[ClassAttendance] = []
        for r in results:
            if not r.ok or r.value is None:
                continue
            ca: ClassAttendance = r.value
            ca.records = join_attendance_with_students(ca.records, students)
            loaded.append(ca)

        logger.info(
            "Loaded attendance for %d of %d classes on %s",
            len(loaded),
            len(classes),
            day,
        )
        return loaded

    async def build_statistics(self, day: str) -> AttendanceReport:
        """Load classes, master students and attendance, then aggregate."""
        loads = await self.fetcher.gather_with_fallbacks(
            {
                "classes": (self.load_classes(), []),
                "students": (self.load_master_students(), []),
            }
        )
        class_attendance = await self.load_class_attendance(
            day, loads["classes"], loads["students"]
        )
        return build_attendance_report(class_attendance, date=day)

    async def available_dates(
        self,
        classes: Sequence[Dict[str, Any]],
        start: date,
        end: date,
    ) -> List[str]:
        """Distinct dates with attendance for any class, newest first."""

        async def _dates_for(cls: Dict[str, Any]) -> List[Dict[str, Any]]:
            raw = await self.fetcher.get(
                BY_RANGE_ENDPOINT,
                params={
                    "startDate": start.isoformat(),
                    "endDate": end.isoformat(),
                    "classId": cls.get("id"),
                },
                fallback=None,
            )
            return unwrap_list(raw, "attendanceRecords")

        results = await self.fetcher.bounded_map(_dates_for, classes)

        unique = set()
        for r in results:
            for record in r.value or []:
                iso = _iso(record.get("date"))
                if iso:
                    unique.add(iso)
        return sorted(unique, reverse=True)

    # ------------------------------------------------------------------
    # Save
    # ------------------------------------------------------------------

    @staticmethod
    def build_records(entries: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """
        Validate attendance entries: an absence reason is required for ABSENT
        and dropped for PRESENT.
        """
        records: List[Dict[str, Any]] = []
        for entry in entries:
            student_id = entry.get("studentId")
            status = str(entry.get("status") or "").upper()
            if not student_id:
                raise ValidationError("Attendance entry without a student", field="studentId")
            if status not in (PRESENT, ABSENT):
                raise ValidationError(
                    f"Invalid attendance status {entry.get('status')!r} for student {student_id}",
                    field="status",
                )

            reason = entry.get("absenceReason")
            reason = reason.strip() if isinstance(reason, str) else None
            if status == ABSENT and not reason:
                raise ValidationError(
                    f"Please provide a reason for absence (student {student_id})",
                    field="absenceReason",
                )
            records.append(
                {
                    "studentId": student_id,
                    "status": status,
                    "absenceReason": reason if status == ABSENT else None,
                }
            )
        return records

    async def save_attendance(
        self,
        day: str,
        class_id: str,
        academic_year_id: str,
        term_id: str,
        entries: Iterable[Dict[str, Any]],
    ) -> Dict[str, Any]:
        """Save a full day's attendance for one class; raises unless confirmed."""
        if not (day and class_id and academic_year_id and term_id):
            raise ValidationError(
                "Please select a date, class, academic year, and term first"
            )
        records = self.build_records(entries)
        if not records:
            raise ValidationError("No attendance records to save", field="records")

        body = await self.fetcher.post(
            SAVE_ENDPOINT,
            json={
                "date": day,
                "classId": class_id,
                "academicYearId": academic_year_id,
                "termId": term_id,
                "records": records,
            },
        )
        logger.info("Saved attendance for class=%s date=%s (%d records)", class_id, day, len(records))
        return body
