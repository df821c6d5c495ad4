# src/OSAD/data/aggregator.py
"""
Attendance aggregation: class -> section -> grand totals.

Every level is derived from a single pass over the raw records of each
class, and the upper levels are plain sums of the level below, so the
numbers reconcile exactly at every drill-down step.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Hashable, Iterable, List, Optional, TypeVar

import logging

logger = logging.getLogger("OSAD.data.aggregator")

G = TypeVar("G", bound=Hashable)

PRESENT = "PRESENT"
ABSENT = "ABSENT"
MALE = "MALE"
FEMALE = "FEMALE"
UNSORTED_SECTION = "UNSORTED"


@dataclass
class Counts:
    present_male: int = 0
    present_female: int = 0
    present: int = 0
    absent_male: int = 0
    absent_female: int = 0
    absent: int = 0

    @property
    def total(self) -> int:
        return self.present + self.absent

    def add(self, record: Dict[str, Any]) -> None:
        status = str(record.get("status") or "").upper()
        gender = record_gender(record)

        if status == PRESENT:
            self.present += 1
            if gender == MALE:
                self.present_male += 1
            elif gender == FEMALE:
                self.present_female += 1
        elif status == ABSENT:
            self.absent += 1
            if gender == MALE:
                self.absent_male += 1
            elif gender == FEMALE:
                self.absent_female += 1


def record_gender(record: Dict[str, Any]) -> str:
    """Gender used for counting: the (joined) student's gender, uppercased."""
    student = record.get("student") or {}
    gender = student.get("gender") if isinstance(student, dict) else None
    if gender is None:
        gender = record.get("gender")
    return str(gender or "").strip().upper()


def count_records(records: Iterable[Dict[str, Any]]) -> Counts:
    counts = Counts()
    for r in records:
        counts.add(r)
    return counts


def aggregate(
    records: Iterable[Dict[str, Any]],
    group_key: Callable[[Dict[str, Any]], G],
) -> Dict[G, Counts]:
    """Group ``records`` by ``group_key`` and count each group in one pass."""
    groups: Dict[G, Counts] = {}
    for r in records:
        k = group_key(r)
        counts = groups.get(k)
        if counts is None:
            counts = groups[k] = Counts()
        counts.add(r)
    return groups


# ---------------------------------------------------------------------------
# Derived summaries
# ---------------------------------------------------------------------------


@dataclass
class ClassAttendance:
    """One class's attendance for a date, as loaded from the backend."""

    class_id: str
    name: str
    section: Optional[str] = None
    records: List[Dict[str, Any]] = field(default_factory=list)


@dataclass
class ClassAttendanceSummary:
    class_id: str
    name: str
    male: int = 0
    female: int = 0
    total: int = 0
    absent_male: int = 0
    absent_female: int = 0
    absent_total: int = 0

    @property
    def class_total(self) -> int:
        return self.total + self.absent_total

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.class_id,
            "name": self.name,
            "male": self.male,
            "female": self.female,
            "total": self.total,
            "absentMale": self.absent_male,
            "absentFemale": self.absent_female,
            "absentTotal": self.absent_total,
            "classTotal": self.class_total,
        }


@dataclass
class SectionSummary:
    section: str
    classes: List[ClassAttendanceSummary] = field(default_factory=list)
    total_male: int = 0
    total_female: int = 0
    total_present: int = 0
    total_absent_male: int = 0
    total_absent_female: int = 0
    total_absent: int = 0

    @property
    def title(self) -> str:
        return f"{self.section.upper()} SECTION"

    @property
    def section_total(self) -> int:
        return self.total_present + self.total_absent

    def add_class(self, summary: ClassAttendanceSummary) -> None:
        self.classes.append(summary)
        self.total_male += summary.male
        self.total_female += summary.female
        self.total_present += summary.total
        self.total_absent_male += summary.absent_male
        self.total_absent_female += summary.absent_female
        self.total_absent += summary.absent_total

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "classes": [c.to_dict() for c in self.classes],
            "male": self.total_male,
            "female": self.total_female,
            "total": self.total_present,
            "absentMale": self.total_absent_male,
            "absentFemale": self.total_absent_female,
            "absentTotal": self.total_absent,
            "sectionTotal": self.section_total,
        }


@dataclass
class GrandTotals:
    male: int = 0
    female: int = 0
    total: int = 0
    absent_male: int = 0
    absent_female: int = 0
    absent: int = 0

    @property
    def grand_total(self) -> int:
        return self.total + self.absent

    def to_dict(self) -> Dict[str, Any]:
        return {
            "male": self.male,
            "female": self.female,
            "total": self.total,
            "absentMale": self.absent_male,
            "absentFemale": self.absent_female,
            "absent": self.absent,
            "grandTotal": self.grand_total,
        }


@dataclass
class AttendanceReport:
    date: Optional[str]
    sections: Dict[str, SectionSummary]
    totals: GrandTotals

    @property
    def is_empty(self) -> bool:
        return not self.sections

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.date,
            "sections": {k: s.to_dict() for k, s in self.sections.items()},
            "grandTotals": self.totals.to_dict(),
        }


def summarize_class(
    class_id: str, name: str, records: Iterable[Dict[str, Any]]
) -> ClassAttendanceSummary:
    counts = count_records(records)
    return ClassAttendanceSummary(
        class_id=class_id,
        name=name,
        male=counts.present_male,
        female=counts.present_female,
        total=counts.present,
        absent_male=counts.absent_male,
        absent_female=counts.absent_female,
        absent_total=counts.absent,
    )


def section_key(section: Optional[str]) -> str:
    text = (section or "").strip()
    return text or UNSORTED_SECTION


def build_sections(
    class_attendance: Iterable[ClassAttendance],
) -> Dict[str, SectionSummary]:
    """Summaries per section, in order of first appearance."""
    sections: Dict[str, SectionSummary] = {}
    for ca in class_attendance:
        key = section_key(ca.section)
        section = sections.get(key)
        if section is None:
            section = sections[key] = SectionSummary(section=key)
        section.add_class(summarize_class(ca.class_id, ca.name, ca.records))
    return sections


def grand_totals(sections: Iterable[SectionSummary]) -> GrandTotals:
    totals = GrandTotals()
    for s in sections:
        totals.male += s.total_male
        totals.female += s.total_female
        totals.total += s.total_present
        totals.absent_male += s.total_absent_male
        totals.absent_female += s.total_absent_female
        totals.absent += s.total_absent
    return totals


def build_attendance_report(
    class_attendance: Iterable[ClassAttendance],
    date: Optional[str] = None,
) -> AttendanceReport:
    """Recompute the whole report from scratch; summaries are never patched."""
    sections = build_sections(class_attendance)
    totals = grand_totals(sections.values())
    logger.debug(
        "Attendance report date=%s sections=%d present=%d absent=%d",
        date,
        len(sections),
        totals.total,
        totals.absent,
    )
    return AttendanceReport(date=date, sections=sections, totals=totals)
