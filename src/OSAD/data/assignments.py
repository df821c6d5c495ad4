from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence
import logging

logger = logging.getLogger("OSAD.data.assignments")


@dataclass(frozen=True)
class AssignmentRef:
    """
    A subject as shown in a class's subject list.

    ``assignment_id`` is the backend link record (needed to delete it) and is
    None for a subject picked in the edit dialog but not yet saved.
    ``subject_id`` is what edits are compared by.
    """

    subject_id: str
    name: str = ""
    assignment_id: Optional[str] = None


@dataclass
class DisplayClassSubjects:
    class_id: str
    class_name: str
    subjects: List[AssignmentRef] = field(default_factory=list)

    @property
    def id(self) -> str:
        return self.class_id

    @property
    def subject_ids(self) -> List[str]:
        return [s.subject_id for s in self.subjects]


@dataclass
class AssignmentDiff:
    to_add: List[AssignmentRef] = field(default_factory=list)
    to_remove: List[AssignmentRef] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.to_add and not self.to_remove


@dataclass
class FailedItem:
    name: str
    reason: str = ""


@dataclass
class BatchOutcome:
    """
    Result of a batch of independent per-item calls.

    Partial failure is its own state: it is neither success nor failure, and
    the failed items stay selected so the user can retry them.
    """

    succeeded: List[str] = field(default_factory=list)
    failed: List[FailedItem] = field(default_factory=list)
    still_selected: List[Any] = field(default_factory=list)
    label: str = ""

    @property
    def is_total_success(self) -> bool:
        return not self.failed

    @property
    def is_total_failure(self) -> bool:
        return bool(self.failed) and not self.succeeded

    @property
    def is_partial(self) -> bool:
        return bool(self.failed) and bool(self.succeeded)

    @property
    def failed_names(self) -> List[str]:
        return [f.name for f in self.failed]

    @property
    def message(self) -> str:
        target = f" for {self.label}" if self.label else ""
        if self.is_total_success:
            if not self.succeeded:
                return f"No changes{target}."
            return f"Successfully updated {', '.join(self.succeeded)}{target}."
        if self.is_total_failure:
            return f"Failed to update {', '.join(self.failed_names)}{target}. Please try again."
        return (
            f"Successfully updated {', '.join(self.succeeded)}{target}. "
            f"Failed: {', '.join(self.failed_names)}. Please try again."
        )


def class_label(class_item: Dict[str, Any]) -> str:
    name = str(class_item.get("name") or "")
    section = class_item.get("section")
    return f"{name} ({section})" if section else name


def group_assignments(
    assignments: Iterable[Dict[str, Any]],
    classes: Sequence[Dict[str, Any]] = (),
    subjects: Sequence[Dict[str, Any]] = (),
) -> List[DisplayClassSubjects]:
    """
    Group assignment rows by classId into one display row per class.

    Nested ``class`` / ``subjectActivity`` objects are used when the backend
    embeds them; otherwise both sides are looked up in the given lists.
    Rows whose class or subject cannot be resolved are skipped.
    """
    classes_by_id = {c["id"]: c for c in classes if "id" in c}
    subjects_by_id = {s["id"]: s for s in subjects if "id" in s}

    grouped: Dict[str, DisplayClassSubjects] = {}
    skipped = 0
    for a in assignments:
        class_item = a.get("class")
        subject = a.get("subjectActivity")
        if not (class_item and subject):
            class_item = classes_by_id.get(a.get("classId"))
            subject = subjects_by_id.get(a.get("subjectActivityId"))
            if not class_item or not subject:
                skipped += 1
                continue

        class_id = a.get("classId") or class_item.get("id")
        ref = AssignmentRef(
            subject_id=str(subject.get("id")),
            name=str(subject.get("name") or ""),
            assignment_id=a.get("id"),
        )

        display = grouped.get(class_id)
        if display is None:
            display = grouped[class_id] = DisplayClassSubjects(
                class_id=class_id,
                class_name=class_label(class_item),
            )
        display.subjects.append(ref)

    if skipped:
        logger.warning("Skipped %d assignments with unknown class or subject", skipped)
    return list(grouped.values())


def diff_assignments(
    existing: Iterable[AssignmentRef], edited: Iterable[AssignmentRef]
) -> AssignmentDiff:
    """
    Minimal edit set between two subject lists, compared by subject id.

    Assignment ids are ignored: a subject added in the dialog has none yet.
    """
    existing = _unique(existing)
    edited = _unique(edited)
    existing_ids = {s.subject_id for s in existing}
    edited_ids = {s.subject_id for s in edited}

    return AssignmentDiff(
        to_add=[s for s in edited if s.subject_id not in existing_ids],
        to_remove=[s for s in existing if s.subject_id not in edited_ids],
    )


def _unique(refs: Iterable[AssignmentRef]) -> List[AssignmentRef]:
    seen = set()
    out: List[AssignmentRef] = []
    for ref in refs:
        if ref.subject_id in seen:
            continue
        seen.add(ref.subject_id)
        out.append(ref)
    return out
