from __future__ import annotations

from typing import Any, Callable, Dict, Hashable, Iterable, List, Literal, Optional, TypeVar
import logging

logger = logging.getLogger("OSAD.data.joiner")

P = TypeVar("P")
S = TypeVar("S")
M = TypeVar("M")
K = TypeVar("K", bound=Hashable)

DuplicatePolicy = Literal["first", "last", "all"]

UNKNOWN_GENDER = "UNKNOWN"


def index_by(rows: Iterable[S], key: Callable[[S], Optional[K]]) -> Dict[K, List[S]]:
    """Index ``rows`` by ``key`` in one pass. Rows whose key is None are skipped."""
    index: Dict[K, List[S]] = {}
    for row in rows:
        k = key(row)
        if k is None:
            continue
        index.setdefault(k, []).append(row)
    return index


def join(
    primary: Iterable[P],
    secondary: Iterable[S],
    key: Callable[[P], Optional[K]],
    secondary_key: Callable[[S], Optional[K]],
    merge: Callable[[P, Any], M],
    on_duplicate: DuplicatePolicy = "first",
) -> List[M]:
    """
    Left join ``primary`` against ``secondary``.

    The secondary side is indexed once, so the whole join is O(n + m).
    Every primary record produces exactly one output row, in input order.
    ``merge`` receives None when nothing matches; when several secondary
    rows share a key it receives the first, the last, or the whole list,
    depending on ``on_duplicate``.
    """
    if on_duplicate not in ("first", "last", "all"):
        raise ValueError(f"Unknown duplicate policy: {on_duplicate!r}")

    index = index_by(secondary, secondary_key)

    joined: List[M] = []
    misses = 0
    for p in primary:
        k = key(p)
        matches = index.get(k) if k is not None else None
        match: Any
        if not matches:
            misses += 1
            match = None
        elif on_duplicate == "first":
            match = matches[0]
        elif on_duplicate == "last":
            match = matches[-1]
        else:
            match = list(matches)
        joined.append(merge(p, match))

    logger.debug(
        "Joined %d primary rows against %d keys (%d without a match)",
        len(joined),
        len(index),
        misses,
    )
    return joined


def merge_master_gender(
    record: Dict[str, Any], student: Optional[Dict[str, Any]]
) -> Dict[str, Any]:
    """
    Overwrite the embedded student's gender with the master list's value.

    The master list wins; the embedded copy is used only when the master has
    no gender; UNKNOWN when neither has one.
    """
    embedded = dict(record.get("student") or {})
    gender = (student or {}).get("gender") or embedded.get("gender") or UNKNOWN_GENDER

    merged = dict(record)
    merged["student"] = {**embedded, "gender": gender}
    return merged


def join_attendance_with_students(
    records: Iterable[Dict[str, Any]],
    students: Iterable[Dict[str, Any]],
) -> List[Dict[str, Any]]:
    """Attach authoritative genders from the master student list."""
    return join(
        records,
        students,
        key=lambda r: r.get("studentId") or (r.get("student") or {}).get("id"),
        secondary_key=lambda s: s.get("id"),
        merge=merge_master_gender,
    )
