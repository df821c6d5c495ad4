# tests/test_aggregator.py
from __future__ import annotations

import random

from OSAD.data.aggregator import (
    UNSORTED_SECTION,
    ClassAttendance,
    aggregate,
    build_attendance_report,
    count_records,
)
from OSAD.data.formatters import build_section_markdown_table


def _rec(status, gender):
    return {"status": status, "student": {"gender": gender}}


def _east_report():
    class_a = ClassAttendance(
        class_id="A",
        name="Class A",
        section="East",
        records=[
            _rec("PRESENT", "MALE"),
            _rec("PRESENT", "MALE"),
            _rec("PRESENT", "MALE"),
            _rec("PRESENT", "FEMALE"),
            _rec("PRESENT", "FEMALE"),
            _rec("ABSENT", "MALE"),
        ],
    )
    class_b = ClassAttendance(class_id="B", name="Class B", section="East", records=[])
    return build_attendance_report([class_a, class_b], date="2024-05-02")


def test_east_section_totals():
    report = _east_report()

    east = report.sections["East"]
    assert east.title == "EAST SECTION"
    d = east.to_dict()
    assert d["male"] == 3
    assert d["female"] == 2
    assert d["total"] == 5
    assert d["absentMale"] == 1
    assert d["absentFemale"] == 0
    assert d["absentTotal"] == 1
    assert d["sectionTotal"] == 6


def test_empty_class_renders_dashes():
    table = build_section_markdown_table(_east_report().sections["East"])
    class_b = next(line for line in table.splitlines() if line.startswith("| Class B"))
    cells = [c.strip() for c in class_b.strip("|").split("|")]
    assert cells[0] == "Class B"
    assert cells[1:] == ["-"] * 7


def test_classes_without_section_go_to_unsorted():
    report = build_attendance_report(
        [
            ClassAttendance("1", "P1", None, [_rec("PRESENT", "FEMALE")]),
            ClassAttendance("2", "P2", "  ", [_rec("ABSENT", "FEMALE")]),
        ]
    )
    assert list(report.sections) == [UNSORTED_SECTION]
    assert report.sections[UNSORTED_SECTION].title == "UNSORTED SECTION"
    assert report.totals.grand_total == 2


def test_sections_keep_first_appearance_order():
    report = build_attendance_report(
        [
            ClassAttendance("1", "P1", "West"),
            ClassAttendance("2", "P2", "East"),
            ClassAttendance("3", "P3", "West"),
        ]
    )
    assert list(report.sections) == ["West", "East"]
    assert [c.name for c in report.sections["West"].classes] == ["P1", "P3"]


def test_unknown_gender_counts_in_totals_only():
    counts = count_records([_rec("PRESENT", None), _rec("ABSENT", "unknown"), _rec("PRESENT", "male")])
    assert counts.present == 2
    assert counts.present_male == 1
    assert counts.present_female == 0
    assert counts.absent == 1
    assert counts.absent_male == counts.absent_female == 0
    assert counts.total == 3


def test_records_with_other_status_are_ignored():
    counts = count_records([_rec("LATE", "MALE"), {"status": None}])
    assert counts.total == 0


def test_embedded_gender_falls_back_to_record_level():
    counts = count_records([{"status": "PRESENT", "gender": "Female"}])
    assert counts.present_female == 1


def test_aggregate_groups_in_one_pass():
    records = [
        {"classId": "a", **_rec("PRESENT", "MALE")},
        {"classId": "b", **_rec("ABSENT", "FEMALE")},
        {"classId": "a", **_rec("ABSENT", "MALE")},
    ]
    groups = aggregate(records, lambda r: r["classId"])
    assert groups["a"].present == 1
    assert groups["a"].absent_male == 1
    assert groups["b"].absent_female == 1


def test_totals_reconcile_at_every_level():
    rng = random.Random(20240502)
    sections = ["East", "West", None, "North"]
    classes = []
    for i in range(40):
        records = [
            _rec(rng.choice(["PRESENT", "ABSENT"]), rng.choice(["MALE", "FEMALE", None]))
            for _ in range(rng.randint(0, 30))
        ]
        classes.append(ClassAttendance(str(i), f"C{i}", rng.choice(sections), records))

    report = build_attendance_report(classes)

    for section in report.sections.values():
        assert section.total_present == sum(c.total for c in section.classes)
        assert section.total_absent == sum(c.absent_total for c in section.classes)
        assert section.total_male == sum(c.male for c in section.classes)
        assert section.total_absent_female == sum(c.absent_female for c in section.classes)
        assert section.section_total == sum(c.class_total for c in section.classes)
        for c in section.classes:
            assert c.male + c.female <= c.total
            assert c.absent_male + c.absent_female <= c.absent_total

    all_records = [r for ca in classes for r in ca.records]
    assert report.totals.grand_total == len(all_records)
    assert report.totals.total == sum(s.total_present for s in report.sections.values())
    assert report.totals.absent == sum(s.total_absent for s in report.sections.values())


def test_report_to_dict_shape():
    d = _east_report().to_dict()
    assert d["date"] == "2024-05-02"
    assert d["grandTotals"]["grandTotal"] == 6
    assert d["sections"]["East"]["classes"][1]["classTotal"] == 0
