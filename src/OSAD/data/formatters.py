from __future__ import annotations

import csv
import io
import re
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, List

from OSAD.data.aggregator import AttendanceReport, SectionSummary
from OSAD.data.finance import FinancialStatement

MAX_MARKDOWN_ROWS = 50

_CURRENCY_RE = re.compile(r"UGX\s?")


# ---------------------------------------------------------------------------
# Value rendering
# ---------------------------------------------------------------------------


def display_value(value: int) -> str:
    """Attendance tables show a computed 0 as "-"; everything else literally."""
    if value == 0:
        return "-"
    return str(value)


def format_fare(value: Any) -> str:
    """
    Financial fields: strip the currency prefix and separators, then group
    thousands. 0 stays "0" here, unlike the attendance tables.
    """
    text = "" if value is None else str(value)
    raw = _CURRENCY_RE.sub("", text).replace(",", "").strip()
    try:
        number = Decimal(raw)
    except InvalidOperation:
        return text
    if not number.is_finite():
        return text
    if number == number.to_integral_value():
        return f"{int(number):,}"
    return f"{number.normalize():,f}"


def _escape_md(value: Any) -> str:
    text = "" if value is None else str(value)
    return text.replace("|", r"\|").replace("`", r"\`")


# ---------------------------------------------------------------------------
# Attendance statistics
# ---------------------------------------------------------------------------

_ATTENDANCE_COLUMNS = (
    ("Male", "male"),
    ("Female", "female"),
    ("Total", "total"),
    ("Absent M", "absentMale"),
    ("Absent F", "absentFemale"),
    ("Absent Total", "absentTotal"),
)


def build_section_markdown_table(section: SectionSummary) -> str:
    """One section: a row per class, then the section totals row."""
    header_cells = ["Class"] + [label for label, _ in _ATTENDANCE_COLUMNS] + ["Class Total"]
    header = f"| {' | '.join(header_cells)} |\n"
    separator = f"| {' | '.join(['---'] * len(header_cells))} |\n"

    lines: List[str] = []
    for cls in section.classes:
        row = cls.to_dict()
        cells = [_escape_md(cls.name)]
        cells += [display_value(row[key]) for _, key in _ATTENDANCE_COLUMNS]
        cells.append(display_value(cls.class_total))
        lines.append(f"| {' | '.join(cells)} |")

    totals = section.to_dict()
    total_cells = ["**TOTAL**"]
    total_cells += [display_value(totals[key]) for _, key in _ATTENDANCE_COLUMNS]
    total_cells.append(display_value(section.section_total))
    lines.append(f"| {' | '.join(total_cells)} |")

    return f"### {_escape_md(section.title)}\n\n" + header + separator + "\n".join(lines)


def build_attendance_markdown(report: AttendanceReport) -> str:
    if report.is_empty:
        return "No attendance records were found for this date."

    parts = [build_section_markdown_table(s) for s in report.sections.values()]
    t = report.totals
    parts.append(
        "**Grand totals**\n\n"
        f"Present: Male: {display_value(t.male)} | Female: {display_value(t.female)} "
        f"| Total: {display_value(t.total)}\n\n"
        f"Absent: Male: {display_value(t.absent_male)} | Female: {display_value(t.absent_female)} "
        f"| Total: {display_value(t.absent)}\n\n"
        f"Grand Total: {display_value(t.grand_total)}"
    )
    return "\n\n".join(parts)


def build_attendance_csv(report: AttendanceReport) -> str:
    """Raw numbers per class; CSV consumers get 0, not "-"."""
    if report.is_empty:
        return ""

    fieldnames = ["section", "id", "name", "male", "female", "total",
                  "absentMale", "absentFemale", "absentTotal", "classTotal"]
    output = io.StringIO()
    writer = csv.DictWriter(output, fieldnames=fieldnames, extrasaction="ignore")
    writer.writeheader()
    for section in report.sections.values():
        for cls in section.classes:
            writer.writerow({"section": section.section, **cls.to_dict()})
    return output.getvalue()


# ---------------------------------------------------------------------------
# Transport registrations
# ---------------------------------------------------------------------------


def build_transport_markdown_table(rows: Iterable[Dict[str, Any]]) -> str:
    rows = list(rows)
    if not rows:
        return "No transport registrations were found in the system."

    total = len(rows)
    display = rows[:MAX_MARKDOWN_ROWS]

    header = (
        "| # | Student | Class | Route | Fare | Discount | Paid | Balance |\n"
        "|---|---------|-------|-------|------|----------|------|---------|\n"
    )
    lines: List[str] = []
    for idx, r in enumerate(display, start=1):
        lines.append(
            f"| {idx} | "
            f"{_escape_md(r.get('studentName', ''))} | "
            f"{_escape_md(r.get('studentClass', ''))} | "
            f"{_escape_md(r.get('routeName', ''))} | "
            f"{format_fare(r.get('routeFare', ''))} | "
            f"{format_fare(r.get('studentDiscount', ''))} | "
            f"{format_fare(r.get('amountPaid', ''))} | "
            f"{format_fare(r.get('balance', ''))} |"
        )

    table = header + "\n".join(lines)
    if total > MAX_MARKDOWN_ROWS:
        table += f"\n\n_Showing first {MAX_MARKDOWN_ROWS} of {total} registrations._"
    return table


# ---------------------------------------------------------------------------
# Fees statement
# ---------------------------------------------------------------------------


def build_fees_statement_markdown(statement: FinancialStatement) -> str:
    if statement.is_empty:
        return "No fees statement data for the selected term."

    header = (
        "| Class | Balance B/F | Expected Fees | Paid Fees | Balance |\n"
        "|-------|-------------|---------------|-----------|---------|\n"
    )
    lines: List[str] = []
    for r in statement.rows:
        lines.append(
            f"| {_escape_md(r.get('className', ''))} | "
            f"{format_fare(r.get('balancePrevTerm') or 0)} | "
            f"{format_fare(r.get('expectedFees') or 0)} | "
            f"{format_fare(r.get('paidFees') or 0)} | "
            f"{format_fare(r.get('balanceCurrentTerm') or 0)} |"
        )
    t = statement.totals.to_dict()
    lines.append(
        f"| **TOTAL** | {format_fare(t['balancePrevTerm'])} | {format_fare(t['expectedFees'])} | "
        f"{format_fare(t['paidFees'])} | {format_fare(t['balanceCurrentTerm'])} |"
    )

    title = " ".join(p for p in (statement.term_name, statement.academic_year) if p)
    heading = f"### Fees statement {_escape_md(title)}\n\n" if title else ""
    return heading + header + "\n".join(lines)
