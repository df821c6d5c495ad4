"""
Fees statement: per-class financial summary rows plus grand totals.

The backend sends the summary either under ``data`` or at the top level of
the body, and only sometimes includes precomputed totals. When it does not,
the totals are summed here from the rows.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional
import logging

from OSAD.data.recalculator import ZERO, format_amount, parse_amount

logger = logging.getLogger("OSAD.data.finance")

# Wire name -> attribute name, in column order.
SUMMARY_FIELDS = (
    ("balancePrevTerm", "balance_prev_term"),
    ("expectedFees", "expected_fees"),
    ("paidFees", "paid_fees"),
    ("balanceCurrentTerm", "balance_current_term"),
)


@dataclass
class FeeTotals:
    balance_prev_term: Decimal = ZERO
    expected_fees: Decimal = ZERO
    paid_fees: Decimal = ZERO
    balance_current_term: Decimal = ZERO

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "FeeTotals":
        """Missing or unparsable amounts count as 0."""
        return cls(**{attr: parse_amount(row.get(wire)) for wire, attr in SUMMARY_FIELDS})

    def __add__(self, other: "FeeTotals") -> "FeeTotals":
        return FeeTotals(
            **{attr: getattr(self, attr) + getattr(other, attr) for _, attr in SUMMARY_FIELDS}
        )

    def to_dict(self) -> Dict[str, str]:
        return {wire: format_amount(getattr(self, attr)) for wire, attr in SUMMARY_FIELDS}


def sum_fee_totals(rows: Iterable[Dict[str, Any]]) -> FeeTotals:
    totals = FeeTotals()
    for row in rows:
        totals = totals + FeeTotals.from_row(row)
    return totals


@dataclass
class FinancialStatement:
    rows: List[Dict[str, Any]] = field(default_factory=list)
    totals: FeeTotals = field(default_factory=FeeTotals)
    term_name: str = ""
    academic_year: str = ""
    totals_from_api: bool = False

    @property
    def is_empty(self) -> bool:
        return not self.rows


def _statement_body(raw: Any) -> Optional[Dict[str, Any]]:
    if not isinstance(raw, dict):
        return None
    data = raw.get("data")
    if isinstance(data, dict) and data.get("summary") is not None:
        return data
    if raw.get("summary") is not None:
        return raw
    return None


def build_financial_statement(raw: Any) -> Optional[FinancialStatement]:
    """
    Statement from a financial-summary response, or None when the body
    carries no summary at all.

    Totals supplied by the backend are used as-is when non-empty; otherwise
    they are summed from the rows.
    """
    body = _statement_body(raw)
    if body is None:
        return None

    rows = [r for r in body.get("summary") or [] if isinstance(r, dict)]
    api_totals = body.get("totals")
    if isinstance(api_totals, dict) and api_totals:
        totals = FeeTotals.from_row(api_totals)
        from_api = True
    else:
        totals = sum_fee_totals(rows)
        from_api = False
        logger.debug("Summed fee totals over %d rows", len(rows))

    return FinancialStatement(
        rows=rows,
        totals=totals,
        term_name=str(body.get("termName") or ""),
        academic_year=str(body.get("academicYear") or ""),
        totals_from_api=from_api,
    )
