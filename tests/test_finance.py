# tests/test_finance.py
from __future__ import annotations

from decimal import Decimal

import httpx
import pytest

from OSAD.data.finance import FeeTotals, build_financial_statement, sum_fee_totals
from OSAD.data.formatters import build_fees_statement_markdown
from OSAD.exceptions import DashboardDataError
from OSAD.services import FinanceService

from .conftest import ok

ROWS = [
    {"className": "P1", "balancePrevTerm": "1000", "expectedFees": 50000, "paidFees": "45,000", "balanceCurrentTerm": 6000},
    {"className": "P2", "expectedFees": "30000.50", "paidFees": None},
]


def test_totals_are_summed_when_backend_omits_them():
    statement = build_financial_statement({"data": {"summary": ROWS, "termName": "Term 1", "academicYear": "2024"}})

    assert statement.totals_from_api is False
    assert statement.totals == FeeTotals(
        balance_prev_term=Decimal("1000"),
        expected_fees=Decimal("80000.50"),
        paid_fees=Decimal("45000"),
        balance_current_term=Decimal("6000"),
    )
    assert statement.term_name == "Term 1"
    assert statement.academic_year == "2024"


@pytest.mark.parametrize("totals", [None, {}])
def test_empty_backend_totals_are_ignored(totals):
    statement = build_financial_statement({"summary": ROWS, "totals": totals})
    assert statement.totals_from_api is False
    assert statement.totals.to_dict()["expectedFees"] == "80000.5"


def test_backend_totals_win_when_present():
    body = {"data": {"summary": ROWS, "totals": {"expectedFees": "99", "paidFees": 1}}}
    statement = build_financial_statement(body)

    assert statement.totals_from_api is True
    assert statement.totals.to_dict() == {
        "balancePrevTerm": "0",
        "expectedFees": "99",
        "paidFees": "1",
        "balanceCurrentTerm": "0",
    }


def test_top_level_summary_is_accepted():
    statement = build_financial_statement({"summary": [ROWS[0], "junk"]})
    assert [r["className"] for r in statement.rows] == ["P1"]


@pytest.mark.parametrize("raw", [None, [], {"data": {}}, {"data": {"summary": None}}, {"status": {"returnCode": "01"}}])
def test_missing_summary_is_none(raw):
    assert build_financial_statement(raw) is None


def test_sum_fee_totals_has_no_float_drift():
    rows = [{"paidFees": "0.1"}, {"paidFees": 0.2}]
    assert sum_fee_totals(rows).paid_fees == Decimal("0.3")
    assert sum_fee_totals([]) == FeeTotals()


@pytest.mark.anyio
async def test_load_statement_sends_selection(fetcher, backend):
    backend.on("GET", "/fees/financialsummary", ok({"summary": ROWS, "termName": "Term 2"}))

    statement = await FinanceService(fetcher).load_statement("t1", "y1")

    [req] = backend.calls("GET", "/fees/financialsummary")
    assert req.url.params["termId"] == "t1"
    assert req.url.params["academicYearId"] == "y1"
    assert len(statement.rows) == 2
    assert statement.term_name == "Term 2"


@pytest.mark.anyio
@pytest.mark.parametrize("term_id,year_id", [(None, "y1"), ("t1", ""), (None, None)])
async def test_load_statement_without_selection_makes_no_request(fetcher, backend, term_id, year_id):
    statement = await FinanceService(fetcher).load_statement(term_id, year_id)
    assert statement.is_empty
    assert backend.requests == []


@pytest.mark.anyio
async def test_load_statement_without_summary_raises(fetcher, backend):
    backend.on(
        "GET",
        "/fees/financialsummary",
        {"status": {"returnCode": "01", "returnMessage": "Term not closed"}},
    )

    with pytest.raises(DashboardDataError) as exc_info:
        await FinanceService(fetcher).load_statement("t1", "y1")
    assert "Term not closed" in str(exc_info.value)


@pytest.mark.anyio
async def test_load_statement_server_error_raises(fetcher, backend):
    backend.on("GET", "/fees/financialsummary", httpx.Response(500))

    with pytest.raises(DashboardDataError):
        await FinanceService(fetcher).load_statement("t1", "y1")


def test_fees_statement_markdown():
    statement = build_financial_statement({"summary": ROWS, "termName": "Term 1", "academicYear": "2024"})
    md = build_fees_statement_markdown(statement)

    assert md.startswith("### Fees statement Term 1 2024")
    assert "| P1 | 1,000 | 50,000 | 45,000 | 6,000 |" in md
    assert "| P2 | 0 | 30,000.5 | 0 | 0 |" in md
    assert "| **TOTAL** | 1,000 | 80,000.5 | 45,000 | 6,000 |" in md

    assert build_fees_statement_markdown(build_financial_statement({"summary": []})) == (
        "No fees statement data for the selected term."
    )
