from __future__ import annotations

from typing import Optional
import logging

from OSAD.client.fetcher import DashboardFetcher, NO_FALLBACK
from OSAD.data.envelopes import return_message
from OSAD.data.finance import FinancialStatement, build_financial_statement
from OSAD.exceptions import DashboardDataError

logger = logging.getLogger("OSAD.services.finance")

FINANCIAL_SUMMARY_ENDPOINT = "/fees/financialsummary"


class FinanceService:
    """Fees statement for one term of one academic year."""

    def __init__(self, fetcher: DashboardFetcher) -> None:
        self.fetcher = fetcher

    async def load_statement(
        self, term_id: Optional[str], academic_year_id: Optional[str]
    ) -> FinancialStatement:
        """
        Summary rows and grand totals. Without a term and a year selected the
        statement is empty and no request is made; a failed load raises so
        the page can show its error instead of zero totals.
        """
        if not term_id or not academic_year_id:
            return FinancialStatement()

        raw = await self.fetcher.get(
            FINANCIAL_SUMMARY_ENDPOINT,
            params={"termId": term_id, "academicYearId": academic_year_id},
            fallback=NO_FALLBACK,
        )
        statement = build_financial_statement(raw)
        if statement is None:
            url = self.fetcher.settings.build_url(FINANCIAL_SUMMARY_ENDPOINT)
            raise DashboardDataError(
                return_message(raw) or "No summary data returned.", url=url
            )

        logger.info(
            "Fees statement term=%s year=%s rows=%d (totals from %s)",
            term_id,
            academic_year_id,
            len(statement.rows),
            "backend" if statement.totals_from_api else "rows",
        )
        return statement
