from __future__ import annotations

from .envelopes import unwrap, unwrap_list, classify_envelope, is_success_payload  # noqa: F401
from .joiner import join, join_attendance_with_students  # noqa: F401
from .aggregator import aggregate, build_attendance_report  # noqa: F401
from .recalculator import recalculate_balance, TransportRegistration  # noqa: F401
from .assignments import diff_assignments, group_assignments  # noqa: F401
from .finance import build_financial_statement, sum_fee_totals  # noqa: F401
