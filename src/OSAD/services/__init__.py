from __future__ import annotations

from .attendance import AttendanceService  # noqa: F401
from .subjects import ClassSubjectService  # noqa: F401
from .transport import TransportService  # noqa: F401
from .people import PeopleService  # noqa: F401
from .marks import MarksService  # noqa: F401
from .orders import OrdersService  # noqa: F401
from .finance import FinanceService  # noqa: F401
