from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, List, Optional
import time

from OSAD.exceptions import OSADError
from OSAD.settings import Settings


class LoadState(Enum):
    LOADING = "loading"
    EMPTY = "empty"
    ERROR = "error"
    READY = "ready"


class NoticeLevel(Enum):
    SUCCESS = "success"
    ADVISORY = "advisory"
    FATAL = "fatal"


@dataclass
class Notice:
    message: str
    level: NoticeLevel
    created_at: float
    dismiss_after: Optional[float] = None  # None: stays until acted upon

    def expired(self, now: float) -> bool:
        if self.dismiss_after is None:
            return False
        return now - self.created_at >= self.dismiss_after


@dataclass
class PageState:
    """
    What a list page shows: loading, empty, error or a table.

    An error always clears the rows so a stale table is never rendered next
    to an error banner.
    """

    dismiss_seconds: float = 5.0
    clock: Callable[[], float] = time.monotonic
    state: LoadState = LoadState.LOADING
    rows: List[Any] = field(default_factory=list)
    notice: Optional[Notice] = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "PageState":
        return cls(dismiss_seconds=settings.notice_dismiss_seconds)

    def start_loading(self) -> None:
        self.state = LoadState.LOADING

    def set_rows(self, rows: Optional[List[Any]]) -> None:
        self.rows = list(rows or [])
        self.state = LoadState.READY if self.rows else LoadState.EMPTY

    def set_error(self, error: Exception | str) -> None:
        self.rows = []
        self.state = LoadState.ERROR
        if isinstance(error, OSADError):
            fatal = error.is_fatal
            message = error.get_user_message()
        else:
            fatal = False
            message = str(error)
        self._notify(message, NoticeLevel.FATAL if fatal else NoticeLevel.ADVISORY)

    def succeed(self, message: str) -> None:
        self._notify(message, NoticeLevel.SUCCESS)

    def advise(self, message: str) -> None:
        self._notify(message, NoticeLevel.ADVISORY)

    def _notify(self, message: str, level: NoticeLevel) -> None:
        self.notice = Notice(
            message=message,
            level=level,
            created_at=self.clock(),
            dismiss_after=None if level is NoticeLevel.FATAL else self.dismiss_seconds,
        )

    def current_notice(self) -> Optional[Notice]:
        """The notice to show now; advisory ones disappear after a few seconds."""
        if self.notice is not None and self.notice.expired(self.clock()):
            self.notice = None
        return self.notice
