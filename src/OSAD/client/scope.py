from __future__ import annotations

from typing import Any, Awaitable, Callable, Optional, TypeVar
import logging

logger = logging.getLogger("OSAD.client.scope")

T = TypeVar("T")


class ViewScope:
    """
    Liveness flag for one page view.

    Requests are not cancelled when a page goes away; instead every state
    update is routed through the scope and dropped once it is closed.
    """

    def __init__(self, name: str = "view") -> None:
        self.name = name
        self._alive = True

    @property
    def alive(self) -> bool:
        return self._alive

    def close(self) -> None:
        self._alive = False

    def guard(self, setter: Callable[..., Any]) -> Callable[..., bool]:
        """Wrap ``setter`` so it becomes a no-op after ``close()``."""

        def _guarded(*args: Any, **kwargs: Any) -> bool:
            if not self._alive:
                logger.debug("%s closed; dropping update via %s", self.name, getattr(setter, "__name__", setter))
                return False
            setter(*args, **kwargs)
            return True

        return _guarded

    async def run(self, aw: Awaitable[T], apply: Callable[[T], Any]) -> Optional[T]:
        """Await ``aw`` and hand the result to ``apply`` only if still alive."""
        result = await aw
        self.guard(apply)(result)
        return result
