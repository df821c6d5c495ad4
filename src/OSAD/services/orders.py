from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List
import logging

from OSAD.client.fetcher import DashboardFetcher, NO_FALLBACK
from OSAD.data.envelopes import extract_pagination, unwrap_list
from OSAD.exceptions import DashboardDataError

logger = logging.getLogger("OSAD.services.orders")

ORDERS_ENDPOINT = "/orders"

DEMO_ORDERS: List[Dict[str, Any]] = [
    {
        "id": "demo-1",
        "customer": "Demo Customer",
        "product": "Sample item",
        "quantity": 1,
        "total": 0,
        "status": "pending",
    },
    {
        "id": "demo-2",
        "customer": "Demo Customer",
        "product": "Sample item",
        "quantity": 2,
        "total": 0,
        "status": "completed",
    },
]


@dataclass
class OrdersPage:
    orders: List[Dict[str, Any]] = field(default_factory=list)
    pagination: Dict[str, Any] = field(default_factory=dict)
    is_demo: bool = False


class OrdersService:
    def __init__(self, fetcher: DashboardFetcher) -> None:
        self.fetcher = fetcher

    async def list_orders(self, page: int = 1, limit: int = 50) -> OrdersPage:
        """
        Orders for one page. When the backend is unreachable this raises,
        unless demo data has been enabled in settings.
        """
        try:
            raw = await self.fetcher.get(
                ORDERS_ENDPOINT, params={"page": page, "limit": limit}, fallback=NO_FALLBACK
            )
        except DashboardDataError:
            if not self.fetcher.settings.allow_demo_fallback:
                raise
            logger.warning("Orders unavailable; showing demo orders")
            return OrdersPage(orders=[dict(o) for o in DEMO_ORDERS], is_demo=True)

        return OrdersPage(
            orders=unwrap_list(raw, "orders"),
            pagination=extract_pagination(raw) or {},
        )

    async def delete_order(self, order_id: str) -> Any:
        # Deletion is never faked, demo mode or not.
        return await self.fetcher.delete(f"{ORDERS_ENDPOINT}/{order_id}")
