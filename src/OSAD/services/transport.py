from __future__ import annotations

from typing import Any, List
import logging

from OSAD.client.fetcher import DashboardFetcher
from OSAD.data.envelopes import unwrap_list
from OSAD.data.recalculator import TransportRegistration, TransportRoute

logger = logging.getLogger("OSAD.services.transport")

REGISTRATIONS_ENDPOINT = "/transport/student-registrations"
REGISTRATION_ENDPOINT = "/transport/student-registration"
ROUTES_ENDPOINT = "/transport/routes"


class TransportService:
    def __init__(self, fetcher: DashboardFetcher) -> None:
        self.fetcher = fetcher

    async def list_registrations(self) -> List[TransportRegistration]:
        # No safe default here: the page shows a retry banner instead.
        raw = await self.fetcher.get(REGISTRATIONS_ENDPOINT)
        rows = unwrap_list(raw, "registrations")
        registrations: List[TransportRegistration] = []
        for row in rows:
            if not row.get("id"):
                logger.warning("Skipping registration without id: %r", row)
                continue
            registrations.append(TransportRegistration.model_validate(row))
        return registrations

    async def list_routes(self) -> List[TransportRoute]:
        raw = await self.fetcher.get(ROUTES_ENDPOINT, fallback=None)
        return [TransportRoute.from_api(r) for r in unwrap_list(raw, "routes")]

    async def update_registration(self, registration: TransportRegistration) -> TransportRegistration:
        """
        Save an edited registration. The balance is recomputed locally before
        the request; the saved copy is returned only once the server confirms.
        """
        local = registration.model_copy().recalculate()
        await self.fetcher.put(
            f"{REGISTRATION_ENDPOINT}/{local.id}",
            json=local.to_payload(),
        )
        logger.info("Updated transport registration %s (balance=%s)", local.id, local.balance)
        return local

    async def delete_registration(self, registration_id: str) -> Any:
        return await self.fetcher.delete(f"{REGISTRATION_ENDPOINT}/{registration_id}")
