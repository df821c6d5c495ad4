from __future__ import annotations

from .credentials import CredentialProvider, InMemoryCredentials  # noqa: F401
from .fetcher import DashboardFetcher, NO_FALLBACK  # noqa: F401
from .scope import ViewScope  # noqa: F401
