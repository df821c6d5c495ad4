from __future__ import annotations

from typing import Optional, Protocol
import logging
import os

logger = logging.getLogger("OSAD.client.credentials")


class CredentialProvider(Protocol):
    """
    Where the access token lives (browser storage, cookie, session...).

    The data layer only ever reads the token; ``clear_token`` is called once
    when the backend answers 401.
    """

    def get_token(self) -> Optional[str]: ...
    def clear_token(self) -> None: ...


class InMemoryCredentials:
    """Process-local token holder, e.g. for scripts and tests."""

    def __init__(self, token: Optional[str] = None) -> None:
        self._token = token or None

    def get_token(self) -> Optional[str]:
        return self._token

    def set_token(self, token: Optional[str]) -> None:
        self._token = token or None

    def clear_token(self) -> None:
        if self._token:
            logger.info("Clearing stored access token")
        self._token = None


class EnvCredentials:
    """Reads the token from an environment variable (OSAD_ACCESS_TOKEN by default)."""

    def __init__(self, var: str = "OSAD_ACCESS_TOKEN") -> None:
        self.var = var
        self._cleared = False

    def get_token(self) -> Optional[str]:
        if self._cleared:
            return None
        return os.getenv(self.var) or None

    def clear_token(self) -> None:
        # The environment belongs to the deployment; just stop handing it out.
        self._cleared = True
