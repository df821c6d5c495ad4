# src/OSAD/client/fetcher.py
"""
Authenticated access to the dashboard backend.

Reads and writes fail differently on purpose:

* a failed read (non-2xx, transport error, undecodable JSON) is logged and
  turned into the caller's fallback value, so a page can render its empty
  state; transport errors get a single retry first;
* a failed write always raises ``WriteFailedError`` and is never retried
  here, so a mutation cannot be submitted twice behind the user's back;
* a 401 from any call clears the stored token and raises
  ``AuthExpiredError``.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Tuple, TypeVar

import httpx
import logging
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_fixed,
)

from OSAD.client.credentials import CredentialProvider, InMemoryCredentials
from OSAD.data.envelopes import is_success_payload, return_message
from OSAD.exceptions import (
    AuthenticationRequiredError,
    AuthExpiredError,
    DashboardDataError,
    WriteFailedError,
)
from OSAD.settings import Settings, get_settings

logger = logging.getLogger("OSAD.client.fetcher")

T = TypeVar("T")
I = TypeVar("I")

READ_METHODS = frozenset({"GET"})
WRITE_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})

_AUTH_ERRORS = (AuthenticationRequiredError, AuthExpiredError)
# Never swapped for a fallback: the whole load is aborted.
_PROPAGATED = _AUTH_ERRORS + (asyncio.CancelledError,)


class _NoFallback:
    def __repr__(self) -> str:
        return "NO_FALLBACK"


# Pass as ``fallback`` for reads that have no safe default: the failure is
# raised as DashboardDataError instead of being masked.
NO_FALLBACK: Any = _NoFallback()


@dataclass
class ItemResult:
    """Outcome of one per-item call in ``bounded_map``."""

    item: Any
    ok: bool
    value: Any = None
    error: Optional[BaseException] = None


class DashboardFetcher:
    """
    Thin async client around the dashboard REST API.

    One ``httpx.AsyncClient`` is shared for the fetcher's lifetime; use it as
    an async context manager or call ``aclose()``.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        credentials: Optional[CredentialProvider] = None,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self.settings = settings or get_settings()
        self.credentials = credentials or InMemoryCredentials()
        self._transport = transport
        self._sleep = sleep
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self) -> "DashboardFetcher":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.settings.request_timeout),
                transport=self._transport,
            )
        return self._client

    # ------------------------------------------------------------------
    # Core request path
    # ------------------------------------------------------------------

    def _auth_headers(self, url: str) -> Dict[str, str]:
        token = self.credentials.get_token()
        if not token:
            logger.warning("No access token available; refusing to call %s", url)
            raise AuthenticationRequiredError(url=url)
        return {
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
        }

    def _expire(self, url: str, method: str) -> None:
        logger.warning("%s %s returned HTTP 401; clearing session", method, url)
        self.credentials.clear_token()
        raise AuthExpiredError(url=url, method=method)

    async def fetch_with_fallback(
        self,
        method: str,
        path: str,
        fallback: Any = NO_FALLBACK,
        *,
        params: Optional[Dict[str, Any]] = None,
        json: Any = None,
    ) -> Any:
        """
        Perform one authenticated call and return the decoded JSON body.

        For reads, ``fallback`` is returned on failure (or DashboardDataError
        raised when it is NO_FALLBACK). Writes ignore ``fallback`` and raise.
        """
        method = method.upper()
        url = self.settings.build_url(path)
        headers = self._auth_headers(url)

        if method in READ_METHODS:
            return await self._read(url, headers, params, fallback)
        if method in WRITE_METHODS:
            return await self._write(method, url, headers, params, json)
        raise ValueError(f"Unsupported HTTP method: {method}")

    async def _read(
        self,
        url: str,
        headers: Dict[str, str],
        params: Optional[Dict[str, Any]],
        fallback: Any,
    ) -> Any:
        attempts = 1 + self.settings.read_retries
        retrying = AsyncRetrying(
            stop=stop_after_attempt(attempts),
            retry=retry_if_exception_type(httpx.TransportError),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )

        try:
            async for attempt in retrying:
                with attempt:
                    logger.info(
                        "GET %s params=%s (attempt %d/%d)",
                        url,
                        params,
                        attempt.retry_state.attempt_number,
                        attempts,
                    )
                    resp = await self.client.get(url, params=params, headers=headers)
        except httpx.TransportError as e:
            logger.warning("Network error calling %s: %s", url, e)
            return self._read_failed(
                fallback,
                f"Network error querying {url}: {e}",
                url=url,
                cause=e,
            )

        logger.info("GET %s status=%s bytes=%s", url, resp.status_code, len(resp.content))

        if resp.status_code == 401:
            self._expire(url, "GET")

        if not resp.is_success:
            logger.warning(
                "GET %s returned HTTP %s: %s",
                url,
                resp.status_code,
                resp.text[:500],
            )
            return self._read_failed(
                fallback,
                f"Request to {url} failed with HTTP {resp.status_code}",
                url=url,
                status_code=resp.status_code,
            )

        try:
            return resp.json()
        except ValueError as json_err:
            logger.exception("Failed to decode JSON from %s", url)
            return self._read_failed(
                fallback,
                f"Invalid JSON from {url}",
                url=url,
                status_code=resp.status_code,
                cause=json_err,
            )

    def _read_failed(
        self,
        fallback: Any,
        message: str,
        *,
        url: str,
        status_code: Optional[int] = None,
        cause: Optional[Exception] = None,
    ) -> Any:
        if fallback is NO_FALLBACK:
            raise DashboardDataError(message, url=url, status_code=status_code, cause=cause)
        logger.info("Using fallback value for %s", url)
        return fallback

    async def _write(
        self,
        method: str,
        url: str,
        headers: Dict[str, str],
        params: Optional[Dict[str, Any]],
        json: Any,
    ) -> Any:
        logger.info("%s %s params=%s", method, url, params)
        try:
            resp = await self.client.request(
                method, url, params=params, json=json, headers=headers
            )
        except httpx.TransportError as e:
            logger.exception("Network error on %s %s", method, url)
            raise WriteFailedError(
                f"Network error on {method} {url}",
                url=url,
                method=method,
                cause=e,
            ) from e

        logger.info("%s %s status=%s", method, url, resp.status_code)

        if resp.status_code == 401:
            self._expire(url, method)

        body: Any = None
        if resp.content:
            try:
                body = resp.json()
            except ValueError:
                body = None

        if not resp.is_success:
            logger.error(
                "%s %s returned HTTP %s: %s",
                method,
                url,
                resp.status_code,
                resp.text[:500],
            )
            raise WriteFailedError(
                f"{method} {url} failed with HTTP {resp.status_code}",
                url=url,
                method=method,
                status_code=resp.status_code,
                body_text=resp.text,
                return_message=return_message(body),
            )
        return body

    # ------------------------------------------------------------------
    # Convenience wrappers
    # ------------------------------------------------------------------

    async def get(
        self,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        fallback: Any = NO_FALLBACK,
    ) -> Any:
        return await self.fetch_with_fallback("GET", path, fallback, params=params)

    async def post(self, path: str, json: Any = None, *, confirm: bool = True) -> Any:
        return await self._confirmed("POST", path, json, confirm)

    async def put(self, path: str, json: Any = None, *, confirm: bool = True) -> Any:
        return await self._confirmed("PUT", path, json, confirm)

    async def delete(self, path: str, *, confirm: bool = True) -> Any:
        return await self._confirmed("DELETE", path, None, confirm)

    async def _confirmed(self, method: str, path: str, json: Any, confirm: bool) -> Any:
        body = await self.fetch_with_fallback(method, path, json=json)
        if confirm:
            self.confirm_write(body, url=self.settings.build_url(path), method=method)
        return body

    @staticmethod
    def confirm_write(body: Any, *, url: Optional[str] = None, method: str = "POST") -> None:
        """An HTTP 2xx is not enough: the body must report success too."""
        if not is_success_payload(body):
            message = return_message(body)
            logger.error("%s %s answered 2xx without success: %s", method, url, message)
            raise WriteFailedError(
                f"{method} {url} was not confirmed by the server",
                url=url,
                method=method,
                status_code=200,
                return_message=message,
            )

    # ------------------------------------------------------------------
    # Concurrency helpers
    # ------------------------------------------------------------------

    async def gather_with_fallbacks(
        self, calls: Dict[str, Tuple[Awaitable[Any], Any]]
    ) -> Dict[str, Any]:
        """
        Fan out independent loads and wait for all of them to settle.

        Each member's failure maps to its own fallback. An auth failure or a
        cancellation in any member is re-raised once everything has settled.
        """
        names = list(calls)
        results = await asyncio.gather(
            *(calls[name][0] for name in names), return_exceptions=True
        )

        out: Dict[str, Any] = {}
        aborted: Optional[BaseException] = None
        for name, result in zip(names, results):
            if isinstance(result, _PROPAGATED):
                aborted = aborted or result
                out[name] = calls[name][1]
            elif isinstance(result, BaseException):
                logger.warning("Load %r failed, using fallback: %s", name, result)
                out[name] = calls[name][1]
            else:
                out[name] = result

        if aborted is not None:
            raise aborted
        return out

    async def bounded_map(
        self,
        func: Callable[[I], Awaitable[T]],
        items: Iterable[I],
        limit: Optional[int] = None,
    ) -> List[ItemResult]:
        """
        Run ``func`` per item with at most ``limit`` calls in flight.

        Results keep input order and each item's failure is isolated in its
        ItemResult.
        """
        sem = asyncio.Semaphore(limit or self.settings.max_inflight)

        async def _one(item: I) -> ItemResult:
            async with sem:
                try:
                    return ItemResult(item=item, ok=True, value=await func(item))
                except _AUTH_ERRORS:
                    raise
                except Exception as e:
                    logger.warning("Per-item call failed for %r: %s", item, e)
                    return ItemResult(item=item, ok=False, error=e)

        results = await asyncio.gather(*(_one(i) for i in items), return_exceptions=True)
        for r in results:
            if isinstance(r, BaseException):
                raise r
        return list(results)

    async def submit_with_retry(
        self, send: Callable[[], Awaitable[T]], *, label: str = "submission"
    ) -> T:
        """
        Run a mutation, and if it fails run it exactly once more after
        ``mutation_retry_delay`` seconds. The retry starts only after the
        first attempt has finished.
        """
        delay = self.settings.mutation_retry_delay

        def _log_retry(retry_state: RetryCallState) -> None:
            error = retry_state.outcome.exception()
            message = error.get_user_message() if isinstance(error, WriteFailedError) else error
            logger.warning("%s failed (%s); retrying once in %.1fs", label, message, delay)

        retrying = AsyncRetrying(
            stop=stop_after_attempt(2),
            wait=wait_fixed(delay),
            retry=retry_if_exception_type(WriteFailedError),
            before_sleep=_log_retry,
            sleep=self._sleep,
            reraise=True,
        )
        return await retrying(send)
