# tests/test_page_state.py
from __future__ import annotations

import asyncio

import pytest

from OSAD.client.credentials import EnvCredentials, InMemoryCredentials
from OSAD.client.page_state import LoadState, NoticeLevel, PageState
from OSAD.client.scope import ViewScope
from OSAD.client.storage import initials, resolve_photo
from OSAD.exceptions import AuthExpiredError, DashboardDataError, WriteFailedError


class FakeClock:
    def __init__(self):
        self.now = 100.0

    def __call__(self):
        return self.now


# ---- PageState -------------------------------------------------------


def test_rows_decide_between_ready_and_empty():
    page = PageState()
    assert page.state is LoadState.LOADING
    page.set_rows([{"id": 1}])
    assert page.state is LoadState.READY
    page.set_rows(None)
    assert page.state is LoadState.EMPTY


def test_error_clears_rows():
    page = PageState()
    page.set_rows([{"id": 1}])
    page.set_error(DashboardDataError("Failed to load registrations"))
    assert page.state is LoadState.ERROR
    assert page.rows == []
    assert page.notice.level is NoticeLevel.ADVISORY


def test_advisory_notices_auto_dismiss_but_fatal_ones_stay():
    clock = FakeClock()
    page = PageState(dismiss_seconds=5.0, clock=clock)

    page.advise("Saved locally")
    clock.now += 4.9
    assert page.current_notice() is not None
    clock.now += 0.2
    assert page.current_notice() is None

    page.set_error(WriteFailedError("Update failed", method="PUT", return_message="Locked"))
    assert page.notice.level is NoticeLevel.FATAL
    assert page.notice.message == "Update failed: Locked"
    clock.now += 3600
    assert page.current_notice() is not None


def test_auth_errors_are_fatal_and_plain_errors_advisory():
    page = PageState()
    page.set_error(AuthExpiredError(url="x"))
    assert page.notice.level is NoticeLevel.FATAL
    page.set_error("Something odd")
    assert page.notice.level is NoticeLevel.ADVISORY
    page.succeed("Done")
    assert page.notice.level is NoticeLevel.SUCCESS


# ---- ViewScope -------------------------------------------------------


def test_guard_drops_updates_after_close():
    seen = []
    scope = ViewScope("attendance")
    setter = scope.guard(seen.append)

    assert setter(1) is True
    scope.close()
    assert setter(2) is False
    assert seen == [1]
    assert not scope.alive


@pytest.mark.anyio
async def test_late_response_after_close_is_not_applied():
    page = PageState()
    scope = ViewScope("students")
    gate = asyncio.Event()

    async def slow_load():
        await gate.wait()
        return [{"id": "s1"}]

    task = asyncio.ensure_future(scope.run(slow_load(), page.set_rows))
    await asyncio.sleep(0)
    scope.close()
    gate.set()
    result = await task

    assert result == [{"id": "s1"}]
    assert page.state is LoadState.LOADING
    assert page.rows == []


# ---- photos ----------------------------------------------------------


class Signer:
    def __init__(self, result=None, exc=None):
        self.result = result
        self.exc = exc
        self.calls = []

    def create_signed_url(self, bucket, key, ttl_seconds):
        self.calls.append((bucket, key, ttl_seconds))
        if self.exc:
            raise self.exc
        return self.result


def test_initials():
    assert initials("Jane Mary Doe") == "JM"
    assert initials("  ada ") == "A"
    assert initials("") == "?"
    assert initials(None) == "?"


def test_signed_photo():
    signer = Signer({"signedUrl": "https://cdn/p.jpg"})
    photo = resolve_photo(signer, "s1.jpg", "Jane Doe", bucket="photos", ttl_seconds=3600)
    assert photo.url == "https://cdn/p.jpg"
    assert not photo.is_fallback
    assert signer.calls == [("photos", "s1.jpg", 3600)]


@pytest.mark.parametrize(
    "signer,key",
    [
        (None, "s1.jpg"),
        (Signer({"signedUrl": "x"}), None),
        (Signer({"error": "not found"}), "s1.jpg"),
        (Signer({"signedUrl": "x", "error": "expired"}), "s1.jpg"),
        (Signer(exc=RuntimeError("storage down")), "s1.jpg"),
        (Signer(None), "s1.jpg"),
        (Signer("signing service unavailable"), "s1.jpg"),
        (Signer(["https://cdn/p.jpg"]), "s1.jpg"),
    ],
)
def test_photo_falls_back_to_initials(signer, key):
    photo = resolve_photo(signer, key, "Jane Doe", bucket="photos", ttl_seconds=60)
    assert photo.is_fallback
    assert photo.initials == "JD"


# ---- credentials -----------------------------------------------------


def test_in_memory_credentials():
    creds = InMemoryCredentials("")
    assert creds.get_token() is None
    creds.set_token("abc")
    assert creds.get_token() == "abc"
    creds.clear_token()
    assert creds.get_token() is None


def test_env_credentials_stop_after_clear(monkeypatch):
    monkeypatch.setenv("OSAD_ACCESS_TOKEN", "from-env")
    creds = EnvCredentials()
    assert creds.get_token() == "from-env"
    creds.clear_token()
    assert creds.get_token() is None


def test_page_state_from_settings(settings):
    page = PageState.from_settings(settings.model_copy(update={"notice_dismiss_seconds": 2.0}))
    assert page.dismiss_seconds == 2.0
    assert page.state is LoadState.LOADING
