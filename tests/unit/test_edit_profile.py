"""
Tests for the edit session: loading, optimistic saves, rollback and refresh races.
"""
from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from src.application.use_cases.edit_profile import EditState, NotAuthenticatedError, ProfileEditSession
from src.infrastructure.client.profile_api_client import ProfileApiClient

NEW_BIO = "Writes Python for a living and enjoys it."


class FakeProfileServer:
    """Stands in for the profile API behind an httpx.MockTransport."""

    def __init__(self) -> None:
        self.record = {
            "id": "1",
            "name": "John Doe",
            "bio": "Full-stack developer who likes shipping things.",
            "email": "john.doe@example.com",
            "phone": "+1 (555) 123-4567",
            "location": "San Francisco, CA",
            "updated_at": "2024-01-01T00:00:00+00:00",
        }
        self.fail_gets = 0
        self.fail_put = False
        self.hold_put: asyncio.Event | None = None
        self.put_received: asyncio.Event | None = None
        self.get_calls = 0
        self.put_bodies: list[dict] = []
        self._stamp = 0

    def bump(self, **changes: str) -> None:
        self._stamp += 1
        self.record.update(changes, updated_at=f"2024-01-02T00:00:{self._stamp:02d}+00:00")

    async def handler(self, request: httpx.Request) -> httpx.Response:
        if request.method == "GET":
            self.get_calls += 1
            if self.fail_gets:
                self.fail_gets -= 1
                return httpx.Response(500, json={"success": False, "error": "Failed to fetch profile"})
            return httpx.Response(200, json={"success": True, "data": dict(self.record)})

        body = json.loads(request.content)
        self.put_bodies.append(body)
        if self.put_received is not None:
            self.put_received.set()
        if self.hold_put is not None:
            await self.hold_put.wait()
        if self.fail_put:
            return httpx.Response(500, json={"success": False, "error": "Failed to update profile"})
        self.bump(**body)
        return httpx.Response(
            200,
            json={"success": True, "data": dict(self.record), "message": "Profile updated successfully"},
        )


@pytest.fixture()
def server() -> FakeProfileServer:
    return FakeProfileServer()


@pytest.fixture()
def logged_in(session_store):
    asyncio.run(session_store.login("jane@example.com", "secret"))
    return session_store


def make_session(server: FakeProfileServer, session_store, **kwargs) -> ProfileEditSession:
    api = ProfileApiClient("http://profile.test", transport=httpx.MockTransport(server.handler))
    kwargs.setdefault("retry_delay", 0)
    return ProfileEditSession(api, session_store, **kwargs)


def test_mount_requires_login(server, session_store):
    session = make_session(server, session_store)
    with pytest.raises(NotAuthenticatedError):
        asyncio.run(session.mount())
    assert server.get_calls == 0


def test_mount_populates_form(server, logged_in):
    session = make_session(server, logged_in)
    assert session.state is EditState.IDLE

    asyncio.run(session.mount())

    assert session.state is EditState.READY
    assert session.cached == server.record
    assert session.form.values["name"] == "John Doe"
    assert not session.has_unsaved_changes
    assert not session.can_submit


def test_mount_retries_then_succeeds(server, logged_in):
    server.fail_gets = 2
    session = make_session(server, logged_in, retries=3)
    asyncio.run(session.mount())
    assert session.state is EditState.READY
    assert server.get_calls == 3


def test_mount_gives_up_and_retry_affordance_recovers(server, logged_in):
    server.fail_gets = 10
    session = make_session(server, logged_in, retries=2)
    asyncio.run(session.mount())
    assert session.state is EditState.LOAD_ERROR
    assert session.load_error == "HTTP error! status: 500"
    assert server.get_calls == 3

    server.fail_gets = 0
    asyncio.run(session.refresh())
    assert session.state is EditState.READY
    assert session.load_error is None


def test_invalid_form_never_reaches_network(server, logged_in):
    session = make_session(server, logged_in)

    async def scenario():
        await session.mount()
        session.form.set_value("bio", "too short")
        return await session.submit()

    assert asyncio.run(scenario()) is False
    assert session.form.errors == {"bio": "Bio must be at least 10 characters"}
    assert server.put_bodies == []
    assert session.state is EditState.READY


def test_submit_without_changes_is_refused(server, logged_in):
    session = make_session(server, logged_in)

    async def scenario():
        await session.mount()
        return await session.submit()

    assert asyncio.run(scenario()) is False
    assert server.put_bodies == []


def test_successful_save_reconciles_with_server(server, logged_in):
    session = make_session(server, logged_in)

    async def scenario():
        await session.mount()
        session.form.set_value("bio", NEW_BIO)
        assert session.can_submit
        saved = await session.submit()
        assert saved is True
        assert session.cached == server.record
        assert session.cached["updated_at"] == "2024-01-02T00:00:01+00:00"
        assert not session.form.is_dirty
        toast = session.toasts.current
        assert (toast.message, toast.severity, toast.visible) == ("Profile updated successfully", "success", True)
        await session.settle()

    asyncio.run(scenario())
    assert server.put_bodies[0]["bio"] == NEW_BIO
    # mount + background re-fetch
    assert server.get_calls == 2
    assert session.state is EditState.READY


def test_optimistic_value_visible_while_saving(server, logged_in):
    session = make_session(server, logged_in)

    async def scenario():
        server.hold_put = asyncio.Event()
        server.put_received = asyncio.Event()
        await session.mount()
        original_stamp = session.cached["updated_at"]
        session.form.set_value("name", "Jane Doe")

        pending = asyncio.create_task(session.submit())
        await server.put_received.wait()
        assert session.state is EditState.SAVING
        assert session.cached["name"] == "Jane Doe"
        assert session.cached["updated_at"] != original_stamp
        assert not session.can_submit

        server.hold_put.set()
        assert await pending is True
        await session.settle()

    asyncio.run(scenario())
    assert session.cached["name"] == "Jane Doe"


def test_failed_save_rolls_back_and_keeps_edits(server, logged_in):
    session = make_session(server, logged_in)
    server.fail_put = True

    async def scenario():
        await session.mount()
        snapshot = dict(session.cached)
        session.form.set_value("bio", NEW_BIO)

        saved = await session.submit()

        assert saved is False
        assert session.cached == snapshot
        assert session.state is EditState.READY
        toast = session.toasts.current
        assert toast.severity == "error"
        assert toast.visible
        assert toast.message == "HTTP error! status: 500"
        assert session.form.values["bio"] == NEW_BIO
        assert session.can_submit

        await session.settle()
        # the background re-fetch leaves unsaved edits alone
        assert session.form.values["bio"] == NEW_BIO
        assert session.cached == snapshot

    asyncio.run(scenario())


def test_refresh_during_failed_save_is_not_overwritten(server, logged_in):
    session = make_session(server, logged_in)
    server.fail_put = True

    async def scenario():
        server.hold_put = asyncio.Event()
        server.put_received = asyncio.Event()
        await session.mount()
        session.form.set_value("bio", NEW_BIO)

        pending = asyncio.create_task(session.submit())
        await server.put_received.wait()
        # someone else changed the profile; the refresh sees it
        server.bump(name="Changed Elsewhere")
        await session.refresh()
        assert session.cached["name"] == "Changed Elsewhere"
        assert session.state is EditState.SAVING

        server.hold_put.set()
        assert await pending is False

        assert session.cached["name"] == "Changed Elsewhere"
        assert session.cached["bio"] == server.record["bio"]
        assert session.form.values["bio"] == NEW_BIO
        assert session.state is EditState.READY
        await session.settle()

    asyncio.run(scenario())


def test_save_resolving_after_refresh_wins(server, logged_in):
    session = make_session(server, logged_in)

    async def scenario():
        server.hold_put = asyncio.Event()
        server.put_received = asyncio.Event()
        await session.mount()
        session.form.set_value("location", "Austin, TX")

        pending = asyncio.create_task(session.submit())
        await server.put_received.wait()
        await session.refresh()
        assert session.cached["location"] == "San Francisco, CA"

        server.hold_put.set()
        assert await pending is True
        assert session.cached["location"] == "Austin, TX"
        await session.settle()

    asyncio.run(scenario())
    assert session.cached == server.record


def test_logout_clears_session(server, logged_in):
    session = make_session(server, logged_in)
    asyncio.run(session.mount())
    session.logout()
    assert session.state is EditState.IDLE
    assert session.cached is None
    assert not logged_in.check_auth()
    assert session.toasts.current.message == "Logged out successfully"


def test_logout_during_save_drops_the_response(server, logged_in):
    session = make_session(server, logged_in)

    async def scenario():
        server.hold_put = asyncio.Event()
        server.put_received = asyncio.Event()
        await session.mount()
        session.form.set_value("name", "Jane Doe")

        pending = asyncio.create_task(session.submit())
        await server.put_received.wait()
        session.logout()
        server.hold_put.set()
        assert await pending is True
        await session.settle()

    asyncio.run(scenario())
    assert session.state is EditState.IDLE
    assert session.cached is None
    assert not logged_in.check_auth()
    assert session.toasts.current.message == "Logged out successfully"
    # no background re-fetch for a logged-out session
    assert server.get_calls == 1


def test_logout_during_failed_save_skips_rollback(server, logged_in):
    session = make_session(server, logged_in)
    server.fail_put = True

    async def scenario():
        server.hold_put = asyncio.Event()
        server.put_received = asyncio.Event()
        await session.mount()
        session.form.set_value("name", "Jane Doe")

        pending = asyncio.create_task(session.submit())
        await server.put_received.wait()
        session.logout()
        server.hold_put.set()
        assert await pending is False

    asyncio.run(scenario())
    assert session.state is EditState.IDLE
    assert session.cached is None
    assert session.toasts.current.severity == "success"


def test_refresh_requires_login(server, logged_in):
    session = make_session(server, logged_in)
    asyncio.run(session.mount())
    session.logout()
    with pytest.raises(NotAuthenticatedError):
        asyncio.run(session.refresh())
    assert server.get_calls == 1
    assert session.state is EditState.IDLE


def test_settle_waits_for_every_background_refetch(server, logged_in):
    session = make_session(server, logged_in)

    async def scenario():
        await session.mount()
        session.form.set_value("name", "Jane Doe")
        assert await session.submit() is True
        # the first re-fetch has not run yet when the second save starts
        session.form.set_value("name", "Janet Doe")
        assert await session.submit() is True
        await session.settle()

    asyncio.run(scenario())
    # mount + one re-fetch per save
    assert server.get_calls == 3
    assert not session.is_revalidating
    assert session.cached["name"] == "Janet Doe"
