from __future__ import annotations

import asyncio
import logging
import os
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from src.application.services.profile_form import ProfileForm
from src.application.services.toast_store import ToastStore
from src.infrastructure.client.profile_api_client import ProfileApiClient, ProfileApiError
from src.infrastructure.session.session_store import SessionStore

logger = logging.getLogger(__name__)


class EditState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    LOAD_ERROR = "load_error"
    SAVING = "saving"


class NotAuthenticatedError(Exception):
    pass


class ProfileEditSession:
    """
    Keeps the edit form and a cached copy of the profile in sync with the API.

    WORKFLOW:
    1. ``mount`` fetches the profile (retrying a few times) and fills the form
    2. The user edits ``form``; ``can_submit`` turns on once it is dirty
    3. ``submit`` validates, applies the edit to the cache right away, then
       sends it. The server's record replaces the cached one on success; on
       failure the cache goes back to its pre-submit snapshot and the form
       keeps the user's edits
    4. Every submit ends with a background re-fetch (``settle`` waits for it)

    Responses are applied in the order they arrive. A failed write only rolls
    back if nothing newer has landed in the cache since it was sent, so a
    refresh that completed meanwhile is never overwritten by stale data.
    Only one write is in flight at a time. Logging out drops every response
    still in flight.
    """

    def __init__(
        self,
        api: ProfileApiClient,
        session_store: SessionStore,
        toasts: ToastStore | None = None,
        form: ProfileForm | None = None,
        *,
        retries: int | None = None,
        retry_delay: float | None = None,
    ) -> None:
        self.api = api
        self.session_store = session_store
        self.toasts = toasts or ToastStore()
        self.form = form or ProfileForm()
        self.retries = retries if retries is not None else int(os.getenv("PROFILE_FETCH_RETRIES", "3"))
        self.retry_delay = (
            retry_delay if retry_delay is not None else float(os.getenv("PROFILE_FETCH_RETRY_DELAY", "1.0"))
        )

        self.state = EditState.IDLE
        self.cached: dict[str, Any] | None = None
        self.load_error: str | None = None
        self.is_revalidating = False
        self._cache_version = 0
        self._saving = False
        # bumped on logout; responses from an older login are dropped
        self._generation = 0
        self._background: set[asyncio.Task[None]] = set()

    @property
    def can_submit(self) -> bool:
        return self.form.is_dirty and self.state is EditState.READY

    @property
    def has_unsaved_changes(self) -> bool:
        return self.form.is_dirty

    def _store(self, data: dict[str, Any] | None) -> int:
        self.cached = dict(data) if data is not None else None
        self._cache_version += 1
        return self._cache_version

    def _resolve_state(self) -> None:
        if self._saving:
            self.state = EditState.SAVING
        elif self.cached is not None:
            self.state = EditState.READY
        elif self.load_error is not None:
            self.state = EditState.LOAD_ERROR
        else:
            self.state = EditState.LOADING

    def _require_auth(self) -> None:
        if not self.session_store.check_auth():
            raise NotAuthenticatedError("Login required to edit the profile")

    async def _fetch_with_retry(self) -> dict[str, Any]:
        attempt = 0
        while True:
            try:
                return await self.api.get_profile()
            except ProfileApiError as exc:
                if attempt >= self.retries:
                    raise
                attempt += 1
                logger.warning("Profile fetch failed (%s), retry %d/%d", exc, attempt, self.retries)
                await asyncio.sleep(self.retry_delay)

    async def mount(self) -> None:
        self._require_auth()
        generation = self._generation
        self.state = EditState.LOADING
        self.load_error = None
        try:
            data = await self._fetch_with_retry()
        except ProfileApiError as exc:
            if generation != self._generation:
                return
            logger.error("Giving up on profile fetch: %s", exc)
            self.load_error = str(exc)
            self.state = EditState.LOAD_ERROR
            return
        if generation != self._generation:
            return
        self._store(data)
        self.form.reset(data)
        self._resolve_state()

    async def refresh(self) -> None:
        """Drop the cached profile and read it again, no retries."""
        self._require_auth()
        generation = self._generation
        self.cached = None
        self.load_error = None
        self._resolve_state()
        try:
            data = await self.api.get_profile()
        except ProfileApiError as exc:
            if generation != self._generation:
                return
            logger.warning("Profile refresh failed: %s", exc)
            self.load_error = str(exc)
            self._resolve_state()
            return
        if generation != self._generation:
            return
        self._store(data)
        if not self._saving:
            self.form.reset(data)
        self._resolve_state()

    async def submit(self) -> bool:
        """Validate and save the form. Returns True once the server accepted it."""
        if not self.can_submit:
            return False
        if not self.form.validate():
            return False

        generation = self._generation
        submitted = dict(self.form.values)
        snapshot = self.cached
        optimistic_version = self._store(
            {**(snapshot or {}), **submitted, "updated_at": datetime.now(UTC).isoformat()}
        )
        self._saving = True
        self.state = EditState.SAVING

        result: dict[str, Any] | None = None
        error = ""
        try:
            result = await self.api.update_profile(submitted)
        except ProfileApiError as exc:
            error = str(exc) or "Failed to update profile"
        except Exception:
            if generation == self._generation:
                self._store(snapshot)
                self._saving = False
                self._resolve_state()
            raise

        if generation != self._generation:
            logger.info("Logged out while saving, dropping the response")
            return result is not None

        self._saving = False
        if result is None:
            if self._cache_version == optimistic_version:
                self._store(snapshot)
            else:
                logger.info("Newer profile data arrived during save, keeping it")
            self.toasts.show(error, "error")
        else:
            self._store(result["data"])
            self.form.reset(result["data"])
            self.toasts.show(result.get("message") or "Profile updated successfully!", "success")
        self._resolve_state()

        task = asyncio.create_task(self._revalidate(generation))
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return result is not None

    async def _revalidate(self, generation: int) -> None:
        self.is_revalidating = True
        try:
            data = await self.api.get_profile()
        except ProfileApiError as exc:
            logger.warning("Background profile re-fetch failed: %s", exc)
            return
        finally:
            self.is_revalidating = False
        if generation != self._generation:
            return
        self._store(data)
        if not self.form.is_dirty:
            self.form.reset(data)
        self._resolve_state()

    async def settle(self) -> None:
        """Wait for every pending background re-fetch."""
        while self._background:
            await asyncio.gather(*self._background)

    def logout(self) -> None:
        self.session_store.logout()
        self._generation += 1
        self._saving = False
        self.cached = None
        self.load_error = None
        self.state = EditState.IDLE
        self.toasts.show("Logged out successfully", "success")
