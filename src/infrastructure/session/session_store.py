"""Demo-grade login state kept on the client.

No credential is checked against anything: any well-formed email with a
password of three or more characters logs in. The state is written to
``LocalStorage`` under ``auth-storage`` so it survives restarts.
"""
from __future__ import annotations

import asyncio
import json
import logging
import os
import secrets
import string
from dataclasses import asdict
from datetime import UTC, datetime
from typing import Any

from src.domain.entities.session import LoginResult, SessionUser
from src.infrastructure.session.local_storage import LocalStorage

logger = logging.getLogger(__name__)

STORAGE_KEY = "auth-storage"
SCHEMA_VERSION = 1

_ID_ALPHABET = string.ascii_lowercase + string.digits


def serialize_session(user: SessionUser | None, is_authenticated: bool) -> str:
    state = {
        "user": asdict(user) if user is not None else None,
        "isAuthenticated": is_authenticated,
    }
    return json.dumps({"version": SCHEMA_VERSION, "state": state})


def deserialize_session(raw: str) -> tuple[SessionUser | None, bool]:
    """Inverse of ``serialize_session``.

    Raises:
        ValueError: If the payload is not valid JSON or not schema version 1.
    """
    try:
        payload: Any = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Corrupt session payload: {exc}") from exc
    if not isinstance(payload, dict) or payload.get("version") != SCHEMA_VERSION:
        raise ValueError("Unsupported session schema version")
    state = payload.get("state") or {}
    user_data = state.get("user")
    try:
        user = SessionUser(**user_data) if user_data is not None else None
    except TypeError as exc:
        raise ValueError(f"Malformed session user: {exc}") from exc
    return user, bool(state.get("isAuthenticated", False))


def _random_id(length: int = 9) -> str:
    return "".join(secrets.choice(_ID_ALPHABET) for _ in range(length))


class SessionStore:
    def __init__(
        self,
        storage: LocalStorage | None = None,
        *,
        latency: float | None = None,
    ) -> None:
        self.storage = storage or LocalStorage()
        if latency is None:
            latency = float(os.getenv("AUTH_LOGIN_LATENCY_SECONDS", "1.0"))
        self.latency = latency
        self.user: SessionUser | None = None
        self.is_authenticated = False
        self._load()

    def _load(self) -> None:
        raw = self.storage.get_item(STORAGE_KEY)
        if raw is None:
            return
        try:
            self.user, self.is_authenticated = deserialize_session(raw)
        except ValueError as exc:
            logger.warning("Discarding stored session: %s", exc)
            self.user, self.is_authenticated = None, False

    def _persist(self) -> None:
        self.storage.set_item(STORAGE_KEY, serialize_session(self.user, self.is_authenticated))

    async def login(self, email: str, password: str) -> LoginResult:
        if self.latency > 0:
            await asyncio.sleep(self.latency)

        if not email.strip() or not password.strip():
            return LoginResult(False, "Please enter both email and password")
        if len(password) < 3:
            return LoginResult(False, "Password must be at least 3 characters")

        email = email.strip()
        self.user = SessionUser(
            id=_random_id(),
            email=email,
            name=email.split("@")[0] or "User",
            login_time=datetime.now(UTC).isoformat(),
        )
        self.is_authenticated = True
        self._persist()
        logger.info("Logged in as %s", self.user.email)
        return LoginResult(True, "Login successful!")

    def logout(self) -> None:
        self.user = None
        self.is_authenticated = False
        self._persist()

    def check_auth(self) -> bool:
        return self.is_authenticated and self.user is not None
