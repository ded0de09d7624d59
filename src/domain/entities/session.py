from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class SessionUser:
    id: str
    email: str
    name: str
    login_time: str  # ISO-8601, UTC


@dataclass(frozen=True)
class LoginResult:
    success: bool
    message: str
