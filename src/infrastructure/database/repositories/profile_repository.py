from __future__ import annotations

import logging
import threading
from collections.abc import Mapping
from dataclasses import replace
from datetime import UTC, datetime, timedelta

from src.domain.entities.profile import EDITABLE_FIELDS, ProfileEntity

logger = logging.getLogger(__name__)

SEED_PROFILE = {
    "id": "1",
    "name": "John Doe",
    "bio": (
        "Full-stack developer passionate about creating amazing user experiences. "
        "I love working with modern technologies and building scalable applications "
        "that make a difference."
    ),
    "email": "john.doe@example.com",
    "phone": "+1 (555) 123-4567",
    "location": "San Francisco, CA",
}


class ProfileRepository:
    """Holds the single profile record for the process.

    Writes merge the supplied fields into the current record. The record is
    immutable, so ``read`` and ``write`` hand out values callers cannot alter.
    FastAPI serves sync handlers from a thread pool, hence the lock.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._last_modified = datetime.now(UTC)
        self._record = ProfileEntity(
            **SEED_PROFILE,
            updated_at=self._last_modified.isoformat(),
        )

    def _next_timestamp(self) -> datetime:
        now = datetime.now(UTC)
        if now <= self._last_modified:
            now = self._last_modified + timedelta(microseconds=1)
        self._last_modified = now
        return now

    def read(self) -> ProfileEntity:
        with self._lock:
            return self._record

    def write(self, partial: Mapping[str, str]) -> ProfileEntity:
        # no validation here; the API layer checks input before calling
        changes = {k: v for k, v in partial.items() if k in EDITABLE_FIELDS}
        with self._lock:
            self._record = replace(
                self._record,
                **changes,
                updated_at=self._next_timestamp().isoformat(),
            )
            logger.debug("Profile record now at %s", self._record.updated_at)
            return self._record


# Process-wide record, created on first use
_REPOSITORY_SINGLETON: ProfileRepository | None = None
_SINGLETON_LOCK = threading.Lock()


def get_profile_repository() -> ProfileRepository:
    global _REPOSITORY_SINGLETON
    with _SINGLETON_LOCK:
        if _REPOSITORY_SINGLETON is None:
            _REPOSITORY_SINGLETON = ProfileRepository()
        return _REPOSITORY_SINGLETON


def reset_profile_repository() -> ProfileRepository:
    """Re-seed the process-wide record."""
    global _REPOSITORY_SINGLETON
    with _SINGLETON_LOCK:
        _REPOSITORY_SINGLETON = ProfileRepository()
        return _REPOSITORY_SINGLETON
