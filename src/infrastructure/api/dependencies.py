from __future__ import annotations

from src.infrastructure.database.repositories.profile_repository import (
    ProfileRepository,
    get_profile_repository,
)


def get_profile_repo() -> ProfileRepository:
    return get_profile_repository()
