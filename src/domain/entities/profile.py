from __future__ import annotations

from dataclasses import asdict, dataclass

EDITABLE_FIELDS: tuple[str, ...] = ("name", "bio", "email", "phone", "location")


@dataclass(frozen=True)
class ProfileEntity:
    id: str
    name: str
    bio: str
    email: str
    phone: str
    location: str
    updated_at: str  # ISO-8601, UTC

    def to_dict(self) -> dict[str, str]:
        return asdict(self)
