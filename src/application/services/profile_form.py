from __future__ import annotations

from collections.abc import Mapping

from src.domain.entities.profile import EDITABLE_FIELDS
from src.domain.services.profile_validation import validate_profile


class ProfileForm:
    """Edit form values plus the last-synced baseline they are compared to."""

    def __init__(self) -> None:
        self.values: dict[str, str] = {field: "" for field in EDITABLE_FIELDS}
        self._baseline = dict(self.values)
        self.errors: dict[str, str] = {}

    @property
    def is_dirty(self) -> bool:
        return self.values != self._baseline

    def set_value(self, field: str, value: str) -> None:
        if field not in self.values:
            raise KeyError(field)
        self.values[field] = value

    def reset(self, data: Mapping[str, str]) -> None:
        """Load ``data`` as both current values and baseline, clearing errors."""
        self.values = {field: data.get(field) or "" for field in EDITABLE_FIELDS}
        self._baseline = dict(self.values)
        self.errors = {}

    def validate(self) -> bool:
        self.errors = validate_profile(self.values)
        return not self.errors
