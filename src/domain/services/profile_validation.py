"""Validation rules for profile updates.

The same rule set is used by the edit form before anything is sent and by the
``PUT /profile`` endpoint, which checks incoming partial updates again.
"""
from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any

from email_validator import EmailNotValidError, validate_email
from pydantic import BaseModel, ConfigDict, ValidationError, field_validator
from pydantic_core import PydanticCustomError

PHONE_PATTERN = re.compile(r"^[+]?[1-9][\d\s\-().]{8,20}$", re.ASCII)

FIELD_LABELS = {
    "name": "Name",
    "bio": "Bio",
    "email": "Email",
    "phone": "Phone number",
    "location": "Location",
}

# Owned by the store; clients may echo them back but they are never validated or written.
READ_ONLY_FIELDS = frozenset({"id", "updated_at"})


def _check_length(value: str, label: str, minimum: int, maximum: int | None = None) -> str:
    if len(value) < minimum:
        raise PydanticCustomError("too_short", f"{label} must be at least {minimum} characters")
    if maximum is not None and len(value) > maximum:
        raise PydanticCustomError("too_long", f"{label} must be less than {maximum} characters")
    return value


class ProfileForm(BaseModel):
    """Editable profile fields with the constraints shown in the edit form."""

    model_config = ConfigDict(extra="forbid")

    name: str
    bio: str
    email: str
    phone: str
    location: str

    @field_validator("name")
    @classmethod
    def _name(cls, value: str) -> str:
        return _check_length(value, "Name", 2, 50)

    @field_validator("bio")
    @classmethod
    def _bio(cls, value: str) -> str:
        return _check_length(value, "Bio", 10, 500)

    @field_validator("email")
    @classmethod
    def _email(cls, value: str) -> str:
        try:
            # syntax only; special-use domains (.local, .test) still fail
            validate_email(value, check_deliverability=False)
        except EmailNotValidError:
            raise PydanticCustomError("invalid_email", "Please enter a valid email address")
        return value

    @field_validator("phone")
    @classmethod
    def _phone(cls, value: str) -> str:
        _check_length(value, "Phone number", 10)
        if not PHONE_PATTERN.match(value):
            raise PydanticCustomError(
                "invalid_phone",
                "Please enter a valid phone number (e.g., +1 (555) 123-4567 or 555-123-4567)",
            )
        return value

    @field_validator("location")
    @classmethod
    def _location(cls, value: str) -> str:
        return _check_length(value, "Location", 2, 100)


def _message_for(error: dict[str, Any], field: str) -> str:
    kind = error["type"]
    label = FIELD_LABELS.get(field, field)
    if kind == "missing":
        return f"{label} is required"
    if kind == "extra_forbidden":
        return "Unknown field"
    if kind == "string_type":
        return f"{label} must be a string"
    return error["msg"]


def validate_profile(data: Mapping[str, Any], *, partial: bool = False) -> dict[str, str]:
    """Validate ``data`` and return a mapping of field name to message.

    Every field is checked independently; the first violation of each field is
    reported. An empty mapping means the data is acceptable. With
    ``partial=True`` only the fields present in ``data`` are checked, which is
    how the API treats update bodies.
    """
    candidate = {k: v for k, v in data.items() if k not in READ_ONLY_FIELDS}
    try:
        ProfileForm.model_validate(candidate)
    except ValidationError as exc:
        errors: dict[str, str] = {}
        for error in exc.errors():
            if not error["loc"]:
                continue
            field = str(error["loc"][0])
            if partial and field not in candidate:
                continue
            errors.setdefault(field, _message_for(error, field))
        return errors
    return {}
