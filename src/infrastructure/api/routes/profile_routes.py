from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Body, Depends, Request, status
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from src.application.dtos.profile_dto import ProfileData, ProfileErrorResponse, ProfileResponse
from src.domain.services.profile_validation import validate_profile
from src.infrastructure.api.dependencies import get_profile_repo
from src.infrastructure.database.repositories.profile_repository import ProfileRepository

logger = logging.getLogger(__name__)

NO_STORE_HEADERS = {
    "Cache-Control": "no-cache, no-store, must-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
}

router = APIRouter(
    prefix="/profile",
    tags=["Profile"],
    responses={
        500: {"model": ProfileErrorResponse, "description": "Internal Server Error - generic failure envelope"},
    },
)


def _error(status_code: int, message: str, errors: dict[str, str] | None = None) -> JSONResponse:
    body = ProfileErrorResponse(error=message, errors=errors)
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(exclude_none=True),
        headers=NO_STORE_HEADERS,
    )


def _ok(payload: ProfileResponse) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_200_OK,
        content=payload.model_dump(exclude_none=True),
        headers=NO_STORE_HEADERS,
    )


async def profile_body_exception_handler(request: Request, exc: RequestValidationError):
    """Answer unparseable or missing /profile bodies with the 400 envelope."""
    if request.url.path.rstrip("/") != router.prefix:
        return await request_validation_exception_handler(request, exc)
    logger.info("Rejected malformed profile body: %s", exc.errors())
    return _error(status.HTTP_400_BAD_REQUEST, "Invalid profile data")


@router.get(
    "",
    response_model=ProfileResponse,
    summary="Get Profile",
    description="""
    Return the current profile record.

    The response is never cached, so every call reflects the latest write.
    """,
    response_description="Envelope holding the profile record",
)
def get_profile(profiles: ProfileRepository = Depends(get_profile_repo)):
    """Fetch the profile record."""
    logger.info("Fetching profile data")
    try:
        profile = profiles.read()
    except Exception:
        logger.exception("GET /profile failed")
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to fetch profile")
    return _ok(ProfileResponse(data=ProfileData.from_entity(profile)))


@router.put(
    "",
    response_model=ProfileResponse,
    summary="Update Profile",
    description="""
    Merge the supplied fields into the profile record.

    **Request Requirements:**
    - Body is a JSON object holding any subset of `name`, `bio`, `email`, `phone`, `location`
    - Every supplied field must satisfy the same rules the edit form enforces
    - `id` and `updated_at` are ignored if present

    Omitted fields keep their current value. The last-modified timestamp is refreshed on every write.
    """,
    response_description="Envelope holding the updated profile record",
    responses={
        400: {"model": ProfileErrorResponse, "description": "Bad Request - Invalid profile data"},
    },
)
def update_profile(
    body: Any = Body(..., description="Partial profile record"),
    profiles: ProfileRepository = Depends(get_profile_repo),
):
    """Apply a partial update to the profile record."""
    if not isinstance(body, dict):
        return _error(status.HTTP_400_BAD_REQUEST, "Invalid profile data")
    errors = validate_profile(body, partial=True)
    if errors:
        logger.info("Rejected profile update: %s", errors)
        return _error(status.HTTP_400_BAD_REQUEST, "Invalid profile data", errors)
    try:
        profile = profiles.write(body)
    except Exception:
        logger.exception("PUT /profile failed")
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to update profile")
    logger.info("Profile updated at %s", profile.updated_at)
    return _ok(
        ProfileResponse(
            data=ProfileData.from_entity(profile),
            message="Profile updated successfully",
        )
    )
