"""HTTP routes for user profiles.

All routes require authentication (AuthMiddleware). The admin lookup is
cached; profile writes invalidate that user's cached entries.
"""

import logging
from typing import Any
from uuid import UUID

from fastapi import APIRouter, Body, Depends, Request

from api.base import request_id_of, success_response, render
from api.cache import ResponseCache
from auth.database import AuthDatabase
from auth.exceptions import NotFoundError, ValidationError
from auth.passwords import check_phone
from auth.security_middleware import current_user, require_roles
from auth.types import ProfileUpdateRequest, User, UserRole

logger = logging.getLogger(__name__)


class ProfileService:
    """Read and update user profiles."""

    def __init__(self, auth_db: AuthDatabase):
        self._auth_db = auth_db

    def get_user(self, user_id: UUID) -> User:
        """Raises NotFoundError if the user doesn't exist."""
        record = self._auth_db.get_user_by_id(user_id)
        if record is None:
            raise NotFoundError("User")
        return record.sanitize()

    def update_profile(self, user_id: UUID, update: ProfileUpdateRequest) -> User:
        """Update phone and/or full name; omitted fields stay as they are."""
        phone = check_phone(update.phone) if update.phone is not None else None
        full_name = update.full_name.strip() if update.full_name is not None else None
        if full_name == "":
            raise ValidationError("Full name cannot be empty")

        if phone is None and full_name is None:
            return self.get_user(user_id)

        user = self._auth_db.update_profile(user_id, phone=phone, full_name=full_name)
        if user is None:
            raise NotFoundError("User")
        logger.info(f"Profile updated for user: {user_id}")
        return user

    def update_preferences(self, user_id: UUID, preferences: dict[str, Any]) -> User:
        """Merge preferences into the stored map (top-level keys replace)."""
        user = self._auth_db.merge_preferences(user_id, preferences)
        if user is None:
            raise NotFoundError("User")
        return user


def create_users_router(
    profile_service: ProfileService,
    cache: ResponseCache,
    api_prefix: str,
) -> APIRouter:
    """Create users router with injected service and response cache."""
    router = APIRouter(tags=["users"])

    def _cache_path(user_id: UUID) -> str:
        return f"{api_prefix}/users/{user_id}"

    def _invalidate(user_id: UUID) -> None:
        cache.invalidate(_cache_path(user_id))

    @router.get("/me")
    def get_me(request: Request, user: User = Depends(current_user)):
        """Get current user profile."""
        profile = profile_service.get_user(user.id)
        return render(success_response(profile, "Profile retrieved", request_id_of(request)))

    @router.put("/me")
    def update_me(
        request: Request,
        body: ProfileUpdateRequest,
        user: User = Depends(current_user),
    ):
        """Update phone and/or full name."""
        profile = profile_service.update_profile(user.id, body)
        _invalidate(user.id)
        return render(success_response(profile, "Profile updated", request_id_of(request)))

    @router.put("/me/preferences")
    def update_preferences(
        request: Request,
        preferences: dict[str, Any] = Body(...),
        user: User = Depends(current_user),
    ):
        """Merge preferences into the stored map."""
        profile = profile_service.update_preferences(user.id, preferences)
        _invalidate(user.id)
        return render(success_response(profile, "Preferences updated", request_id_of(request)))

    @router.get("/{user_id}", dependencies=[Depends(require_roles(UserRole.ADMIN))])
    def get_user(request: Request, user_id: UUID):
        """Admin lookup of any user (cached)."""
        return cache.serve(
            request,
            lambda: success_response(
                profile_service.get_user(user_id), "User retrieved", request_id_of(request)
            ),
            path=_cache_path(user_id),
        )

    return router
