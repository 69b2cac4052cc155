"""HTTP routes for authentication.

Handlers are plain functions: FastAPI runs them on its worker threadpool,
so bcrypt hashing and blocking store/cache calls never stall the event loop.
"""

from fastapi import APIRouter, Depends, Request

from api.base import request_id_of, success_response, render
from auth.security_middleware import current_user
from auth.service import AuthService
from auth.types import (
    ChangePasswordRequest,
    LoginRequest,
    LogoutRequest,
    PasswordResetRequest,
    RefreshRequest,
    RegisterRequest,
    ResetPasswordRequest,
    User,
)
from utils.network import get_client_ip


def create_auth_router(auth_service: AuthService) -> APIRouter:
    """Create auth router with injected service."""
    router = APIRouter(tags=["auth"])

    @router.post("/register", status_code=201)
    def register(request: Request, body: RegisterRequest):
        """Register new user. Returns the user and a token pair."""
        result = auth_service.register(
            email=body.email,
            password=body.password,
            phone=body.phone,
            full_name=body.full_name,
            ip_address=get_client_ip(request),
            user_agent=request.headers.get("User-Agent"),
        )
        return render(
            success_response(result, "Registration successful", request_id_of(request)),
            status_code=201,
        )

    @router.post("/login")
    def login(request: Request, body: LoginRequest):
        """Login with email and password."""
        result = auth_service.login(
            email=body.email,
            password=body.password,
            ip_address=get_client_ip(request),
            user_agent=request.headers.get("User-Agent"),
        )
        return render(success_response(result, "Login successful", request_id_of(request)))

    @router.post("/refresh")
    def refresh(request: Request, body: RefreshRequest):
        """Exchange a refresh token for a new token pair."""
        tokens = auth_service.refresh(body.refresh_token, ip_address=get_client_ip(request))
        return render(success_response(tokens, "Token refreshed", request_id_of(request)))

    @router.post("/logout")
    def logout(request: Request, body: LogoutRequest, user: User = Depends(current_user)):
        """Logout - blacklist the refresh token."""
        auth_service.logout(user.id, body.refresh_token, ip_address=get_client_ip(request))
        return render(success_response(None, "Logout successful", request_id_of(request)))

    @router.post("/change-password")
    def change_password(
        request: Request,
        body: ChangePasswordRequest,
        user: User = Depends(current_user),
    ):
        """Change password for the authenticated user."""
        auth_service.change_password(user.id, body.current_password, body.new_password)
        return render(success_response(None, "Password changed successfully", request_id_of(request)))

    @router.post("/request-password-reset")
    def request_password_reset(request: Request, body: PasswordResetRequest):
        """Request password reset email. Same response whether or not the email exists."""
        auth_service.request_password_reset(body.email, ip_address=get_client_ip(request))
        return render(
            success_response(
                None,
                "If the email is registered, a password reset link has been sent",
                request_id_of(request),
            )
        )

    @router.post("/reset-password")
    def reset_password(request: Request, body: ResetPasswordRequest):
        """Reset password with a one-time token."""
        auth_service.reset_password(body.token, body.new_password, ip_address=get_client_ip(request))
        return render(success_response(None, "Password reset successful", request_id_of(request)))

    @router.get("/profile")
    def get_profile(request: Request, user: User = Depends(current_user)):
        """Get current user profile."""
        profile = auth_service.get_profile(user.id)
        return render(success_response(profile, "Profile retrieved", request_id_of(request)))

    return router
