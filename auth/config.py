"""Authentication configuration."""

from pydantic import BaseModel, Field


class AuthConfig(BaseModel):
    """
    Authentication configuration.

    Durations are in their natural units (minutes for short durations,
    days for longer ones) to make configuration intuitive.
    """

    # Token lifetimes
    access_token_expiry_minutes: int = Field(
        default=15,
        description="How long access tokens remain valid",
        ge=1,
        le=60,
    )
    refresh_token_expiry_days: int = Field(
        default=7,
        description="How long refresh tokens remain valid",
        ge=1,
        le=90,
    )
    jwt_algorithm: str = Field(
        default="HS256",
        description="Signing algorithm for access and refresh tokens",
    )

    # Passwords
    bcrypt_rounds: int = Field(
        default=12,
        description="bcrypt cost factor",
        ge=4,
        le=16,
    )
    password_min_length: int = Field(
        default=8,
        description="Minimum password length",
        ge=8,
        le=128,
    )
    password_reset_expiry_minutes: int = Field(
        default=60,
        description="How long password reset tokens remain valid",
        ge=5,
        le=1440,
    )

    # Rate limiting (per client IP)
    api_rate_limit_requests: int = Field(
        default=100,
        description="Max API requests per client per window",
        ge=1,
    )
    api_rate_limit_window_minutes: int = Field(
        default=15,
        description="General API rate limit window",
        ge=1,
        le=60,
    )
    login_rate_limit_attempts: int = Field(
        default=5,
        description="Max failed login/register requests per client per window",
        ge=1,
        le=20,
    )
    login_rate_limit_window_minutes: int = Field(
        default=15,
        description="Login/register rate limit window",
        ge=1,
        le=60,
    )

    # Application
    app_base_url: str = Field(
        default="http://localhost:3000",
        description="Base URL for password reset links",
    )
    app_name: str = Field(
        default="Regional Portal",
        description="Application name for emails",
    )

    @property
    def access_token_seconds(self) -> int:
        return self.access_token_expiry_minutes * 60

    @property
    def refresh_token_seconds(self) -> int:
        return self.refresh_token_expiry_days * 86400
