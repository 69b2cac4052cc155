"""Password policy, email syntax checks and bcrypt hashing."""

import re

import bcrypt
from email_validator import EmailNotValidError, validate_email

from auth.config import AuthConfig
from auth.exceptions import ValidationError

PASSWORD_RULES_MESSAGE = (
    "Password must be at least {min_length} characters with uppercase, "
    "lowercase, and number"
)

# Burundi mobile format: +257 followed by 8 digits
PHONE_PATTERN = re.compile(r"^\+257[0-9]{8}$")

# bcrypt only looks at the first 72 bytes
MAX_PASSWORD_BYTES = 72


def normalize_email(email: str) -> str:
    """Lowercase and strip an email for storage and lookups."""
    return email.strip().lower()


def check_email(email: str) -> str:
    """Validate email syntax and return the normalized address.

    Raises:
        ValidationError: If the address is not a syntactically valid email.
    """
    if not email or not isinstance(email, str):
        raise ValidationError("Invalid email format")
    try:
        validate_email(email.strip(), check_deliverability=False)
    except EmailNotValidError:
        raise ValidationError("Invalid email format")
    return normalize_email(email)


def check_phone(phone: str) -> str:
    """Validate phone format.

    Raises:
        ValidationError: If the number is not in +257XXXXXXXX form.
    """
    phone = phone.strip().replace(" ", "")
    if not PHONE_PATTERN.match(phone):
        raise ValidationError("Invalid phone number format")
    return phone


class PasswordHasher:
    """bcrypt hashing with a configurable cost factor and strength policy."""

    def __init__(self, config: AuthConfig):
        self._rounds = config.bcrypt_rounds
        self._min_length = config.password_min_length
        self._dummy_hash: bytes | None = None

    def check_strength(self, password: str) -> None:
        """
        Enforce minimum length plus one uppercase, one lowercase and one digit.

        Raises:
            ValidationError: If the password is too weak.
        """
        if (
            not isinstance(password, str)
            or len(password) < self._min_length
            or not any(c.islower() for c in password)
            or not any(c.isupper() for c in password)
            or not any(c.isdigit() for c in password)
        ):
            raise ValidationError(
                PASSWORD_RULES_MESSAGE.format(min_length=self._min_length)
            )
        if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
            raise ValidationError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")

    def hash(self, password: str) -> str:
        """Hash password with bcrypt at the configured cost."""
        return bcrypt.hashpw(
            password.encode("utf-8"), bcrypt.gensalt(rounds=self._rounds)
        ).decode("utf-8")

    def verify(self, password: str, password_hash: str) -> bool:
        """Check password against stored hash. Malformed hashes never match."""
        encoded = password.encode("utf-8")
        if len(encoded) > MAX_PASSWORD_BYTES:
            return False
        try:
            return bcrypt.checkpw(encoded, password_hash.encode("utf-8"))
        except ValueError:
            return False

    def verify_dummy(self, password: str) -> None:
        """Spend the same time as a real verify when there is no user to check."""
        if self._dummy_hash is None:
            self._dummy_hash = bcrypt.hashpw(b"dummy-password", bcrypt.gensalt(rounds=self._rounds))
        bcrypt.checkpw(password.encode("utf-8")[:MAX_PASSWORD_BYTES], self._dummy_hash)
