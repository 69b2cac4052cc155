"""Create the initial administrator account.

Usage:
    PORTAL_ADMIN_PASSWORD=... python -m scripts.seed_admin --email admin@example.com

The password is read from the environment, never from argv. An existing
account with the same email is left untouched.
"""

import argparse
import logging
import os

from dotenv import load_dotenv

from auth.config import AuthConfig
from auth.database import AuthDatabase
from auth.exceptions import ConflictError
from auth.passwords import PasswordHasher, check_email, check_phone
from auth.types import User, UserRole
from clients.postgres_client import PostgresClient
from clients.vault_client import get_database_url

logger = logging.getLogger(__name__)


def seed_admin(
    auth_db: AuthDatabase,
    hasher: PasswordHasher,
    email: str,
    password: str,
    full_name: str = "System Administrator",
    phone: str | None = None,
) -> User | None:
    """Insert an admin user. Returns None if the email is already registered.

    Raises:
        ValidationError: Invalid email, phone, or weak password.
    """
    email = check_email(email)
    if phone is not None:
        phone = check_phone(phone)
    hasher.check_strength(password)

    try:
        record = auth_db.create_user(
            email=email,
            password_hash=hasher.hash(password),
            phone=phone,
            full_name=full_name,
            role=UserRole.ADMIN,
        )
    except ConflictError:
        logger.info(f"Admin {email} already exists, skipping")
        return None

    logger.info(f"Admin created: {record.id}")
    return record.sanitize()


def main() -> None:
    parser = argparse.ArgumentParser(description="Seed the portal administrator")
    parser.add_argument("--email", required=True)
    parser.add_argument("--full-name", default="System Administrator")
    parser.add_argument("--phone", default=None)
    args = parser.parse_args()

    load_dotenv()
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    password = os.getenv("PORTAL_ADMIN_PASSWORD")
    if not password:
        raise SystemExit("PORTAL_ADMIN_PASSWORD environment variable is required")

    postgres = PostgresClient(get_database_url(), minconn=1, maxconn=1)
    try:
        seed_admin(
            AuthDatabase(postgres),
            PasswordHasher(AuthConfig()),
            email=args.email,
            password=password,
            full_name=args.full_name,
            phone=args.phone,
        )
    finally:
        postgres.close()


if __name__ == "__main__":
    main()
