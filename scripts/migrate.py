"""Apply SQL migrations from migrations/ in filename order.

Usage:
    python -m scripts.migrate [--dir migrations]

Every statement uses IF NOT EXISTS, so re-running is harmless.
"""

import argparse
import logging
from pathlib import Path

from dotenv import load_dotenv

from clients.postgres_client import PostgresClient
from clients.vault_client import get_database_url

logger = logging.getLogger(__name__)

DEFAULT_DIR = Path(__file__).resolve().parent.parent / "migrations"


def migration_files(directory: Path) -> list[Path]:
    """SQL files in apply order."""
    return sorted(directory.glob("*.sql"))


def apply_migrations(postgres: PostgresClient, directory: Path) -> list[str]:
    """Run each migration file; returns the names applied."""
    applied = []
    for path in migration_files(directory):
        logger.info(f"Applying {path.name}")
        postgres.execute(path.read_text())
        applied.append(path.name)
    return applied


def main() -> None:
    parser = argparse.ArgumentParser(description="Apply portal schema migrations")
    parser.add_argument("--dir", type=Path, default=DEFAULT_DIR, help="Directory of .sql files")
    args = parser.parse_args()

    load_dotenv()
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    postgres = PostgresClient(get_database_url(), minconn=1, maxconn=1)
    try:
        applied = apply_migrations(postgres, args.dir)
        logger.info(f"Applied {len(applied)} migration(s)")
    finally:
        postgres.close()


if __name__ == "__main__":
    main()
