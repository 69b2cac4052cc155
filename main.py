"""Entry point: load .env, configure logging, serve the portal API."""

import logging
import os

import uvicorn
from dotenv import load_dotenv

load_dotenv()

from api.app import build_app_from_vault

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO"),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)


def main() -> None:
    app = build_app_from_vault()
    uvicorn.run(
        app,
        host=os.getenv("PORTAL_HOST", "0.0.0.0"),
        port=int(os.getenv("PORTAL_PORT", "8000")),
        log_config=None,
    )


if __name__ == "__main__":
    main()
