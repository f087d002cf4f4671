import argparse
import logging
import os

import uvicorn

from config import Settings
from logging_setup import setup_logging

logger = logging.getLogger(__name__)


def main() -> int:
    settings = Settings.from_env()

    parser = argparse.ArgumentParser(description="Run the site crawler API.")
    parser.add_argument("--host", default=settings.host, help=f"Bind address (default: {settings.host})")
    parser.add_argument("--port", type=int, default=settings.port, help=f"Port (default: {settings.port})")
    parser.add_argument("--log-level", default=settings.log_level, help="Log level (default: from env or INFO)")
    args = parser.parse_args()

    setup_logging(args.log_level, settings.log_file)
    logger.info("API listening on %s:%d (storage=%s)", args.host, args.port, settings.storage)

    # Work from the project directory so "api.main" resolves
    os.chdir(os.path.dirname(os.path.abspath(__file__)))
    uvicorn.run("api.main:app", host=args.host, port=args.port, log_config=None)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
