"""Backend entrypoint: configure logging and serve the API with uvicorn."""

from __future__ import annotations

import logging
import sys

import uvicorn

from shared import config


def configure_logging() -> None:
    logging.basicConfig(
        level=getattr(logging, config.log_level(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )


def main() -> None:
    configure_logging()
    uvicorn.run(
        "backend.api:app",
        host="0.0.0.0",
        port=config.server_port(),
        reload=config.is_development(),
    )


if __name__ == "__main__":
    main()
