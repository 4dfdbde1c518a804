"""Entrypoint for the record-ai service."""

from __future__ import annotations

import os

from record_ai.common.config import load_app_config
from record_ai.common.structured_logging import configure_logging


def main() -> None:
    """Load configuration, set up logging and serve the API."""
    import uvicorn

    from record_ai.api.app import create_app

    config = load_app_config()
    configure_logging(
        config.logging.level,
        json_logs=config.logging.json_logs,
        service_name=config.logging.service_name,
    )

    # Logging is already configured; uvicorn must not replace it.
    uvicorn.run(
        create_app(config, configure_logs=False),
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
        log_config=None,
    )


if __name__ == "__main__":
    main()
