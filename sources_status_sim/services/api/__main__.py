"""Module entrypoint for running the status simulator with shared settings."""

import logging

import uvicorn

from sources_status_sim.core.config import apply_clowder_config, get_settings
from sources_status_sim.core.logging import configure_logging


def main() -> int:
    """Run the API service using configured host and port."""

    settings = get_settings()
    configure_logging(settings.LOG_LEVEL)
    try:
        settings = apply_clowder_config(settings)
    except (OSError, ValueError) as exc:
        logging.getLogger(__name__).critical("startup_failed", extra={"error": str(exc)})
        return 1

    # lifespan "on" so a failed bootstrap aborts startup instead of being skipped
    uvicorn.run(
        "sources_status_sim.services.api.main:app",
        host=settings.HOST,
        port=settings.PORT,
        lifespan="on",
        log_config=None,
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
