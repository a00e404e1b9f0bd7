"""Application entry point for the assessment engine host."""

from __future__ import annotations

from threading import Event

from assessment_engine.constants.about import APP_NAME, APP_VERSION
from assessment_engine.constants.network_constants import DEFAULT_HOST, DEFAULT_PORT
from assessment_engine.core.assessment_manager import AssessmentManager
from assessment_engine.server.api_server import start_api_server, start_tick_scheduler
from assessment_engine.utils.logging_config import configure_logging


def main() -> None:
    """Initialize logging, start the tick scheduler, and serve the API."""
    logger = configure_logging()
    logger.info("Starting %s %s", APP_NAME, APP_VERSION)

    manager = AssessmentManager()
    stop_ticking = Event()
    start_tick_scheduler(manager, stop_event=stop_ticking)
    server_thread = start_api_server(manager=manager, host=DEFAULT_HOST, port=DEFAULT_PORT)
    logger.info("API available at http://%s:%d/", DEFAULT_HOST, DEFAULT_PORT)

    try:
        server_thread.join()
    except KeyboardInterrupt:
        logger.info("Shutting down")
    finally:
        stop_ticking.set()


if __name__ == "__main__":
    main()
