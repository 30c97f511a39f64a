#!/usr/bin/env python3
"""
Script to run the Books API server.

The server drains on SIGINT/SIGTERM: it stops accepting connections and
gives in-flight requests up to ``shutdown_timeout`` seconds to finish.
"""

import signal
import sys
from typing import Optional

import structlog
import uvicorn
from fastapi import FastAPI

from api.config import APIConfig, config
from api.main import create_app
from utilities.logger import setup_logging

logger = structlog.get_logger(__name__)


class BooksServer(uvicorn.Server):
    """uvicorn server that logs when draining begins and how it ended."""

    def __init__(self, uvicorn_config: uvicorn.Config, shutdown_timeout: int):
        super().__init__(uvicorn_config)
        self.shutdown_timeout = shutdown_timeout
        self.drained = False

    def handle_exit(self, sig, frame):
        if not self.should_exit:
            logger.info(
                "Shutdown signal received, draining",
                signal=signal.Signals(sig).name,
                state="draining",
                timeout_seconds=self.shutdown_timeout,
            )
        else:
            logger.warning("Second shutdown signal received, forcing exit", state="draining")
        super().handle_exit(sig, frame)

    async def _wait_tasks_to_complete(self) -> None:
        # uvicorn cancels this wait once timeout_graceful_shutdown runs out
        await super()._wait_tasks_to_complete()
        self.drained = True

    @property
    def drain_outcome(self) -> Optional[str]:
        """
        How the last drain ended: "clean", "forced", or None if it never ran.

        Forced means a second signal cut the wait short, or the grace period
        ran out and uvicorn cancelled the requests still in flight.
        """
        if not self.should_exit:
            return None
        if self.force_exit or not self.drained:
            return "forced"
        return "clean"


def build_server(settings: APIConfig = config, app: Optional[FastAPI] = None) -> BooksServer:
    """Create the server for the configured bind address."""
    uvicorn_config = uvicorn.Config(
        app if app is not None else create_app(settings),
        host=settings.host,
        port=settings.port,
        log_config=None,
        log_level=settings.log_level.lower(),
        access_log=False,
        timeout_keep_alive=settings.keep_alive_timeout,
        timeout_graceful_shutdown=settings.shutdown_timeout,
    )
    return BooksServer(uvicorn_config, settings.shutdown_timeout)


def main(settings: APIConfig = config) -> int:
    """Run the API server until it is stopped."""
    setup_logging(
        log_level=settings.log_level,
        log_format=settings.log_format,
        log_file=settings.log_file,
        debug=settings.debug
    )
    logger.info(
        "Starting Books API server",
        host=settings.host,
        port=settings.port,
        database=settings.mongodb_database,
        collection=settings.mongodb_collection,
    )

    server = build_server(settings)
    server.run()

    if not server.started:
        logger.error("Books API server failed to start", host=settings.host, port=settings.port)
        return 1

    if server.drain_outcome == "forced":
        logger.warning(
            "Books API server stopped before in-flight requests finished",
            state="stopped",
            drain="forced",
            timeout_seconds=settings.shutdown_timeout,
        )
    else:
        logger.info("Books API server drained", state="stopped", drain=server.drain_outcome)
    return 0


if __name__ == "__main__":
    sys.exit(main())
