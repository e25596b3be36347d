"""
CLI entry point for DDNS Reconciler.

This module provides the command-line interface for starting the supervisor
and, when enabled, the status server.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import signal
import sys
from typing import TYPE_CHECKING

import uvicorn

from ddns_reconciler.config import ConfigValidationError, load_config, parse_args
from ddns_reconciler.logging_config import build_uvicorn_log_config, setup_logging
from ddns_reconciler.server import app, set_supervisor
from ddns_reconciler.supervisor import Supervisor

if TYPE_CHECKING:
    from ddns_reconciler.config import Config


logger = logging.getLogger(__name__)


class StatusServer(uvicorn.Server):
    """Uvicorn server that leaves signal handling to the supervisor."""

    @contextlib.contextmanager
    def capture_signals(self):  # type: ignore[override]  # noqa: ANN201
        yield


async def run_status_server(server: uvicorn.Server, supervisor: Supervisor) -> bool:
    """
    Serve the status API until asked to exit.

    Uvicorn calls ``sys.exit`` when startup fails (for example when the port
    is already in use). That exit is turned into a supervisor stop.

    Returns
    -------
    bool
        False if the server failed to start, True otherwise.
    """
    try:
        await server.serve()
    except SystemExit:
        logger.critical(
            "Status server failed to start on %s:%d, stopping.",
            server.config.host,
            server.config.port,
        )
        supervisor.stop()
        return False
    return True


async def serve(config: Config) -> int:
    """
    Run the supervisor (and the status server) until a stop signal.

    Parameters
    ----------
    config : Config
        Application configuration.

    Returns
    -------
    int
        Process exit code: 1 if the status server failed to start, else 0.
    """
    supervisor = Supervisor(config)

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        with contextlib.suppress(NotImplementedError):
            loop.add_signal_handler(sig, supervisor.stop)

    if not config.server.enabled:
        await supervisor.run()
        return 0

    set_supervisor(supervisor)
    server = StatusServer(
        uvicorn.Config(
            app,
            host=config.server.host,
            port=config.server.port,
            log_level=config.logging.level.lower(),
            access_log=True,
            log_config=build_uvicorn_log_config(config.logging),
        ),
    )
    server_task = asyncio.create_task(
        run_status_server(server, supervisor),
        name="status-server",
    )
    try:
        await supervisor.run()
    finally:
        server.should_exit = True
        started = await server_task
        set_supervisor(None)
    return 0 if started else 1


def main() -> None:
    """
    Start DDNS Reconciler.

    Parse command-line arguments, load configuration, and run the supervisor.
    """
    args = parse_args()
    try:
        config = load_config(args)
    except ConfigValidationError as e:
        print(e, file=sys.stderr)  # noqa: T201
        sys.exit(1)

    setup_logging(config.logging)

    exit_code = 0
    with contextlib.suppress(KeyboardInterrupt):
        exit_code = asyncio.run(serve(config))
    if exit_code:
        sys.exit(exit_code)


if __name__ == "__main__":
    main()
