"""Command-line interface for rshell.

Loads the configuration, wires the connection manager, launcher and
supervisor into a :class:`~rshell.shell.dispatcher.Shell`, and runs it.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="rshell",
        description="Command shell with a remote execution relay",
    )
    parser.add_argument(
        "-c", "--config",
        type=Path,
        default=None,
        help="Path to the configuration file (default: ./shconfig; .yaml/.yml for YAML)",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--host", type=str, default=None,
        help="Remote execution server host (overrides RHOST)",
    )
    parser.add_argument(
        "--port", type=int, default=None,
        help="Remote execution server port (overrides RPORT)",
    )
    parser.add_argument(
        "--keepalive", action="store_true",
        help="Start with keepalive mode enabled",
    )
    return parser.parse_args(argv)


def _apply_remote_overrides(settings, host: str | None, port: int | None) -> None:
    """Apply --host/--port; an invalid override keeps the configured value."""
    from pydantic import ValidationError

    from rshell.config.settings import RemoteConfig

    update = {}
    if host is not None:
        update["host"] = host
    if port is not None:
        update["port"] = port
    if not update:
        return

    try:
        settings.remote = RemoteConfig.model_validate(
            settings.remote.model_copy(update=update).model_dump()
        )
    except ValidationError as e:
        logger.warning(
            "Invalid --host/--port override, keeping %s:%d: %s",
            settings.remote.host, settings.remote.port, e,
        )


async def _run_shell(settings, keepalive: bool = False) -> int:
    """Build the shell components and run the command loop."""
    from rshell.local.launcher import ProcessLauncher
    from rshell.local.supervisor import Supervisor
    from rshell.remote.connection import ConnectionManager
    from rshell.shell.dispatcher import Shell

    manager = ConnectionManager(
        host=settings.remote.host,
        port=settings.remote.port,
        keepalive=keepalive,
        connect_timeout=settings.remote.connect_timeout,
    )
    launcher = ProcessLauncher(search_path=settings.shell.search_path, env=os.environ)
    shell = Shell(settings, manager, launcher, Supervisor())
    return await shell.run()


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the rshell CLI."""
    args = parse_args(argv)

    from rshell.config.settings import load_settings
    from rshell.utils.logging import setup_logging

    settings = load_settings(args.config)

    if args.verbose:
        settings.logging.level = "DEBUG"

    setup_logging(settings.logging)
    _apply_remote_overrides(settings, args.host, args.port)
    logger.debug(
        "Starting shell against %s:%d", settings.remote.host, settings.remote.port,
    )

    try:
        return asyncio.run(_run_shell(settings, keepalive=args.keepalive))
    except KeyboardInterrupt:
        print("\nBye")
        return 0


if __name__ == "__main__":
    sys.exit(main())
