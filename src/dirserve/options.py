"""
Command-line and environment configuration.

Every flag falls back to a DIRSERVE_* environment variable, so the server can
be configured the same way from a shell or a container.
"""

import argparse
import os
from typing import NamedTuple

from dirserve.errors import ServerError

DEFAULT_PORT_RANGE = (8000, 65536)


class HostedDirectory(NamedTuple):
    # URL-facing name (the directory as given) and its canonical absolute path
    alias: str
    path: str


class HandlerConfig(NamedTuple):
    hosted_directory: HostedDirectory
    follow_symlinks: bool = False


class Options(NamedTuple):
    hosted_directory: HostedDirectory
    port: int | None
    host: str
    workers: int
    follow_symlinks: bool
    log_level: str

    @property
    def handler_config(self) -> HandlerConfig:
        return HandlerConfig(self.hosted_directory, self.follow_symlinks)

    @property
    def port_range(self) -> tuple[int, int]:
        if self.port is None:
            return DEFAULT_PORT_RANGE
        return self.port, self.port + 1


def _env_flag(name: str) -> bool:
    return os.getenv(name, "").strip().lower() in ("1", "true", "yes", "on")


def hosted_directory(directory: str) -> HostedDirectory:
    """Validate `directory` and pair it with its canonical path."""
    if not os.path.exists(directory):
        raise ServerError("hosted directory", "find", f"\"{directory}\" doesn't exist", exit_code=2)
    if not os.path.isdir(directory):
        raise ServerError("hosted directory", "find", f"\"{directory}\" is not a directory", exit_code=2)
    return HostedDirectory(directory, os.path.realpath(directory))


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="dirserve", description="Host a directory over HTTP")
    parser.add_argument("directory", nargs="?", default=".", help="Directory to host (default: current directory)")
    parser.add_argument("-p", "--port", type=int, default=os.getenv("DIRSERVE_PORT") or None,
                        help="Port to use; without it the first free port from 8000 up is taken")
    parser.add_argument("--host", default=os.getenv("DIRSERVE_HOST", "0.0.0.0"))
    parser.add_argument("--workers", type=int, default=os.getenv("DIRSERVE_WORKERS", "8"))
    parser.add_argument("-s", "--follow-symlinks", action="store_true", default=_env_flag("DIRSERVE_FOLLOW_SYMLINKS"),
                        help="Serve paths that go through symlinks")
    parser.add_argument("--log-level", default=os.getenv("DIRSERVE_LOG_LEVEL", "INFO"),
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"], type=str.upper)
    return parser.parse_args(argv)


def load_options(argv: list[str]) -> Options:
    args = parse_args(argv)
    if args.port is not None and not 0 < args.port < 65536:
        raise ServerError("port", "parse", f"{args.port} is out of range", exit_code=2)
    return Options(
        hosted_directory=hosted_directory(args.directory),
        port=args.port,
        host=args.host,
        workers=max(1, args.workers),
        follow_symlinks=args.follow_symlinks,
        log_level=args.log_level,
    )
