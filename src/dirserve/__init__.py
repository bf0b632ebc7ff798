"""
dirserve - host a single directory tree over HTTP

Answers GET/HEAD with file contents or a generated directory listing,
OPTIONS and TRACE per HTTP semantics, and 501 for everything else.
"""

from dirserve.errors import ServerError
from dirserve.handler import RequestHandler, Response
from dirserve.options import HandlerConfig, HostedDirectory, Options
from dirserve.server import HTTPServer, try_ports

__version__ = "0.1.0"

__all__ = [
    "HTTPServer",
    "HandlerConfig",
    "HostedDirectory",
    "Options",
    "RequestHandler",
    "Response",
    "ServerError",
    "try_ports",
]
