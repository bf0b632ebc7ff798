"""
Request handling for the hosted directory.

The handler is a pure function of (request, configuration, filesystem): it
keeps no state between requests and takes no locks, so one instance is shared
by every worker thread.
"""

import html
import logging
import os
import urllib.parse
from typing import NamedTuple

from dirserve.options import HandlerConfig
from dirserve.templates import DIRECTORY_LISTING_HTML, ERROR_HTML, html_response
from dirserve.util import guess_mime_type, path_segments, percent_decode, url_path

logger = logging.getLogger(__name__)

HTML_TYPE = "text/html;charset=utf-8"
SUPPORTED_METHODS = ("OPTIONS", "GET", "HEAD", "TRACE")

# Request framing headers; a TRACE echo gets its own
_NOT_ECHOED = {"content-length", "transfer-encoding", "connection"}


class Request(NamedTuple):
    method: str
    url: str
    headers: list[tuple[str, str]]
    remote_addr: str = "-"


class Response(NamedTuple):
    status: int
    headers: list[tuple[str, str]]
    body: bytes = b""

    def header(self, name: str) -> str | None:
        for key, value in self.headers:
            if key.lower() == name.lower():
                return value
        return None


class ResolvedPath(NamedTuple):
    path: str
    symlink: bool
    invalid: bool
    segments: list[str]


class DirectoryEntry(NamedTuple):
    name: str
    is_file: bool

    @property
    def display_name(self) -> str:
        return self.name if self.is_file else self.name + "/"


def _unsafe_segment(segment: str) -> bool:
    return segment in (".", "..") or any(c in segment for c in ("/", "\\", "\0"))


class RequestHandler:
    def __init__(self, config: HandlerConfig, error_template: str = ERROR_HTML,
                 listing_template: str = DIRECTORY_LISTING_HTML) -> None:
        self.config = config
        self.error_template = error_template
        self.listing_template = listing_template
        self._methods = {
            "OPTIONS": self.handle_options,
            "GET": self.handle_get,
            "HEAD": self.handle_head,
            "TRACE": self.handle_trace,
        }

    @property
    def root(self) -> str:
        return self.config.hosted_directory.path

    def handle(self, method: str, url: str, headers: list[tuple[str, str]], remote_addr: str = "-") -> Response:
        # Methods are case-sensitive
        req = Request(method, url, list(headers), remote_addr)
        return self._methods.get(req.method, self.handle_bad_method)(req)

    # ------------------------------ Methods ------------------------------ #
    def handle_options(self, req: Request) -> Response:
        logger.info(f"{req.remote_addr} asked for options")
        return Response(200, [("Allow", ", ".join(SUPPORTED_METHODS)), ("Content-Length", "0")])

    def handle_get(self, req: Request) -> Response:
        resolved = self.resolve(req.url)

        if resolved.invalid:
            return self.handle_invalid_url(req, "<p>Percent-encoding decoded to an invalid path segment.</p>")
        if not os.path.exists(resolved.path) or (resolved.symlink and not self.config.follow_symlinks):
            return self.handle_nonexistent(req, resolved.path)
        if os.path.isfile(resolved.path):
            return self.handle_get_file(req, resolved.path)
        if not os.path.isdir(resolved.path):
            # FIFOs, sockets, devices
            return self.handle_nonexistent(req, resolved.path)
        return self.handle_get_dir(req, resolved)

    def handle_head(self, req: Request) -> Response:
        return self.handle_get(req)._replace(body=b"")

    def handle_trace(self, req: Request) -> Response:
        logger.info(f"{req.remote_addr} requested TRACE")
        headers = [(k, v) for k, v in req.headers if k.lower() not in _NOT_ECHOED and k.lower() != "content-type"]
        headers.append(("Content-Type", "message/http"))
        headers.append(("Content-Length", "0"))
        return Response(200, headers)

    def handle_bad_method(self, req: Request) -> Response:
        logger.info(f"{req.remote_addr} used invalid request method {req.method}")
        detail = (f"<p>Unsupported request method: {html.escape(req.method)}.<br />"
                  "Supported methods: OPTIONS, GET, HEAD and TRACE.</p>")
        return self._error(501, "501 Not Implemented", "This operation was not implemented.", detail)

    # -------------------------- Path resolution -------------------------- #
    def resolve(self, url: str) -> ResolvedPath:
        """Walk the URL's segments from the hosted root.

        A segment that fails to decode marks the whole path invalid, but the
        walk goes on so symlinks further along are still noticed.
        """
        cur = self.root
        symlink = False
        invalid = False
        segments = []
        for raw in path_segments(url):
            segment = percent_decode(raw)
            if segment is None or _unsafe_segment(segment):
                invalid = True
            else:
                cur = os.path.join(cur, segment)
                segments.append(segment)
            symlink = symlink or os.path.islink(cur)
        return ResolvedPath(cur, symlink, invalid, segments)

    # ----------------------------- Responders ---------------------------- #
    def handle_invalid_url(self, req: Request, cause: str) -> Response:
        logger.info(f"{req.remote_addr} requested with invalid URL {req.url}")
        return self._error(400, "400 Bad Request", "The request URL couldn't be parsed.", cause)

    def handle_nonexistent(self, req: Request, path: str) -> Response:
        logger.info(f"{req.remote_addr} requested nonexistent file {path}")
        message = f"The requested entity \"{html.escape(url_path(req.url))}\" doesn't exist."
        return self._error(404, "404 Not Found", message, "")

    def handle_get_file(self, req: Request, path: str) -> Response:
        try:
            mime_type = guess_mime_type(path)
            with open(path, "rb") as f:
                content = f.read()
        except OSError as e:
            return self.handle_server_error(req, path, e)
        logger.info(f"{req.remote_addr} was served file {path} as {mime_type}")
        return self._respond(200, mime_type, content)

    def handle_get_dir(self, req: Request, resolved: ResolvedPath) -> Response:
        try:
            entries = self.list_directory(resolved.path)
        except OSError as e:
            return self.handle_server_error(req, resolved.path, e)

        relpath = ("/" + "/".join(resolved.segments) + "/").replace("//", "/")
        href_base = ("/" + "/".join(urllib.parse.quote(s) for s in resolved.segments) + "/").replace("//", "/")
        items = "".join(
            f"<li><a href=\"{href_base}{urllib.parse.quote(entry.display_name)}\">{html.escape(entry.display_name)}</a></li>\n"
            for entry in entries
        )
        logger.info(f"{req.remote_addr} was served directory listing for {resolved.path}")
        return self._respond(200, HTML_TYPE, html_response(self.listing_template, [html.escape(relpath), items]))

    def handle_server_error(self, req: Request, path: str, error: OSError) -> Response:
        logger.error(f"{req.remote_addr} hit a filesystem error on {path}: {error}")
        return self._error(500, "500 Internal Server Error", "The requested entity couldn't be read.", "")

    def list_directory(self, path: str) -> list[DirectoryEntry]:
        """Visible entries of `path`, sorted by name.

        Without follow-symlinks, symlinked entries are left out entirely.
        With it, dangling symlinks are left out since following them can
        only lead to a 404. Special files and names that are not UTF-8 are
        left out too: no URL leads back to them.
        """
        entries = []
        with os.scandir(path) as it:
            for entry in it:
                if entry.is_symlink():
                    if not self.config.follow_symlinks or not os.path.exists(entry.path):
                        continue
                if not entry.is_file() and not entry.is_dir():
                    continue
                try:
                    entry.name.encode("utf-8")
                except UnicodeEncodeError:
                    logger.warning(f"Skipping entry with a non-UTF-8 name in {path}: {entry.name!r}")
                    continue
                entries.append(DirectoryEntry(entry.name, entry.is_file()))
        entries.sort(key=lambda e: e.name)
        return entries

    def _error(self, status: int, title: str, message: str, detail: str) -> Response:
        return self._respond(status, HTML_TYPE, html_response(self.error_template, [title, message, detail]))

    def _respond(self, status: int, content_type: str, body: bytes) -> Response:
        return Response(status, [("Content-Type", content_type), ("Content-Length", str(len(body)))], body)
