#!/usr/bin/env python3
"""
dirserve HTTP server

Features:
- Thread pool for handling multiple connections concurrently
- One request per connection; every response carries Connection: close
- Binds to the first free port of a range when no port is given
"""

import errno
import logging
import socket
import sys
import threading
from concurrent.futures import ThreadPoolExecutor
from http import HTTPStatus

from dirserve.errors import ServerError
from dirserve.handler import RequestHandler, Response
from dirserve.options import load_options
from dirserve.templates import html_response

logger = logging.getLogger(__name__)

MAX_HEADER_BYTES = 64 * 1024
CLIENT_TIMEOUT = 10.0


class HTTPServer:
    def __init__(self, handler: RequestHandler, host: str = "0.0.0.0", port: int = 8000, workers: int = 8) -> None:
        self.handler = handler
        self.host = host
        self.port = port
        self.workers = max(1, workers)

        self.socket: socket.socket | None = None
        self.executor: ThreadPoolExecutor | None = None
        self._stopped = threading.Event()

    # ---------------------- Concurrency & Lifecycle ---------------------- #
    def bind(self) -> None:
        """Bind and listen; the OSError of a failed bind is left to the caller."""
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        # Allow quick restarts
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        try:
            sock.bind((self.host, self.port))
            sock.listen(128)
        except OSError:
            sock.close()
            raise
        # Wake up periodically so shutdown() is noticed
        sock.settimeout(0.5)
        self.socket = sock
        self.port = sock.getsockname()[1]

    def serve_forever(self) -> None:
        if self.socket is None:
            self.bind()
        self.executor = ThreadPoolExecutor(max_workers=self.workers)
        try:
            while not self._stopped.is_set():
                try:
                    client_socket, client_addr = self.socket.accept()
                except socket.timeout:
                    continue
                except OSError:
                    if self._stopped.is_set():
                        break
                    raise
                # Submit each connection to the pool
                self.executor.submit(self._handle_connection, client_socket, client_addr)
        finally:
            self.executor.shutdown(wait=True, cancel_futures=True)
            self.server_close()

    def shutdown(self) -> None:
        self._stopped.set()

    def server_close(self) -> None:
        if self.socket:
            self.socket.close()
            self.socket = None

    # --------------------------- Core Handling --------------------------- #
    def _handle_connection(self, client_socket: socket.socket, client_addr) -> None:
        remote_addr = f"{client_addr[0]}:{client_addr[1]}"
        try:
            client_socket.settimeout(CLIENT_TIMEOUT)
            request_data = self._read_head(client_socket)
            if not request_data:
                return

            parsed = parse_request(request_data)
            if parsed is None:
                logger.info(f"{remote_addr} sent a malformed request")
                body = html_response(self.handler.error_template, ["400 Bad Request", "The request couldn't be parsed.", ""])
                response = Response(400, [("Content-Type", "text/html;charset=utf-8")], body)
            else:
                method, target, headers = parsed
                response = self.handler.handle(method, target, headers, remote_addr)
            self.send_response(client_socket, response)
        except OSError as e:
            logger.error(f"{remote_addr} connection error: {e}")
        except Exception:
            logger.exception(f"{remote_addr} request failed")
            try:
                body = html_response(self.handler.error_template, ["500 Internal Server Error", "The request couldn't be served.", ""])
                self.send_response(client_socket, Response(500, [("Content-Type", "text/html;charset=utf-8")], body))
            except OSError:
                pass
        finally:
            client_socket.close()

    def _read_head(self, client_socket: socket.socket) -> bytes:
        data = b""
        while b"\r\n\r\n" not in data and len(data) < MAX_HEADER_BYTES:
            chunk = client_socket.recv(4096)
            if not chunk:
                break
            data += chunk
        return data

    def send_response(self, client_socket: socket.socket, response: Response) -> None:
        try:
            reason = HTTPStatus(response.status).phrase
        except ValueError:
            reason = ""

        lines = [f"HTTP/1.1 {response.status} {reason}"]
        lines += [f"{name}: {value}" for name, value in response.headers]
        if response.header("Content-Length") is None:
            lines.append(f"Content-Length: {len(response.body)}")
        lines += ["Server: dirserve", "Connection: close", "", ""]

        client_socket.sendall("\r\n".join(lines).encode("latin-1", errors="replace"))
        if response.body:
            client_socket.sendall(response.body)


def parse_request(data: bytes) -> tuple[str, str, list[tuple[str, str]]] | None:
    """Split a raw request head into (method, target, headers), or None if malformed."""
    head = data.split(b"\r\n\r\n", 1)[0].decode("latin-1")
    lines = head.split("\r\n")
    parts = lines[0].split()
    if len(parts) != 3 or not parts[2].startswith("HTTP/"):
        return None

    method, target, _ = parts
    headers = []
    for line in lines[1:]:
        if ":" not in line:
            return None
        name, value = line.split(":", 1)
        headers.append((name.strip(), value.strip()))
    return method, target, headers


def try_ports(handler: RequestHandler, from_port: int, up_to: int, host: str = "0.0.0.0", workers: int = 8) -> HTTPServer:
    """Bind to the first free port in [from_port, up_to).

    An address-in-use failure moves on to the next port; any other bind
    failure is fatal straight away.
    """
    for port in range(from_port, up_to):
        server = HTTPServer(handler, host, port, workers)
        try:
            server.bind()
        except OSError as e:
            if e.errno != errno.EADDRINUSE:
                logger.error(f"Binding port {port} failed: {e}")
                raise ServerError("server", "start") from e
            logger.debug(f"Port {port} is in use")
            continue
        return server

    raise ServerError("server", "start", "no free ports")


def main(argv: list[str] | None = None) -> None:
    argv = sys.argv[1:] if argv is None else argv
    try:
        opts = load_options(argv)
        logging.basicConfig(level=opts.log_level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

        handler = RequestHandler(opts.handler_config)
        server = try_ports(handler, *opts.port_range, host=opts.host, workers=opts.workers)
    except ServerError as e:
        logging.basicConfig(level=logging.INFO)
        logger.error(str(e))
        sys.exit(e.exit_code)

    logger.info(f"Hosting \"{opts.hosted_directory.alias}\" on port {server.port}...")
    logger.info(f"Workers={server.workers}, follow symlinks={opts.follow_symlinks}")
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        logger.info("Shutting down...")
        server.shutdown()


if __name__ == "__main__":
    main()
