"""
Tests for binding to the first free port of a range.
"""

import errno
import socket

import pytest

from dirserve.errors import ServerError
from dirserve.server import HTTPServer, try_ports

HOST = "127.0.0.1"


def occupy(port):
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind((HOST, port))
    sock.listen(1)
    return sock


@pytest.fixture
def busy_pair():
    """Find N where N and N+1 can be occupied and N+2 is free; hold N and N+1."""
    for base in range(21000, 30000, 7):
        held = []
        try:
            held.append(occupy(base))
            held.append(occupy(base + 1))
            probe = occupy(base + 2)
            probe.close()
        except OSError:
            for sock in held:
                sock.close()
            continue
        yield base
        for sock in held:
            sock.close()
        return
    pytest.skip("no three consecutive free ports found")


@pytest.fixture
def attempted(monkeypatch):
    ports = []
    original = HTTPServer.bind

    def recording_bind(self):
        ports.append(self.port)
        original(self)

    monkeypatch.setattr(HTTPServer, "bind", recording_bind)
    return ports


def test_skips_busy_ports(busy_pair, attempted, tree, make_handler):
    server = try_ports(make_handler(tree), busy_pair, busy_pair + 10, host=HOST)
    try:
        assert server.port == busy_pair + 2
        assert attempted == [busy_pair, busy_pair + 1, busy_pair + 2], f"tried {attempted}"
    finally:
        server.server_close()


def test_first_port_wins_when_free(busy_pair, attempted, tree, make_handler):
    server = try_ports(make_handler(tree), busy_pair + 2, busy_pair + 10, host=HOST)
    try:
        assert server.port == busy_pair + 2
        assert attempted == [busy_pair + 2]
    finally:
        server.server_close()


def test_exhausted_range(busy_pair, tree, make_handler):
    with pytest.raises(ServerError) as exc_info:
        try_ports(make_handler(tree), busy_pair, busy_pair + 2, host=HOST)

    assert exc_info.value.more == "no free ports"
    assert str(exc_info.value) == "Failed to start server: no free ports."


def test_empty_range(tree, make_handler):
    with pytest.raises(ServerError) as exc_info:
        try_ports(make_handler(tree), 9000, 9000, host=HOST)
    assert exc_info.value.more == "no free ports"


def test_other_bind_errors_abort_immediately(monkeypatch, tree, make_handler):
    ports = []

    def denied(self):
        ports.append(self.port)
        raise PermissionError(errno.EACCES, "Permission denied")

    monkeypatch.setattr(HTTPServer, "bind", denied)
    with pytest.raises(ServerError) as exc_info:
        try_ports(make_handler(tree), 80, 90, host=HOST)

    assert ports == [80]
    assert exc_info.value.more is None
    assert str(exc_info.value) == "Failed to start server."
    assert isinstance(exc_info.value.__cause__, PermissionError)
