import os
import threading

import pytest

from dirserve.handler import RequestHandler
from dirserve.options import HandlerConfig, HostedDirectory
from dirserve.server import try_ports


@pytest.fixture
def tree(tmp_path):
    """A small hosted tree:

    index.html, notes (text, no extension), blob (binary, no extension),
    sub/inner.txt, "with space.txt", and outside/secret.txt next to the root.
    """
    root = tmp_path / "root"
    root.mkdir()
    (root / "index.html").write_text("<h1>hello</h1>")
    (root / "notes").write_text("plain text, no extension\n")
    (root / "blob").write_bytes(b"\x7fELF\x00\x01\x02")
    (root / "sub").mkdir()
    (root / "sub" / "inner.txt").write_text("inner")
    (root / "with space.txt").write_text("spaced")

    outside = tmp_path / "outside"
    outside.mkdir()
    (outside / "secret.txt").write_text("secret")
    return root


@pytest.fixture
def symlinked_tree(tree):
    """`tree` plus links: dirlink -> ../outside, filelink -> index.html, dangling -> missing."""
    os.symlink(tree.parent / "outside", tree / "dirlink")
    os.symlink(tree / "index.html", tree / "filelink")
    os.symlink(tree / "missing", tree / "dangling")
    return tree


def _make_handler(root, follow_symlinks=False):
    return RequestHandler(HandlerConfig(HostedDirectory(str(root), str(root)), follow_symlinks))


@pytest.fixture
def running_server(tree):
    """Serve `tree` from a background thread; yields the base URL."""
    server = try_ports(_make_handler(tree), 18000, 19000, host="127.0.0.1", workers=4)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    yield f"http://127.0.0.1:{server.port}"
    server.shutdown()
    thread.join(timeout=5)


@pytest.fixture
def make_handler():
    return _make_handler
