#!/usr/bin/env python3
"""
HTTP client for dirserve
Downloads files and displays listings and text from a running server.
"""

import argparse
import logging
import os
import sys
import urllib.parse

import requests

logger = logging.getLogger(__name__)

TEXT_TYPES = ("text/", "message/")


def get_filename_from_path(path: str) -> str:
    """Last decoded path segment, or 'download' when the path names a directory."""
    filename = os.path.basename(urllib.parse.unquote(path.split("?", 1)[0]).rstrip("/"))
    return filename or "download"


def fetch(base_url: str, path: str, save_directory: str | None = None, method: str = "GET",
          timeout: float = 10.0) -> str | None:
    """Request `path` and print or save the result.

    Returns the path of the saved file, or None when nothing was saved.
    """
    if not path.startswith("/"):
        path = "/" + path
    response = requests.request(method, base_url.rstrip("/") + path, timeout=timeout)

    content_type = response.headers.get("Content-Type", "text/plain")
    print(f"Status: {response.status_code} {response.reason}")
    print(f"Content-Type: {content_type}")
    print(f"Content-Length: {response.headers.get('Content-Length', len(response.content))}")
    print()

    if method == "OPTIONS":
        print(f"Allow: {response.headers.get('Allow', '')}")
        return None
    if method == "TRACE":
        for name, value in response.headers.items():
            print(f"{name}: {value}")
        return None

    if response.status_code != 200:
        print(f"Error: {response.status_code} {response.reason}")
        if response.content:
            print(response.content.decode("utf-8", errors="ignore"))
        return None

    if method == "HEAD":
        return None

    if content_type.startswith(TEXT_TYPES):
        print("-" * 50)
        print(response.content.decode("utf-8", errors="ignore"))
        return None

    if save_directory is None:
        logger.warning(f"Binary content ({content_type}) not saved: no save directory given")
        return None

    os.makedirs(save_directory, exist_ok=True)
    file_path = os.path.join(save_directory, get_filename_from_path(path))
    with open(file_path, "wb") as f:
        f.write(response.content)
    print(f"File saved as: {file_path}")
    print(f"File size: {len(response.content)} bytes")
    return file_path


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(prog="dirserve-get", description="Fetch a path from a dirserve server")
    parser.add_argument("host")
    parser.add_argument("port", type=int)
    parser.add_argument("path")
    parser.add_argument("directory", nargs="?", default=None, help="Where to save binary downloads")
    parser.add_argument("-X", "--method", default="GET", type=str.upper)
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO)
    base_url = f"http://{args.host}:{args.port}"
    try:
        fetch(base_url, args.path, args.directory, args.method)
    except requests.RequestException as e:
        logger.error(f"Connection error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
