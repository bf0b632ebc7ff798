import mimetypes
import re
import urllib.parse

SNIFF_SIZE = 1024

_BAD_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")


def percent_decode(segment: str) -> str | None:
    """Decode one URL path segment, or None if the escapes or the UTF-8 are bad."""
    if _BAD_ESCAPE.search(segment):
        return None
    try:
        return urllib.parse.unquote_to_bytes(segment).decode("utf-8")
    except UnicodeDecodeError:
        return None


def split_target(target: str) -> str:
    """Strip query and fragment from a request target, leaving the path."""
    if "://" in target.split("?", 1)[0]:
        # absolute-form, e.g. from a proxy
        target = urllib.parse.urlsplit(target).path
    path = target.split("#", 1)[0].split("?", 1)[0]
    return path or "/"


def path_segments(target: str) -> list[str]:
    return [seg for seg in split_target(target).split("/") if seg]


def url_path(target: str) -> str:
    # Still percent-encoded, no leading slash; "" for the root
    return "/".join(path_segments(target))


def file_contains(path: str, byte: int) -> bool:
    with open(path, "rb") as f:
        return bytes([byte]) in f.read(SNIFF_SIZE)


# Compression suffixes mimetypes reports as an encoding rather than a type
ENCODING_TYPES = {
    "gzip": "application/gzip",
    "bzip2": "application/x-bzip2",
    "xz": "application/x-xz",
    "compress": "application/x-compress",
    "br": "application/x-brotli",
}


def guess_mime_type(path: str) -> str:
    """MIME type for the last extension of `path`, sniffing when there is none."""
    mime_type, encoding = mimetypes.guess_type(path, strict=False)
    if encoding is not None:
        mime_type = ENCODING_TYPES.get(encoding, "application/octet-stream")
    if mime_type is not None:
        return mime_type
    if file_contains(path, 0):
        return "application/octet-stream"
    return "text/plain"
