"""
Map a request path onto a file under the document root.

Two checks guard against traversal: the raw text is rejected outright when
it contains ``./`` or ``../``, and the joined, canonical path must still lie
inside the document root.
"""

import os
import re
from urllib.parse import unquote

INDEX_HTML = "index.html"

_TRAVERSAL_MARKERS = ("./", "../")
_SEPARATORS = re.compile(r"[/\\]")


class BadRequestError(ValueError):
    """Raised when a request path attempts to leave the document root."""


def _has_traversal_marker(path: str) -> bool:
    return any(marker in path for marker in _TRAVERSAL_MARKERS)


def _is_within(path: str, root: str) -> bool:
    return os.path.commonpath([path, root]) == root


def resolve_path(raw_path: str, document_root: str) -> str:
    """
    Resolve a requested URL path to an absolute filesystem path.

    The returned path is not checked for existence; that is the response
    builder's job.

    Args:
        raw_path: Path as received on the request line
        document_root: Absolute directory files are served from

    Returns:
        Canonical absolute path under ``document_root``

    Raises:
        BadRequestError: Traversal attempt detected
    """
    if _has_traversal_marker(raw_path):
        raise BadRequestError(f"Traversal attempt: {raw_path}")

    # Query strings and fragments never name a file
    path = raw_path.split("?", 1)[0].split("#", 1)[0]
    path = unquote(path)
    if _has_traversal_marker(path) or "\x00" in path:
        raise BadRequestError(f"Traversal attempt after decoding: {raw_path}")

    segments = [s for s in _SEPARATORS.split(path) if s not in ("", ".", "..")]
    relative = os.path.join(*segments) if segments else INDEX_HTML

    root = os.path.realpath(document_root)
    resolved = os.path.realpath(os.path.join(root, relative))
    if not _is_within(resolved, root):
        raise BadRequestError(f"Path escapes document root: {raw_path}")

    return resolved
