"""
Status decision, error page substitution, content negotiation and response
framing.
"""

import gzip
import logging
import mimetypes
import os
from dataclasses import dataclass, field
from datetime import datetime, timezone
from email.utils import formatdate
from functools import lru_cache
from http import HTTPStatus
from typing import List, Optional, Tuple

from static_server.config import ServerConfig
from static_server.path_resolver import INDEX_HTML, BadRequestError, resolve_path
from static_server.request_parser import ParsedRequest

logger = logging.getLogger("static_server")

GZIP = "gzip"
DEFAULT_MIME_TYPE = "application/octet-stream"

ERROR_PAGES = {
    HTTPStatus.BAD_REQUEST: "400.html",
    HTTPStatus.NOT_FOUND: "404.html",
    HTTPStatus.NOT_IMPLEMENTED: "501.html",
}


@dataclass
class ResolvedTarget:
    status: HTTPStatus
    file_path: str
    mime_type: str


@dataclass
class OutgoingResponse:
    """
    A fully buffered response.

    ``headers`` keeps wire order: Server, Date, Content-Encoding (only when
    compressed), Content-Type, Content-Length, Connection.
    """
    protocol_version: str
    status: HTTPStatus
    headers: List[Tuple[str, str]] = field(default_factory=list)
    body: bytes = b""

    def status_line(self) -> str:
        return f"{self.protocol_version} {self.status.value} {self.status.phrase}"

    def get_header(self, name: str) -> Optional[str]:
        for key, value in self.headers:
            if key.lower() == name.lower():
                return value
        return None

    def header_block(self) -> bytes:
        lines = [self.status_line()]
        lines.extend(f"{key}: {value}" for key, value in self.headers)
        return ("\r\n".join(lines) + "\r\n\r\n").encode("iso-8859-1")


def http_date(now: Optional[datetime] = None) -> str:
    """
    Format a timestamp as ``EEE, dd MMM yyyy HH:mm:ss GMT``.

    Day and month names are fixed English abbreviations regardless of locale.
    """
    now = now or datetime.now(timezone.utc)
    return formatdate(now.timestamp(), usegmt=True)


@lru_cache(maxsize=None)
def _mime_table(extra_file: Optional[str]) -> mimetypes.MimeTypes:
    table = mimetypes.MimeTypes()
    if extra_file:
        table.read(extra_file)
    return table


def guess_mime_type(file_path: str, extra_file: Optional[str] = None) -> str:
    """
    Look up the MIME type for a file by extension.

    Args:
        file_path: File being served
        extra_file: Optional ``mime.types`` file extending the built-in table

    Returns:
        MIME type, ``application/octet-stream`` when unknown
    """
    mime_type, _ = _mime_table(extra_file).guess_type(file_path, strict=False)
    return mime_type or DEFAULT_MIME_TYPE


def accepts_gzip(accept_encoding: str) -> bool:
    """
    Check whether an Accept-Encoding value lists gzip.

    ``gzip;q=0`` is an explicit refusal and does not count.
    """
    for item in accept_encoding.split(","):
        coding, _, params = item.partition(";")
        if coding.strip().lower() != GZIP:
            continue
        params = params.replace(" ", "").lower()
        if params.startswith("q="):
            try:
                return float(params[2:]) > 0
            except ValueError:
                return True
        return True
    return False


def error_target(status: HTTPStatus, config: ServerConfig) -> ResolvedTarget:
    file_path = os.path.join(config.error_root, ERROR_PAGES[status])
    return ResolvedTarget(status, file_path, guess_mime_type(file_path, config.mime_types_file))


def resolve_target(request: ParsedRequest, config: ServerConfig) -> ResolvedTarget:
    """
    Decide the response status and the file whose bytes will be sent.

    Evaluated in order: traversal attempt (400), non-GET method (501),
    missing file (404), directory (served through its index.html, 404 when
    that is missing), otherwise 200.

    Args:
        request: Parsed request
        config: Server configuration

    Returns:
        ResolvedTarget pointing at an existing file or an error page
    """
    try:
        file_path = resolve_path(request.raw_path, config.document_root)
    except BadRequestError as e:
        logger.warning(f"Bad request: {e}")
        return error_target(HTTPStatus.BAD_REQUEST, config)

    if not request.is_get:
        return error_target(HTTPStatus.NOT_IMPLEMENTED, config)

    if not os.path.exists(file_path):
        return error_target(HTTPStatus.NOT_FOUND, config)

    if os.path.isdir(file_path):
        file_path = os.path.join(file_path, INDEX_HTML)

    if not os.path.isfile(file_path):
        return error_target(HTTPStatus.NOT_FOUND, config)

    return ResolvedTarget(HTTPStatus.OK, file_path, guess_mime_type(file_path, config.mime_types_file))


def read_file(file_path: str) -> bytes:
    with open(file_path, "rb") as f:
        return f.read()


def build_response(request: ParsedRequest, target: ResolvedTarget, config: ServerConfig,
                   now: Optional[datetime] = None) -> OutgoingResponse:
    """
    Read the target file and frame the response.

    The body is buffered in full, compressed when the client accepts gzip,
    and only then measured for Content-Length.

    Args:
        request: Parsed request, supplies protocol version and Accept-Encoding
        target: Resolved target
        config: Server configuration, supplies the Server header
        now: Response timestamp, defaults to the current time

    Returns:
        OutgoingResponse ready to be written

    Raises:
        OSError: The target file (or error page) could not be read
    """
    body = read_file(target.file_path)

    headers = [
        ("Server", config.server_identity),
        ("Date", http_date(now)),
    ]
    if accepts_gzip(request.accept_encoding):
        body = gzip.compress(body, mtime=0)
        headers.append(("Content-Encoding", GZIP))
    headers.extend([
        ("Content-Type", f'{target.mime_type};charset="utf-8"'),
        ("Content-Length", str(len(body))),
        ("Connection", "close"),
    ])

    return OutgoingResponse(
        protocol_version=request.protocol_version,
        status=target.status,
        headers=headers,
        body=body,
    )
