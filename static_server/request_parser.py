"""
Request line and header parsing.
"""

from dataclasses import dataclass, field
from typing import BinaryIO, Dict

MAX_LINE = 8192
GET = "GET"


class ParseError(ValueError):
    """
    Raised when the request line cannot be parsed.

    ``empty`` is set when the client closed the connection without sending
    anything, so the caller can tell a silent disconnect from garbage input.
    """

    def __init__(self, message: str, empty: bool = False):
        super().__init__(message)
        self.empty = empty


@dataclass
class ParsedRequest:
    """
    One parsed HTTP request.

    ``raw_path`` is lower-cased and ``method`` upper-cased; ``protocol_version``
    is kept verbatim so it can be echoed in the status line.
    """
    method: str
    raw_path: str
    protocol_version: str
    headers: Dict[str, str] = field(default_factory=dict)

    @property
    def is_get(self) -> bool:
        return self.method == GET

    @property
    def user_agent(self) -> str:
        return self.headers.get("user-agent", "")

    @property
    def accept_encoding(self) -> str:
        return self.headers.get("accept-encoding", "")


def _read_line(rfile: BinaryIO) -> str:
    line = rfile.readline(MAX_LINE + 1)
    if len(line) > MAX_LINE:
        raise ParseError(f"Line exceeds {MAX_LINE} bytes")
    return line.decode("iso-8859-1")


def parse_request(rfile: BinaryIO) -> ParsedRequest:
    """
    Parse the request line and headers from a binary stream.

    Headers are read up to the first blank line or end of stream. Header
    lines without a colon are skipped; on duplicate names the last value wins.
    The request body, if any, is never read.

    Args:
        rfile: Readable binary stream, e.g. ``socket.makefile('rb')``

    Returns:
        ParsedRequest

    Raises:
        ParseError: Request line has fewer than three tokens or a line is too long
    """
    request_line = _read_line(rfile)
    if not request_line:
        raise ParseError("Empty request", empty=True)

    tokens = request_line.split()
    if len(tokens) < 3:
        raise ParseError(f"Malformed request line: {request_line.strip()!r}")

    method, path, version = tokens[0], tokens[1], tokens[2]

    headers = {}
    while True:
        line = _read_line(rfile).rstrip("\r\n")
        if not line:
            break

        idx = line.find(":")
        if idx > 0:
            headers[line[:idx].strip().lower()] = line[idx + 1:].strip()

    return ParsedRequest(
        method=method.upper(),
        raw_path=path.lower(),
        protocol_version=version,
        headers=headers,
    )
