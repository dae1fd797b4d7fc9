import io
import itertools
import socket

import pytest

from static_server.access_log import AccessLogger
from static_server.config import ServerConfig
from static_server.connection_handler import ConnectionHandler

INDEX_HTML = b"<html><body><h1>Home</h1></body></html>\n"
MAIN_CSS = b"body { color: #333; }\n" * 50

_logger_ids = itertools.count()


@pytest.fixture
def web_root(tmp_path):
    root = tmp_path / "web"
    (root / "css").mkdir(parents=True)
    (root / "docs").mkdir()
    (root / "index.html").write_bytes(INDEX_HTML)
    (root / "css" / "main.css").write_bytes(MAIN_CSS)
    (root / "docs" / "index.html").write_bytes(b"<h1>Docs</h1>")
    return root


@pytest.fixture
def error_root(tmp_path):
    root = tmp_path / "errors"
    root.mkdir()
    for code, reason in ((400, "Bad Request"), (404, "Not Found"), (501, "Not Implemented")):
        (root / f"{code}.html").write_text(f"<h1>{code} {reason}</h1>")
    return root


@pytest.fixture
def config(web_root, error_root):
    return ServerConfig(
        document_root=str(web_root),
        error_root=str(error_root),
        bind_address="127.0.0.1",
        bind_port=0,
        server_identity="TestServer v1.0",
        read_timeout=2.0,
        max_workers=2,
    )


@pytest.fixture
def access_stream():
    return io.StringIO()


@pytest.fixture
def access_logger(access_stream):
    return AccessLogger.to_stream(access_stream, name=f"test.access.{next(_logger_ids)}")


def recv_all(sock):
    chunks = []
    while True:
        data = sock.recv(65536)
        if not data:
            break
        chunks.append(data)
    return b"".join(chunks)


def split_response(raw):
    """Return (status tokens, header dict, header order, body) of a raw response."""
    head, _, body = raw.partition(b"\r\n\r\n")
    lines = head.decode("iso-8859-1").split("\r\n")
    headers = {}
    order = []
    for line in lines[1:]:
        name, _, value = line.partition(": ")
        headers[name] = value
        order.append(name)
    return lines[0].split(" ", 2), headers, order, body


@pytest.fixture
def exchange(config, access_logger):
    """Run one request through a ConnectionHandler over a socket pair."""

    def _exchange(raw, cfg=None, shutdown=True):
        server_side, client_side = socket.socketpair()
        try:
            client_side.sendall(raw)
            if shutdown:
                client_side.shutdown(socket.SHUT_WR)
            ConnectionHandler(server_side, ("127.0.0.1", 50000), cfg or config, access_logger).run()
            return recv_all(client_side)
        finally:
            client_side.close()

    return _exchange


def make_request(method, resource, *extra_headers):
    lines = [
        f"{method} {resource} HTTP/1.1",
        "Host: localhost:8080",
        "User-Agent: curl/7.61.1",
        "Accept: */*",
    ]
    lines.extend(extra_headers)
    return ("\n".join(lines) + "\n").encode("ascii")
