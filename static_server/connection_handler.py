"""
Per-connection request pipeline.
"""

import logging
import socket
from http import HTTPStatus
from typing import Tuple

from static_server.access_log import AccessLogger
from static_server.config import ServerConfig
from static_server.request_parser import ParsedRequest, ParseError, parse_request
from static_server.response_builder import (
    OutgoingResponse,
    build_response,
    error_target,
    resolve_target,
)

logger = logging.getLogger("static_server")

FALLBACK_PROTOCOL = "HTTP/1.1"
PLACEHOLDER = "-"


class ConnectionHandler:
    """
    Owns one accepted connection: read, parse, resolve, respond, log, close.

    Failures never leave ``run()``; they are logged and the socket is closed.
    """

    def __init__(self, client_socket: socket.socket, client_address: Tuple[str, int],
                 config: ServerConfig, access_logger: AccessLogger):
        self.client_socket = client_socket
        self.client_address = client_address
        self.config = config
        self.access_logger = access_logger
        self.connection_id = f"{client_address[0]}:{client_address[1]}"

    def run(self) -> None:
        try:
            if self.config.read_timeout > 0:
                self.client_socket.settimeout(self.config.read_timeout)

            with self.client_socket.makefile("rb") as rfile:
                try:
                    request = parse_request(rfile)
                except ParseError as e:
                    if e.empty:
                        logger.info(f"Connection closed without a request: {self.connection_id}")
                    else:
                        logger.warning(f"Invalid request from {self.connection_id}: {e}")
                        self._reject_malformed()
                    return

            target = resolve_target(request, self.config)
            response = build_response(request, target, self.config)
            self._send(response)
            self._log(request, response)

        except socket.timeout:
            logger.error(f"Read timed out for {self.connection_id}")
        except OSError as e:
            logger.error(f"I/O error on connection {self.connection_id}: {e}")
        except Exception as e:
            logger.exception(f"Error handling connection {self.connection_id}: {e}")
        finally:
            self._close()

    def _reject_malformed(self) -> None:
        """Answer an unparsable request line with the 400 page."""
        request = ParsedRequest(PLACEHOLDER, PLACEHOLDER, FALLBACK_PROTOCOL)
        target = error_target(HTTPStatus.BAD_REQUEST, self.config)
        response = build_response(request, target, self.config)
        self._send(response)
        self._log(request, response)

    def _send(self, response: OutgoingResponse) -> None:
        self.client_socket.sendall(response.header_block())
        if response.body:
            self.client_socket.sendall(response.body)
        self.client_socket.shutdown(socket.SHUT_WR)

    def _log(self, request: ParsedRequest, response: OutgoingResponse) -> None:
        self.access_logger.log(
            self.client_address[0],
            response.get_header("Date"),
            request.method,
            response.status,
            request.user_agent or PLACEHOLDER,
            request.raw_path,
        )

    def _close(self) -> None:
        try:
            self.client_socket.close()
        except OSError as e:
            logger.error(f"Error closing connection {self.connection_id}: {e}")
