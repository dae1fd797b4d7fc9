"""
Minimal static-file HTTP server.

One request per connection: parse, resolve under the web root, answer
(optionally gzip-compressed), log, close.
"""

from static_server.config import ServerConfig, load_config, ConfigError
from static_server.request_parser import ParsedRequest, ParseError, parse_request
from static_server.path_resolver import BadRequestError, resolve_path
from static_server.response_builder import (
    OutgoingResponse,
    ResolvedTarget,
    build_response,
    resolve_target,
)
from static_server.access_log import AccessLogger
from static_server.connection_handler import ConnectionHandler
from static_server.server import HTTPServer

__version__ = "1.0.0"

__all__ = [
    "AccessLogger",
    "BadRequestError",
    "ConfigError",
    "ConnectionHandler",
    "HTTPServer",
    "OutgoingResponse",
    "ParseError",
    "ParsedRequest",
    "ResolvedTarget",
    "ServerConfig",
    "build_response",
    "load_config",
    "parse_request",
    "resolve_path",
    "resolve_target",
]
