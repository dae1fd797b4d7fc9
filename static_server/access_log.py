"""
One line per serviced connection.
"""

import logging
import sys
from http import HTTPStatus
from typing import Optional, TextIO, Union

ACCESS_LOGGER_NAME = "static_server.access"


class AccessLogger:
    """
    Writes ``<ip> [<date>] "<method>" <code> <reason> <user-agent> <resource>``.

    Lines go through a dedicated logger with a bare-message handler; the
    handler lock keeps lines from concurrent connections whole, and write
    failures are absorbed by ``logging``.
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(ACCESS_LOGGER_NAME)

    @classmethod
    def to_stream(cls, stream: Optional[TextIO] = None,
                  name: str = ACCESS_LOGGER_NAME) -> "AccessLogger":
        """Create an access logger writing to ``stream``, stdout by default."""
        logger = logging.getLogger(name)
        logger.setLevel(logging.INFO)
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
        handler = logging.StreamHandler(stream or sys.stdout)
        handler.setFormatter(logging.Formatter("%(message)s"))
        logger.addHandler(handler)
        logger.propagate = False
        return cls(logger)

    def log(self, remote_address: str, date: str, method: str,
            status: Union[HTTPStatus, str], user_agent: str, resource: str) -> None:
        if isinstance(status, HTTPStatus):
            status = f"{status.value} {status.phrase}"
        self.logger.info('%s [%s] "%s" %s %s %s',
                         remote_address, date, method, status, user_agent, resource)
