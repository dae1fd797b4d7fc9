"""
Listener and worker pool.

The accept loop only queues sockets; a fixed pool of worker threads runs one
ConnectionHandler per connection, so a slow client ties up a single worker
and never the listener.
"""

import logging
import queue
import socket
import sys
import threading
import time
from typing import List, Optional, Tuple

from static_server.access_log import AccessLogger
from static_server.config import ServerConfig
from static_server.connection_handler import ConnectionHandler

LOGGER_NAME = "static_server"
LOG_FORMAT = "%(asctime)s [%(levelname)s] [%(threadName)s] %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

ACCEPT_TIMEOUT = 0.5
QUEUE_POLL_TIMEOUT = 1.0
WORKER_JOIN_TIMEOUT = 3.0
LISTEN_BACKLOG = 50


def setup_logging(config: ServerConfig) -> logging.Logger:
    """
    Configure the diagnostic logger: console always, a log file when configured.

    Args:
        config: Server configuration

    Returns:
        The configured ``static_server`` logger
    """
    level = logging.getLevelName(config.log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    formatter = logging.Formatter(LOG_FORMAT, DATE_FORMAT)

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if config.log_file:
        file_handler = logging.FileHandler(config.log_file, mode="a")
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    # Prevent duplicate logs
    logger.propagate = False
    return logger


class HTTPServer:
    """
    Static-file HTTP server: one request per connection, fixed worker pool.
    """

    def __init__(self, config: ServerConfig, access_logger: Optional[AccessLogger] = None):
        """
        Initialize the server.

        Args:
            config: Immutable server configuration
            access_logger: Access log sink, defaults to stdout
        """
        self.config = config
        self.access_logger = access_logger or AccessLogger.to_stream()
        self.logger = logging.getLogger(LOGGER_NAME)

        self.host = config.bind_address
        self.port = config.bind_port
        self.max_workers = config.max_workers

        self.server_socket: Optional[socket.socket] = None
        self.running = False
        self.ready = threading.Event()
        self.thread_pool: List[threading.Thread] = []
        self.connection_queue: "queue.Queue[Tuple[socket.socket, Tuple[str, int]]]" = queue.Queue()
        self.stats_lock = threading.Lock()

        # Statistics tracking
        self.total_connections = 0
        self.failed_connections = 0

        self.logger.info(f"HTTP Server initialized: {self.host}:{self.port}, workers={self.max_workers}")

    def start(self) -> None:
        """Bind, start the worker pool and run the accept loop until stopped."""
        try:
            self.server_socket = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
            self.server_socket.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            self.server_socket.bind((self.host, self.port))
            self.server_socket.listen(LISTEN_BACKLOG)
            self.server_socket.settimeout(ACCEPT_TIMEOUT)

            # Port 0 asks the OS for a free port
            self.port = self.server_socket.getsockname()[1]

            self.running = True
            self.logger.info(f"Serving {self.config.document_root} on {self.host}:{self.port}")
            self.logger.info(f"Error pages from {self.config.error_root}")

            for i in range(self.max_workers):
                thread = threading.Thread(target=self._worker_thread, name=f"Worker-{i + 1}")
                thread.daemon = True
                thread.start()
                self.thread_pool.append(thread)

            self.ready.set()
            self._accept_loop()

        except OSError as e:
            self.logger.error(f"Failed to start server: {e}")
            raise
        finally:
            self.stop()

    def _accept_loop(self) -> None:
        listener = self.server_socket
        while self.running:
            try:
                client_socket, client_address = listener.accept()
            except socket.timeout:
                continue
            except OSError as e:
                if self.running:
                    self.logger.error(f"Error accepting connection: {e}")
                break

            # Accepted sockets inherit the listener's timeout on some platforms
            client_socket.settimeout(None)
            with self.stats_lock:
                self.total_connections += 1

            self.logger.debug(f"New connection from {client_address[0]}:{client_address[1]}")
            self.connection_queue.put((client_socket, client_address))

    def _worker_thread(self) -> None:
        """Take connections off the queue and handle them one at a time."""
        while self.running:
            try:
                client_socket, client_address = self.connection_queue.get(timeout=QUEUE_POLL_TIMEOUT)
            except queue.Empty:
                continue

            try:
                ConnectionHandler(client_socket, client_address, self.config, self.access_logger).run()
            except Exception as e:
                with self.stats_lock:
                    self.failed_connections += 1
                self.logger.error(f"Error in worker thread: {e}")
            finally:
                self.connection_queue.task_done()

    def stop(self) -> None:
        """Stop accepting connections. Queued connections are closed unanswered."""
        if not self.running and self.server_socket is None:
            return

        self.logger.info("Stopping HTTP server...")
        self.running = False

        if self.server_socket:
            try:
                self.server_socket.close()
            except OSError as e:
                self.logger.error(f"Error closing listener: {e}")
            self.server_socket = None

        while True:
            try:
                client_socket, _ = self.connection_queue.get_nowait()
            except queue.Empty:
                break
            client_socket.close()
            self.connection_queue.task_done()

        # Workers notice running == False within one queue poll
        deadline = time.monotonic() + WORKER_JOIN_TIMEOUT
        for thread in self.thread_pool:
            if thread is threading.current_thread():
                continue
            thread.join(max(0.0, deadline - time.monotonic()))
            if thread.is_alive():
                self.logger.warning(f"{thread.name} still busy at shutdown")
        self.thread_pool = [t for t in self.thread_pool if t.is_alive()]

        with self.stats_lock:
            self.logger.info(f"Server stopped. Total connections: {self.total_connections}, "
                             f"failed: {self.failed_connections}")
