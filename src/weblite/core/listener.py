"""
=============================================================================
HTTP LISTENER
=============================================================================

The Listener owns the listening socket and everything that happens on the
network side of weblite:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   start()          bind + listen on the caller's thread              │
    │      │             spawn the accept thread, return immediately       │
    │      ▼                                                               │
    │   accept thread    accept() with a 1s timeout                        │
    │      │             one daemon thread per accepted connection         │
    │      ▼                                                               │
    │   connection       read → parse → router.handle → send               │
    │   thread           repeat while the client keeps the connection     │
    │                                                                      │
    │   shutdown()       stop accepting, close the listening socket,      │
    │                    interrupt idle connections, wait for in-flight    │
    │                    responses to be written                           │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

There is no worker pool: every connection gets its own thread, and the
number of concurrent connections is bounded only by the OS.

=============================================================================
LISTENER STATES
=============================================================================

    UNSTARTED ──start()──► RUNNING ──shutdown()──► SHUTTING_DOWN ──► STOPPED
        │
        └──start() fails to bind──────────────────────────────────► STOPPED

=============================================================================
"""

import socket
import logging
import threading
from enum import Enum
from typing import Dict, Optional, Set, Tuple

from ..config import ServerConfig
from ..http.request import HTTPParseError, RequestParser
from ..http.response import error_response, internal_error
from ..http.router import Router
from ..http.status_codes import HTTPStatus
from .connection import Connection, RequestTooLarge


logger = logging.getLogger(__name__)


ACCEPT_POLL_INTERVAL = 1.0


class ListenerState(Enum):
    UNSTARTED = "unstarted"
    RUNNING = "running"
    SHUTTING_DOWN = "shutting_down"
    STOPPED = "stopped"


class Listener:
    """
    Accepts connections and answers requests through a Router.

    Usage:
        listener = Listener(config, router).start()
        ...
        listener.shutdown()   # blocks until in-flight responses are sent
    """

    def __init__(self, config: ServerConfig, router: Router):
        self.config = config
        self.router = router

        self._parser = RequestParser(config.max_request_size)
        self._socket: Optional[socket.socket] = None
        self._bound_address: Optional[Tuple[str, int]] = None

        self._state = ListenerState.UNSTARTED
        self._state_lock = threading.Lock()
        self._stopped = threading.Event()

        self._accept_thread: Optional[threading.Thread] = None
        self._connections: Dict[str, Connection] = {}
        self._threads: Set[threading.Thread] = set()
        self._conn_lock = threading.Lock()

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def state(self) -> ListenerState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state is ListenerState.RUNNING

    @property
    def address(self) -> Tuple[str, int]:
        """The bound (host, port); the configured pair before start()."""
        if self._bound_address is not None:
            return self._bound_address
        return (self.config.host, self.config.port)

    @property
    def active_connections(self) -> int:
        with self._conn_lock:
            return len(self._connections)

    # =========================================================================
    # STARTUP
    # =========================================================================

    def _create_socket(self) -> socket.socket:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)

        # Restart on the same port without waiting out TIME_WAIT
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)

        sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)

        # accept() wakes up periodically to notice shutdown
        sock.settimeout(ACCEPT_POLL_INTERVAL)
        return sock

    def start(self) -> "Listener":
        """
        Bind, listen and start the accept thread.

        Binding happens on the calling thread, so once start() returns the
        port is either accepting connections or the listener is STOPPED.
        A bind failure is logged, not raised: the controller notices the
        listener is not running and winds down.
        """
        with self._state_lock:
            if self._state is not ListenerState.UNSTARTED:
                raise RuntimeError(f"Listener already {self._state.value}")

            sock = self._create_socket()
            try:
                sock.bind((self.config.host, self.config.port))
                sock.listen(self.config.backlog)
            except OSError as e:
                sock.close()
                logger.error(f"Failed to listen on {self.config.host}:{self.config.port}: {e}")
                self._state = ListenerState.STOPPED
                self._stopped.set()
                return self

            self._socket = sock
            self._bound_address = sock.getsockname()[:2]
            self._state = ListenerState.RUNNING

        self._accept_thread = threading.Thread(
            target=self._accept_loop,
            name="weblite-accept",
            daemon=True,
        )
        self._accept_thread.start()

        host, port = self.address
        logger.info(f"Listening on {host}:{port}")
        return self

    # =========================================================================
    # ACCEPT LOOP
    # =========================================================================

    def _accept_loop(self):
        sock = self._socket

        while self.is_running:
            try:
                client_socket, client_address = sock.accept()
            except socket.timeout:
                continue
            except OSError as e:
                if self.is_running:
                    logger.error(f"Accept error: {e}")
                break

            logger.debug(f"Accepted connection from {client_address[0]}:{client_address[1]}")

            conn = Connection(
                socket=client_socket,
                address=client_address,
                buffer_size=self.config.buffer_size,
                timeout=self.config.timeout,
                keep_alive_timeout=self.config.keep_alive_timeout,
                max_request_size=self.config.max_request_size,
            )
            self._spawn(conn)

        if self.config.debug and not self.is_running:
            logger.warning("Listener closed by shutdown")

    def _spawn(self, conn: Connection):
        thread = threading.Thread(
            target=self._run_connection,
            args=(conn,),
            name=f"weblite-conn-{conn.id}",
            daemon=True,
        )
        with self._conn_lock:
            self._connections[conn.id] = conn
            self._threads.add(thread)
        thread.start()

    def _run_connection(self, conn: Connection):
        try:
            self._process_connection(conn)
        finally:
            with self._conn_lock:
                self._connections.pop(conn.id, None)
                self._threads.discard(threading.current_thread())

    # =========================================================================
    # REQUEST HANDLING
    # =========================================================================

    def _process_connection(self, conn: Connection):
        """
        Answer requests on one connection until it closes.

        =====================================================================
        CONNECTION LOOP
        =====================================================================

        1. Read a request (None → client left or went idle)
        2. Parse it (HTTPParseError → error response, close)
        3. router.handle() (exception → 500)
        4. Send; HEAD gets headers only
        5. Keep going only if both sides want keep-alive and the listener
           is still running

        =====================================================================
        """
        with conn:
            while True:
                try:
                    raw_request = conn.read_request()
                    if raw_request is None:
                        break

                    try:
                        request = self._parser.parse(raw_request, conn.address)
                    except HTTPParseError as e:
                        logger.debug(f"[{conn.id}] Bad request: {e}")
                        self._send_error(conn, e.status_code, str(e))
                        break

                    try:
                        response = self.router.handle(request)
                    except Exception as e:
                        logger.exception(f"[{conn.id}] Handler error: {e}")
                        response = internal_error()

                    keep_alive = (
                        request.is_keep_alive
                        and self.config.keep_alive
                        and self.is_running
                        and response.headers.get("Connection") != "close"
                    )
                    if keep_alive:
                        response.headers.setdefault("Connection", "keep-alive")
                        response.headers.setdefault(
                            "Keep-Alive",
                            f"timeout={int(self.config.keep_alive_timeout)}",
                        )
                    else:
                        response.headers["Connection"] = "close"

                    data = response.to_bytes(
                        self.config.server_name,
                        include_body=not request.is_head,
                    )
                    if not conn.send_response(data):
                        break

                    logger.debug(
                        f"[{conn.id}] {request.method} {request.path} -> {response.status.value}"
                    )

                    if not keep_alive:
                        break
                    conn.set_keep_alive()

                except TimeoutError:
                    self._send_error(conn, HTTPStatus.REQUEST_TIMEOUT)
                    break

                except RequestTooLarge as e:
                    logger.warning(f"[{conn.id}] {e}")
                    self._send_error(conn, HTTPStatus.PAYLOAD_TOO_LARGE)
                    break

                except OSError as e:
                    if self.is_running:
                        logger.warning(f"[{conn.id}] Connection error: {e}")
                    break

    def _send_error(self, conn: Connection, status: HTTPStatus, message: Optional[str] = None):
        response = error_response(status, message)
        conn.send_response(response.to_bytes(self.config.server_name))

    # =========================================================================
    # SHUTDOWN
    # =========================================================================

    def shutdown(self):
        """
        Stop the listener gracefully. Safe to call more than once.

        =====================================================================
        GRACEFUL SHUTDOWN
        =====================================================================

        1. Mark SHUTTING_DOWN (accept loop exits on its next wake-up)
        2. Join the accept thread, close the listening socket
        3. Interrupt idle keep-alive connections
        4. Wait for every connection thread; in-flight responses finish
        5. Mark STOPPED

        =====================================================================
        """
        with self._state_lock:
            if self._state is not ListenerState.RUNNING:
                if self._state is ListenerState.UNSTARTED:
                    self._state = ListenerState.STOPPED
                    self._stopped.set()
                return
            self._state = ListenerState.SHUTTING_DOWN

        logger.info("Shutting down listener...")

        if self._accept_thread is not None:
            self._accept_thread.join()

        if self._socket is not None:
            try:
                self._socket.close()
            except OSError:
                pass
            self._socket = None

        with self._conn_lock:
            connections = list(self._connections.values())
        for conn in connections:
            if conn.interrupt():
                logger.debug(f"[{conn.id}] Interrupted idle connection")

        while True:
            with self._conn_lock:
                threads = list(self._threads)
            if not threads:
                break
            for thread in threads:
                thread.join()

        self._state = ListenerState.STOPPED
        self._stopped.set()
        logger.info("Listener stopped")

    def wait_stopped(self, timeout: Optional[float] = None) -> bool:
        """
        Block until the listener is STOPPED.

        Returns:
            True if stopped, False if the timeout expired first.
        """
        return self._stopped.wait(timeout)


def start_listener(config: ServerConfig, router: Router) -> Listener:
    """Create a Listener and start it."""
    return Listener(config, router).start()
