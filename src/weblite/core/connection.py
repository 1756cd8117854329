"""
=============================================================================
CLIENT CONNECTION
=============================================================================

One accepted client socket. recv() hands back whatever bytes happen to have
arrived, so requests are framed here before the parser ever sees them:

    ┌─────────────────────────────────────────────────────────────────────┐
    │   _fill(header block complete)      recv until \r\n\r\n is buffered │
    │   Content-Length                    scanned from the raw headers     │
    │   _fill(body complete)              recv until the body is buffered  │
    │   _take(n)                          cut one request off the front;   │
    │                                     pipelined bytes stay buffered    │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
STATES
=============================================================================

    NEW ─► READING ─► PROCESSING ─► WRITING ─► KEEP_ALIVE ─► READING ...
     │        │                                    │
     │        │   interrupt() while idle            │
     └────────┴──────────────► CLOSING ◄────────────┘
                                  │
                                  ▼
                                CLOSED

Idle means waiting for a request with nothing of it buffered yet (NEW,
READING or KEEP_ALIVE with an empty buffer). Only idle connections can be
interrupted; one that is mid-request runs to the end of its response.

=============================================================================
"""

import socket
import logging
import threading
import uuid
from enum import Enum
from dataclasses import dataclass, field
from typing import Callable, Optional


logger = logging.getLogger(__name__)


HEADER_TERMINATOR = b"\r\n\r\n"


class ConnectionState(Enum):
    NEW = "new"
    READING = "reading"
    PROCESSING = "processing"
    WRITING = "writing"
    KEEP_ALIVE = "keep_alive"
    CLOSING = "closing"
    CLOSED = "closed"


_IDLE_STATES = (ConnectionState.NEW, ConnectionState.READING, ConnectionState.KEEP_ALIVE)


class RequestTooLarge(ValueError):
    """More bytes buffered for one request than max_request_size allows."""


@dataclass(eq=False)
class Connection:
    """
    A client socket plus the bytes received on it but not yet consumed.

    Attributes:
        socket: The accepted client socket.
        address: Client (ip, port).
        id: Short tag used in log lines.
        state: Current ConnectionState.
        requests_handled: Requests framed on this connection so far.
    """

    socket: socket.socket
    address: tuple[str, int]

    buffer_size: int = 8192
    timeout: Optional[float] = 30.0     # waiting for the first request
    keep_alive_timeout: float = 5.0     # waiting for each later one
    max_request_size: int = 1024 * 1024

    id: str = field(default_factory=lambda: uuid.uuid4().hex[:8])
    state: ConnectionState = ConnectionState.NEW
    requests_handled: int = 0

    _pending: bytes = field(default=b"", repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def __post_init__(self):
        self.socket.settimeout(self.timeout)

    @property
    def is_idle(self) -> bool:
        return self.state in _IDLE_STATES and not self._pending

    # =========================================================================
    # FRAMING
    # =========================================================================

    def read_request(self) -> Optional[bytes]:
        """
        Return the bytes of the next complete request.

        Returns:
            The request (headers, blank line and Content-Length bytes of
            body), or None when the client hung up, the connection was
            interrupted, or a keep-alive connection stayed quiet.

        Raises:
            TimeoutError: A request started arriving but never finished.
            RequestTooLarge: The request outgrew max_request_size.
        """
        with self._lock:
            if self.state is ConnectionState.CLOSING:
                return None
            self.state = ConnectionState.READING
        wait = self.keep_alive_timeout if self.requests_handled else self.timeout

        try:
            self.socket.settimeout(wait)

            if not self._fill(lambda: HEADER_TERMINATOR in self._pending):
                return None

            body_start = self._pending.index(HEADER_TERMINATOR) + len(HEADER_TERMINATOR)
            total = body_start + content_length(self._pending[:body_start])

            # A short body is left for the parser to reject
            self._fill(lambda: len(self._pending) >= total)

        except socket.timeout:
            if not self._pending:
                logger.debug(f"[{self.id}] No request within {wait}s")
                return None
            raise TimeoutError(f"Request incomplete after {wait}s")

        # Leave the idle states before the request leaves the buffer, so
        # interrupt() never sees an empty buffer with a request in flight
        with self._lock:
            request = self._take(total)
            self.state = ConnectionState.PROCESSING
        self.requests_handled += 1
        return request

    def _fill(self, complete: Callable[[], bool]) -> bool:
        """recv() into the buffer until complete() holds; False on EOF."""
        while not complete():
            chunk = self._recv()
            if not chunk:
                return False

            self._pending += chunk
            if len(self._pending) > self.max_request_size:
                raise RequestTooLarge(f"Request exceeds {self.max_request_size} bytes")
        return True

    def _take(self, size: int) -> bytes:
        request, self._pending = self._pending[:size], self._pending[size:]
        return request

    def _recv(self) -> bytes:
        try:
            return self.socket.recv(self.buffer_size)
        except socket.timeout:
            raise
        except (ConnectionResetError, BrokenPipeError):
            return b""
        except OSError:
            # interrupt() shut the socket down underneath us
            if self.state is ConnectionState.CLOSING:
                return b""
            raise

    # =========================================================================
    # WRITING
    # =========================================================================

    def send_response(self, data: bytes) -> bool:
        """sendall() one serialized response; False if the client is gone."""
        with self._lock:
            self.state = ConnectionState.WRITING
        try:
            self.socket.sendall(data)
        except OSError as e:
            logger.warning(f"[{self.id}] Send failed: {e}")
            return False
        return True

    def set_keep_alive(self):
        with self._lock:
            self.state = ConnectionState.KEEP_ALIVE

    # =========================================================================
    # CLOSING
    # =========================================================================

    def interrupt(self) -> bool:
        """
        Wake the thread blocked reading this connection, if it is idle.

        Returns:
            True if the connection was idle and is now closing.
        """
        with self._lock:
            if not self.is_idle:
                return False
            self.state = ConnectionState.CLOSING

        try:
            self.socket.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass  # client already gone
        return True

    def close(self):
        """
        Half-close, drain what the client still sends, then release the
        socket. Draining first keeps the kernel from answering unread data
        with RST, which would discard the response on the client side.
        Calling close() again does nothing.
        """
        with self._lock:
            if self.state is ConnectionState.CLOSED:
                return
            self.state = ConnectionState.CLOSING

        try:
            self.socket.shutdown(socket.SHUT_WR)
            self.socket.settimeout(0.5)
            while self.socket.recv(1024):
                pass
        except OSError:
            pass

        self.socket.close()
        with self._lock:
            self.state = ConnectionState.CLOSED
        logger.debug(f"[{self.id}] Closed after {self.requests_handled} request(s)")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


def content_length(header_block: bytes) -> int:
    """
    Content-Length from raw header bytes; 0 when absent or unreadable.

    A quick scan for framing only; RequestParser validates the headers
    properly afterwards.
    """
    for line in header_block.split(b"\r\n")[1:]:
        name, sep, value = line.partition(b":")
        if sep and name.strip().lower() == b"content-length":
            try:
                return max(0, int(value.strip()))
            except ValueError:
                return 0
    return 0
