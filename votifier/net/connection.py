"""Plain TCP connection to a Votifier listener; no TLS."""

import socket
import logging
from typing import Optional

from votifier.common.errors import ServerConnectionError, SendFailedError, ReceiveError

logger = logging.getLogger(__name__)


class ServerConnection:
    """
    Short-lived byte-stream connection. Use as a context manager so the
    socket is closed on every exit path:

        with ServerConnection.open(host, port, timeout=5) as conn:
            conn.send(data)
            reply = conn.receive(256)
    """

    def __init__(self, sock: socket.socket, host: str, port: int):
        self.sock: Optional[socket.socket] = sock
        self.host, self.port = host, port

    @classmethod
    def open(cls, host: str, port: int, timeout: float = 5.0) -> "ServerConnection":
        try:
            sock = socket.create_connection((host, port), timeout=timeout)
        except OSError as e:
            raise ServerConnectionError(host, port, str(e) or type(e).__name__) from e
        logger.debug(f"Connected to {host}:{port}")
        return cls(sock, host, port)

    def send(self, data: bytes) -> int:
        """Write all of `data`; return the number of bytes written."""
        if self.sock is None:
            raise SendFailedError("Connection is closed.")
        try:
            self.sock.sendall(data)
        except OSError as e:
            raise SendFailedError() from e
        return len(data)

    def receive(self, max_bytes: int) -> bytes:
        """
        Read up to `max_bytes` in a single recv call.
        Raises ReceiveError on timeout or when the peer has closed.
        """
        if self.sock is None:
            raise ReceiveError("Connection is closed.")
        try:
            data = self.sock.recv(max_bytes)
        except socket.timeout as e:
            raise ReceiveError(f"Timed out waiting for {self.host}:{self.port}") from e
        except OSError as e:
            raise ReceiveError(str(e)) from e
        if not data:
            raise ReceiveError(f"{self.host}:{self.port} closed the connection")
        return data

    def close(self) -> None:
        if self.sock is not None:
            self.sock.close()
            self.sock = None
            logger.debug(f"Closed connection to {self.host}:{self.port}")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
