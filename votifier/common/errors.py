"""
Error taxonomy and the message catalog used to build error texts.
Every failure leaving the client is a VotifierError subclass.
"""
from typing import Optional


class Messages:
    """Catalog of user-facing error messages."""

    NOT_VOTIFIER = "The connection does not belong to a Votifier plugin."
    NOT_SENT_PACKAGE = "Could not send the vote package over the connection."
    NOT_RECEIVED_PACKAGE = "Did not receive a response from the server."
    NOT_CONNECTED = "Could not connect to {host}:{port} ({reason})."
    BAD_PUBLIC_KEY = "The public key could not be loaded ({reason})."
    PAYLOAD_TOO_LARGE = "The vote package is too large ({size} > {limit} bytes)."
    BAD_RESPONSE = "The server sent a response that could not be understood."
    REJECTED = "The server rejected the vote: {cause} ({error})."

    @staticmethod
    def get(template: str, **kwargs) -> str:
        return template.format(**kwargs) if kwargs else template


class VotifierError(Exception):
    """Base class for every client failure."""


class ServerConnectionError(VotifierError, ConnectionError):
    """The host:port could not be reached."""

    def __init__(self, host: str, port: int, reason: str = "unreachable"):
        super().__init__(Messages.get(Messages.NOT_CONNECTED, host=host, port=port, reason=reason))
        self.host = host
        self.port = port


class ProtocolMismatchError(VotifierError):
    """The greeting does not look like the expected Votifier banner."""

    def __init__(self, message: str = Messages.NOT_VOTIFIER):
        super().__init__(message)


class EncryptionError(VotifierError):
    """v1 public key is invalid or the block does not fit the key."""


class SendFailedError(VotifierError):
    """The transport reported an incomplete or failed write."""

    def __init__(self, message: str = Messages.NOT_SENT_PACKAGE):
        super().__init__(message)


class ReceiveError(VotifierError):
    """The transport timed out or the peer closed before sending data."""


class NoResponseError(VotifierError):
    """The v2 acknowledgment was not received."""

    def __init__(self, message: str = Messages.NOT_RECEIVED_PACKAGE):
        super().__init__(message)


class InvalidResponseError(VotifierError):
    """The v2 acknowledgment is not a JSON object with a status."""

    def __init__(self, message: str = Messages.BAD_RESPONSE):
        super().__init__(message)


class ServerRejectedError(VotifierError):
    """The v2 acknowledgment status is not "ok"; cause/error are kept verbatim."""

    def __init__(self, status: str, cause: Optional[str] = None, error: Optional[str] = None):
        super().__init__(Messages.get(Messages.REJECTED, cause=cause, error=error))
        self.status = status
        self.cause = cause
        self.error = error


class PayloadTooLargeError(VotifierError):
    """The v2 envelope does not fit the 16-bit length prefix."""

    def __init__(self, size: int, limit: int):
        super().__init__(Messages.get(Messages.PAYLOAD_TOO_LARGE, size=size, limit=limit))
        self.size = size
        self.limit = limit
