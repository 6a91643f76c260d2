"""
NuVotifier protocol v2: challenge banner, HMAC-SHA256 signed JSON, framed
with a magic number and a 16-bit length, JSON acknowledgment.

Wire format of a request:
    0x73 0x3a | len_hi len_lo | {"signature":"<b64>","payload":"<payload json text>"}
"""
import struct
import logging
from typing import Optional

from pydantic import ValidationError

from votifier.common.errors import (
    InvalidResponseError, NoResponseError, PayloadTooLargeError,
    ProtocolMismatchError, ReceiveError, SendFailedError, ServerRejectedError,
)
from votifier.common.protocol import BANNER_TAG, Greeting, V2Message, V2Payload, V2Response, Vote
from votifier.common.utils import dumps_compact
from votifier.crypto.sign import hmac_sign_b64
from votifier.net.connection import ServerConnection

logger = logging.getLogger(__name__)

MAGIC = 0x733A
FRAME_HEADER = struct.Struct(">HH")   # magic, length of the JSON text
MAX_MESSAGE_SIZE = 0xFFFF
GREETING_SIZE = 64
RESPONSE_SIZE = 256


def verify_greeting(header) -> bool:
    """True iff the banner is non-empty, names VOTIFIER and has exactly 3 space-separated tokens."""
    if isinstance(header, bytes):
        header = header.decode("utf-8", errors="replace")
    if not header or BANNER_TAG not in header:
        return False
    return len(header.split(" ")) == 3


def extract_challenge(header) -> str:
    """Third banner token without its trailing delimiter."""
    if isinstance(header, bytes):
        header = header.decode("utf-8", errors="replace")
    return header.split(" ")[2][:-1]


def frame(message_json: str) -> bytes:
    data = message_json.encode("utf-8")
    if len(data) > MAX_MESSAGE_SIZE:
        raise PayloadTooLargeError(len(data), MAX_MESSAGE_SIZE)
    return FRAME_HEADER.pack(MAGIC, len(data)) + data


class NuVotifier:
    """Server type for NuVotifier plugins using protocol v2."""

    version = "v2"

    def __init__(self, token: str):
        self.token = token

    def build_payload(self, vote: Vote, challenge: str) -> str:
        if vote.timestamp is None:
            raise ValueError("vote has no timestamp; use Vote.stamped()")
        payload = V2Payload(
            username=vote.username,
            serviceName=vote.service_name,
            timestamp=vote.timestamp,
            address=vote.address,
            challenge=challenge,
        )
        return dumps_compact(payload.model_dump())

    def prepare_package(self, vote: Vote, challenge: str) -> bytes:
        payload_json = self.build_payload(vote, challenge)
        message = V2Message(signature=hmac_sign_b64(self.token, payload_json), payload=payload_json)
        return frame(dumps_compact(message.model_dump()))

    def read_greeting(self, connection: ServerConnection) -> Greeting:
        try:
            header = connection.receive(GREETING_SIZE)
        except ReceiveError as e:
            raise ProtocolMismatchError() from e
        if not verify_greeting(header):
            logger.warning(f"Unexpected banner from {connection.host}:{connection.port}: {header[:GREETING_SIZE]!r}")
            raise ProtocolMismatchError()
        return Greeting.parse(header)

    def read_response(self, connection: ServerConnection) -> V2Response:
        try:
            raw = connection.receive(RESPONSE_SIZE)
        except ReceiveError as e:
            raise NoResponseError() from e
        try:
            return V2Response.model_validate_json(raw)
        except ValidationError as e:
            raise InvalidResponseError() from e

    def send(self, connection: ServerConnection, vote: Vote, greeting: Optional[Greeting] = None) -> None:
        if vote.timestamp is None:
            vote = vote.stamped()
        if greeting is None:
            greeting = self.read_greeting(connection)
        elif not greeting.is_v2:
            raise ProtocolMismatchError()
        logger.debug(f"Greeting verified, protocol {greeting.version}, challenge {greeting.challenge}")

        package = self.prepare_package(vote, greeting.challenge)
        if connection.send(package) != len(package):
            raise SendFailedError()

        response = self.read_response(connection)
        if not response.ok:
            logger.warning(f"Vote for {vote.username} rejected: {response.cause} ({response.error})")
            raise ServerRejectedError(response.status, response.cause, response.error)
        logger.info(f"Sent v2 vote for {vote.username}, server acknowledged")
