"""
Legacy Votifier (v1): one RSA PKCS#1 v1.5 block, no framing, no acknowledgment.
"""
import logging
from typing import Optional

from votifier.common.errors import SendFailedError
from votifier.common.protocol import Greeting, Vote
from votifier.crypto.pki import load_public_key, rsa_encrypt
from votifier.net.connection import ServerConnection

logger = logging.getLogger(__name__)


def build_plaintext(vote: Vote) -> bytes:
    """VOTE, serviceName, username, address, timestamp; each newline-terminated."""
    if vote.timestamp is None:
        raise ValueError("vote has no timestamp; use Vote.stamped()")
    fields = ["VOTE", vote.service_name, vote.username, vote.address, vote.timestamp]
    return "".join(f"{field}\n" for field in fields).encode()


class ClassicVotifier:
    """
    Server type for plugins speaking the legacy Votifier protocol.
    The public key is loaded on construction; a bad key raises EncryptionError.
    """

    version = "v1"

    def __init__(self, public_key: str):
        self.public_key = load_public_key(public_key)

    def prepare_package(self, vote: Vote) -> bytes:
        return rsa_encrypt(self.public_key, build_plaintext(vote))

    def send(self, connection: ServerConnection, vote: Vote, greeting: Optional[Greeting] = None) -> None:
        if vote.timestamp is None:
            vote = vote.stamped()
        # The banner, if the server sent one, is left unread.
        package = self.prepare_package(vote)
        if connection.send(package) != len(package):
            raise SendFailedError()
        logger.info(f"Sent v1 vote for {vote.username} ({len(package)} bytes)")
