"""
Development Votifier receiver: plain TCP, one connection at a time.
Speaks v1 (RSA block) and, in v2 mode, NuVotifier frames as well.
Meant for local testing of the client, not for production servers.
"""

import socket
import secrets
import logging
import argparse
from typing import Dict, List, Optional

from pydantic import ValidationError

from votifier.common.protocol import V2Message, V2Payload, Vote
from votifier.common.utils import dumps_compact
from votifier.crypto.pki import load_private_key, rsa_decrypt
from votifier.crypto.sign import hmac_verify_b64
from votifier.server_type.nuvotifier import FRAME_HEADER, MAGIC

logger = logging.getLogger(__name__)

V1_BANNER = "VOTIFIER 1.9"
V2_BANNER = "VOTIFIER 2.0"


class FrameError(Exception):
    """A request could not be decoded or verified."""

    def __init__(self, cause: str, error: str):
        super().__init__(f"{cause}: {error}")
        self.cause = cause
        self.error = error


def recv_exactly(conn: socket.socket, n: int) -> bytes:
    buf = b""
    while len(buf) < n:
        chunk = conn.recv(n - len(buf))
        if not chunk:
            raise FrameError("CorruptedFrameException", "Connection closed mid-frame")
        buf += chunk
    return buf


def parse_v1_block(plaintext: bytes) -> Vote:
    lines = plaintext.decode("utf-8", errors="replace").split("\n")
    if len(lines) < 5 or lines[0] != "VOTE":
        raise FrameError("CorruptedFrameException", "Not a VOTE block")
    _, service_name, username, address, timestamp = lines[:5]
    return Vote(username=username, service_name=service_name, address=address, timestamp=timestamp)


class VoteReceiver:
    """
    tokens maps serviceName → token; the "default" entry is used for
    services without their own token, as NuVotifier does.
    """

    def __init__(self, host: str = "127.0.0.1", port: int = 0, private_key=None,
                 tokens: Optional[Dict[str, str]] = None, protocol: str = "v2"):
        self.private_key = load_private_key(private_key) if isinstance(private_key, (str, bytes)) else private_key
        self.tokens = tokens or {}
        self.protocol = protocol
        self.votes: List[Vote] = []

        self.srv = socket.socket()
        self.srv.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        self.srv.bind((host, port))
        self.srv.listen(5)
        self.host, self.port = self.srv.getsockname()[:2]

    # -------------------- V1 -------------------- #

    def _read_v1(self, conn: socket.socket, head: bytes = b"") -> Vote:
        if self.private_key is None:
            raise FrameError("CorruptedFrameException", "v1 block received but no private key configured")
        block = head + recv_exactly(conn, self.private_key.key_size // 8 - len(head))
        try:
            plaintext = rsa_decrypt(self.private_key, block)
        except ValueError as e:
            raise FrameError("BadPaddingException", str(e)) from e
        return parse_v1_block(plaintext)

    # -------------------- V2 -------------------- #

    def _token_for(self, service_name: str) -> str:
        token = self.tokens.get(service_name) or self.tokens.get("default")
        if token is None:
            raise FrameError("CorruptedFrameException", f"Unknown service '{service_name}'")
        return token

    def _read_v2(self, conn: socket.socket, head: bytes, challenge: str) -> Vote:
        _, length = FRAME_HEADER.unpack(head + recv_exactly(conn, FRAME_HEADER.size - len(head)))
        try:
            message = V2Message.model_validate_json(recv_exactly(conn, length))
            payload = V2Payload.model_validate_json(message.payload)
        except ValidationError as e:
            raise FrameError("CorruptedFrameException", "Malformed message") from e

        if not hmac_verify_b64(self._token_for(payload.serviceName), message.payload, message.signature):
            raise FrameError("CorruptedFrameException", "Signature is not valid (invalid token?)")
        if payload.challenge != challenge:
            raise FrameError("CorruptedFrameException", "Challenge is not valid")
        return Vote(username=payload.username, service_name=payload.serviceName,
                    address=payload.address, timestamp=payload.timestamp)

    # -------------------- CONNECTION HANDLING -------------------- #

    def handle(self, conn: socket.socket, addr) -> Optional[Vote]:
        challenge = secrets.token_hex(13)
        banner = V1_BANNER if self.protocol == "v1" else f"{V2_BANNER} {challenge}"
        conn.sendall((banner + "\n").encode())

        try:
            head = recv_exactly(conn, 2)
            if self.protocol == "v2" and int.from_bytes(head, "big") == MAGIC:
                vote = self._read_v2(conn, head, challenge)
                conn.sendall((dumps_compact({"status": "ok"}) + "\r\n").encode())
            else:
                vote = self._read_v1(conn, head)
        except FrameError as e:
            logger.warning(f"Rejected request from {addr}: {e}")
            if self.protocol == "v2":
                reply = {"status": "error", "cause": e.cause, "error": e.error}
                conn.sendall((dumps_compact(reply) + "\r\n").encode())
            return None

        self.votes.append(vote)
        logger.info(f"Got vote from {addr}: {vote.username} via {vote.service_name}")
        return vote

    def serve_once(self) -> Optional[Vote]:
        conn, addr = self.srv.accept()
        with conn:
            try:
                return self.handle(conn, addr)
            except OSError as e:
                logger.error(f"Connection error with {addr}: {e}")
                return None

    def serve_forever(self) -> None:
        logger.info(f"Votifier receiver ready on {self.host}:{self.port} ({self.protocol})")
        while True:
            self.serve_once()

    def close(self) -> None:
        self.srv.close()


def main(argv=None) -> None:
    from votifier.config import Config

    parser = argparse.ArgumentParser(prog="votifier-receiver", description="Local Votifier test receiver")
    parser.add_argument("--host", default=Config.LISTEN_HOST)
    parser.add_argument("--port", type=int, default=Config.PORT)
    parser.add_argument("--protocol", choices=["v1", "v2"], default="v2")
    parser.add_argument("--private-key-file", default=Config.PRIVATE_KEY_FILE)
    parser.add_argument("--token", default=Config.TOKEN)
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    private_key = None
    try:
        with open(args.private_key_file, encoding="utf-8") as f:
            private_key = f.read()
    except FileNotFoundError:
        logger.warning(f"Private key not found: {args.private_key_file} (v1 votes will be refused)")
        logger.warning("Generate a key pair with: python scripts/gen_keys.py")

    tokens = {"default": args.token} if args.token else {}
    receiver = VoteReceiver(args.host, args.port, private_key, tokens, args.protocol)
    try:
        receiver.serve_forever()
    except KeyboardInterrupt:
        logger.info("Shutting down")
    finally:
        receiver.close()


if __name__ == "__main__":
    main()
