"""Vote dispatcher: one vote, one connection, one request, one response."""

import sys
import logging
import argparse
from typing import Callable, Optional, Union

from votifier.common.errors import ProtocolMismatchError, ReceiveError, VotifierError
from votifier.common.protocol import Greeting, ProtocolVersion, ServerIdentity, Vote
from votifier.net.connection import ServerConnection
from votifier.server_type.classic import ClassicVotifier
from votifier.server_type.nuvotifier import GREETING_SIZE, NuVotifier

logger = logging.getLogger(__name__)

ServerType = Union[ClassicVotifier, NuVotifier]
Connector = Callable[[str, int, float], ServerConnection]


def select_server_type(server: ServerIdentity, greeting: Optional[Greeting] = None) -> ServerType:
    """
    Pick the protocol strategy. Explicit versions ignore the greeting;
    AUTO prefers v2 when the banner carries a challenge and a token is set.
    """
    version = server.protocol_version
    if version is ProtocolVersion.V1:
        return ClassicVotifier(server.public_key)
    if version is ProtocolVersion.V2:
        return NuVotifier(server.token)

    if greeting is None:
        raise ValueError("protocol auto needs the server greeting")
    if greeting.is_v2 and server.token:
        return NuVotifier(server.token)
    if server.public_key:
        return ClassicVotifier(server.public_key)
    raise ProtocolMismatchError(
        f"Server speaks Votifier {greeting.version} but only a v2 token is configured."
    )


def _read_banner(connection: ServerConnection) -> Greeting:
    try:
        return Greeting.parse(connection.receive(GREETING_SIZE))
    except ReceiveError as e:
        raise ProtocolMismatchError() from e


def send_vote(vote: Vote, server: ServerIdentity, connect: Connector = ServerConnection.open) -> Vote:
    """
    Stamp the vote, deliver it and return the stamped copy.
    Any failure is raised as a VotifierError after the connection is closed.
    """
    vote = vote.stamped()
    server_type = None
    if server.protocol_version is not ProtocolVersion.AUTO:
        server_type = select_server_type(server)

    logger.info(f"Sending vote for {vote.username} to {server.host}:{server.port} ({server.protocol_version.value})")
    with connect(server.host, server.port, server.timeout) as connection:
        greeting = None
        if server_type is None:
            greeting = _read_banner(connection)
            server_type = select_server_type(server, greeting)
            logger.debug(f"Detected protocol {server_type.version} from banner {greeting.version}")
        server_type.send(connection, vote, greeting)
    return vote


# -------------------- COMMAND LINE -------------------- #

def build_parser() -> argparse.ArgumentParser:
    from votifier.config import Config

    parser = argparse.ArgumentParser(prog="votifier", description="Send a vote to a Votifier server")
    parser.add_argument("username")
    parser.add_argument("--address", default=Config.ADDRESS)
    parser.add_argument("--service", default=Config.SERVICE_NAME)
    parser.add_argument("--host")
    parser.add_argument("--port", type=int)
    parser.add_argument("--protocol", choices=[v.value for v in ProtocolVersion])
    parser.add_argument("--token")
    parser.add_argument("--public-key-file")
    parser.add_argument("--timeout", type=float)
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser


def main(argv=None) -> int:
    from votifier.config import Config

    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    public_key = None
    try:
        if args.public_key_file:
            with open(args.public_key_file, encoding="utf-8") as f:
                public_key = f.read().strip()
        server = Config.server_identity(
            host=args.host,
            port=args.port,
            protocol_version=args.protocol,
            token=args.token,
            public_key=public_key,
            timeout=args.timeout,
        )
    except ValueError as e:
        logger.error(f"Invalid server configuration: {e}")
        return 2
    except OSError as e:
        logger.error(f"Cannot read public key: {e}")
        return 2

    vote = Vote(username=args.username, service_name=args.service, address=args.address)
    try:
        stamped = send_vote(vote, server)
    except VotifierError as e:
        logger.error(f"Vote not delivered: {e}")
        return 1
    logger.info(f"Vote delivered (timestamp {stamped.timestamp})")
    return 0


if __name__ == "__main__":
    sys.exit(main())
