"""Configuration for the command line client and the development receiver."""

import os
from typing import Optional

from dotenv import load_dotenv

from votifier.common.protocol import ProtocolVersion, ServerIdentity

load_dotenv()


def _read_key_file(path: Optional[str]) -> Optional[str]:
    if not path:
        return None
    with open(path, encoding="utf-8") as f:
        return f.read().strip()


class Config:
    """Environment-driven defaults; nothing in the core API reads these."""

    # Target server
    HOST = os.getenv('VOTIFIER_HOST', '127.0.0.1')
    PORT = int(os.getenv('VOTIFIER_PORT', '8192'))
    PROTOCOL = os.getenv('VOTIFIER_PROTOCOL', 'auto')
    PUBLIC_KEY = os.getenv('VOTIFIER_PUBLIC_KEY')
    PUBLIC_KEY_FILE = os.getenv('VOTIFIER_PUBLIC_KEY_FILE')
    TOKEN = os.getenv('VOTIFIER_TOKEN')
    TIMEOUT = float(os.getenv('VOTIFIER_TIMEOUT', '5'))

    # Vote defaults
    SERVICE_NAME = os.getenv('VOTIFIER_SERVICE_NAME', 'votifier-python')
    ADDRESS = os.getenv('VOTIFIER_ADDRESS', '127.0.0.1')

    # Development receiver
    LISTEN_HOST = os.getenv('VOTIFIER_LISTEN_HOST', '127.0.0.1')
    PRIVATE_KEY_FILE = os.getenv('VOTIFIER_PRIVATE_KEY_FILE', 'rsa/private.key')

    @classmethod
    def public_key(cls) -> Optional[str]:
        return cls.PUBLIC_KEY or _read_key_file(cls.PUBLIC_KEY_FILE)

    @classmethod
    def server_identity(cls, **overrides) -> ServerIdentity:
        """
        Build a ServerIdentity from the environment; None overrides are ignored.
        The key file is only read for v1 and auto. Raises ValueError for bad
        settings and OSError when the key file cannot be read.
        """
        overrides = {k: v for k, v in overrides.items() if v is not None}
        protocol = ProtocolVersion(overrides.pop("protocol_version", cls.PROTOCOL))
        values = {
            "host": cls.HOST,
            "port": cls.PORT,
            "token": cls.TOKEN,
            "protocol_version": protocol,
            "timeout": cls.TIMEOUT,
        }
        values.update(overrides)
        if "public_key" not in values and protocol is not ProtocolVersion.V2:
            values["public_key"] = cls.public_key()
        return ServerIdentity(**values)
