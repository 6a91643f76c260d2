"""Shared fixtures: RSA key pair, scripted connection, threaded receiver."""

import sys
import os
# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import threading

import pytest
from cryptography.hazmat.primitives.asymmetric import rsa

from votifier.common.errors import ReceiveError
from votifier.common.protocol import Vote
from votifier.crypto.pki import export_public_key
from votifier.server import VoteReceiver


class FakeConnection:
    """
    Stand-in for ServerConnection. `replies` are returned by receive() in
    order; an exception instance in the list is raised instead.
    """

    def __init__(self, replies=(), short_write=False, host="127.0.0.1", port=8192):
        self.replies = list(replies)
        self.short_write = short_write
        self.host, self.port = host, port
        self.sent = []
        self.receive_sizes = []
        self.closed = False

    def send(self, data: bytes) -> int:
        self.sent.append(data)
        return len(data) - 1 if self.short_write else len(data)

    def receive(self, max_bytes: int) -> bytes:
        self.receive_sizes.append(max_bytes)
        if not self.replies:
            raise ReceiveError("timed out")
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply[:max_bytes]

    def close(self):
        self.closed = True

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()


@pytest.fixture(scope="session")
def rsa_keypair():
    priv = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    return priv, export_public_key(priv.public_key())


@pytest.fixture
def vote():
    return Vote(username="alice", service_name="svc", address="1.2.3.4")


@pytest.fixture
def connector():
    """Returns (connect, made): connect() hands out `conn` and records the call."""
    def make(conn):
        made = []

        def connect(host, port, timeout):
            made.append((host, port, timeout))
            return conn
        return connect, made
    return make


@pytest.fixture
def receiver_factory():
    """Start a VoteReceiver on an ephemeral port serving `count` connections in a thread."""
    started = []

    def start(count=1, **kwargs):
        receiver = VoteReceiver(host="127.0.0.1", port=0, **kwargs)

        def run():
            for _ in range(count):
                receiver.serve_once()

        thread = threading.Thread(target=run, daemon=True)
        thread.start()
        started.append((receiver, thread))
        return receiver, thread

    yield start

    for receiver, thread in started:
        thread.join(timeout=5)
        receiver.close()
