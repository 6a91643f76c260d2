#!/usr/bin/env python3
"""
v1 (legacy) server type: plaintext layout, RSA PKCS#1 v1.5 block, key handling
"""

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec

from votifier.common.errors import EncryptionError, SendFailedError
from votifier.crypto.pki import load_public_key, max_plaintext_size, rsa_decrypt, to_pem
from votifier.server_type.classic import ClassicVotifier, build_plaintext

from conftest import FakeConnection


def test_plaintext_field_order(vote):
    stamped = vote.stamped("1700000000")
    assert build_plaintext(stamped) == b"VOTE\nsvc\nalice\n1.2.3.4\n1700000000\n"


def test_block_decrypts_to_plaintext(rsa_keypair, vote):
    priv, pub = rsa_keypair
    stamped = vote.stamped("1700000000")
    block = ClassicVotifier(pub).prepare_package(stamped)
    assert len(block) == priv.key_size // 8
    assert rsa_decrypt(priv, block) == build_plaintext(stamped)


def test_send_writes_single_block_and_reads_nothing(rsa_keypair, vote):
    priv, pub = rsa_keypair
    conn = FakeConnection(replies=[b"VOTIFIER 1.9\n"])
    ClassicVotifier(pub).send(conn, vote.stamped("1"))

    assert len(conn.sent) == 1
    assert conn.receive_sizes == []
    assert rsa_decrypt(priv, conn.sent[0]).startswith(b"VOTE\nsvc\nalice\n")


def test_short_write_fails(rsa_keypair, vote):
    _, pub = rsa_keypair
    with pytest.raises(SendFailedError):
        ClassicVotifier(pub).send(FakeConnection(short_write=True), vote.stamped("1"))


def test_accepts_pem_and_bare_base64(rsa_keypair):
    _, pub = rsa_keypair
    pem = to_pem(pub)
    assert pem.startswith(b"-----BEGIN PUBLIC KEY-----\n")
    assert load_public_key(pub).public_numbers() == load_public_key(pem).public_numbers()
    assert load_public_key(pem.decode()).key_size == 2048


@pytest.mark.parametrize("bad_key", ["", "not a key", "-----BEGIN PUBLIC KEY-----\nAAAA\n-----END PUBLIC KEY-----\n"])
def test_malformed_key_is_encryption_error(bad_key):
    with pytest.raises(EncryptionError):
        ClassicVotifier(bad_key)


def test_non_rsa_key_is_encryption_error():
    ec_pub = ec.generate_private_key(ec.SECP256R1()).public_key()
    pem = ec_pub.public_bytes(serialization.Encoding.PEM, serialization.PublicFormat.SubjectPublicKeyInfo)
    with pytest.raises(EncryptionError):
        ClassicVotifier(pem.decode())


def test_oversized_block_is_encryption_error(rsa_keypair, vote):
    _, pub = rsa_keypair
    server_type = ClassicVotifier(pub)
    long_name = "x" * max_plaintext_size(server_type.public_key)
    conn = FakeConnection()
    with pytest.raises(EncryptionError):
        server_type.send(conn, vote.model_copy(update={"username": long_name}).stamped("1"))
    assert conn.sent == []


def test_plaintext_needs_timestamp(vote):
    with pytest.raises(ValueError):
        build_plaintext(vote)


def test_unstamped_vote_is_stamped_on_send(rsa_keypair, vote):
    priv, pub = rsa_keypair
    conn = FakeConnection()
    ClassicVotifier(pub).send(conn, vote)
    timestamp = rsa_decrypt(priv, conn.sent[0]).decode().split("\n")[4]
    assert timestamp.isdigit()
