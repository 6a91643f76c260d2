#!/usr/bin/env python3
"""
Value models and configuration: Vote stamping, ServerIdentity rules, Config
"""

import pytest
from pydantic import ValidationError

from votifier.common.protocol import ProtocolVersion, ServerIdentity, V2Response, Vote
from votifier.config import Config


def test_vote_is_frozen(vote):
    with pytest.raises(ValidationError):
        vote.username = "mallory"


def test_stamped_returns_copy(vote):
    stamped = vote.stamped()
    assert vote.timestamp is None
    assert stamped.timestamp.isdigit()
    assert stamped.username == vote.username
    assert vote.stamped("123").timestamp == "123"


@pytest.mark.parametrize("kwargs", [
    {"protocol_version": "v1"},
    {"protocol_version": "v2", "public_key": "k"},
    {"protocol_version": "auto"},
    {"protocol_version": "v3", "token": "t"},
    {"protocol_version": "v2", "token": "t", "port": 0},
    {"protocol_version": "v2", "token": "t", "port": 70000},
    {"protocol_version": "v2", "token": "t", "timeout": 0},
])
def test_server_identity_rejects(kwargs):
    with pytest.raises(ValidationError):
        ServerIdentity(host="h", **kwargs)


def test_server_identity_defaults():
    server = ServerIdentity(host="h", public_key="k")
    assert server.port == 8192
    assert server.protocol_version is ProtocolVersion.V1
    assert server.timeout == 5.0


def test_response_ok_and_extra_fields():
    assert V2Response.model_validate_json(b'{"status":"ok"}\r\n').ok
    r = V2Response.model_validate_json('{"status":"error","cause":"c","error":"e","trace":1}')
    assert not r.ok
    assert (r.cause, r.error) == ("c", "e")


def test_config_server_identity(monkeypatch, tmp_path):
    key_file = tmp_path / "public.key"
    key_file.write_text("BASE64KEY\n")
    monkeypatch.setattr(Config, "PUBLIC_KEY", None)
    monkeypatch.setattr(Config, "PUBLIC_KEY_FILE", str(key_file))
    monkeypatch.setattr(Config, "TOKEN", None)
    monkeypatch.setattr(Config, "PROTOCOL", "v1")
    monkeypatch.setattr(Config, "HOST", "vote.example.org")

    server = Config.server_identity(port=9000, token=None)
    assert server.host == "vote.example.org"
    assert server.port == 9000
    assert server.public_key == "BASE64KEY"
    assert server.token is None
