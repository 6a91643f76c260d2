"""Pydantic models: vote, server identity, greeting, v2 payload, v2 message, v2 response."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from votifier.common.errors import ProtocolMismatchError
from votifier.common.utils import now_ts


BANNER_TAG = "VOTIFIER"


# -------------------- VOTE -------------------- #

class Vote(BaseModel):
    """
    A single vote. Built without a timestamp; the dispatcher stamps a copy
    right before sending, so the record itself never changes.
    """
    model_config = ConfigDict(frozen=True)

    username: str
    service_name: str
    address: str
    timestamp: Optional[str] = None

    def stamped(self, timestamp: Optional[str] = None) -> "Vote":
        return self.model_copy(update={"timestamp": timestamp or now_ts()})


# -------------------- SERVER IDENTITY -------------------- #

class ProtocolVersion(str, Enum):
    V1 = "v1"
    V2 = "v2"
    AUTO = "auto"


class ServerIdentity(BaseModel):
    host: str
    port: int = Field(8192, ge=1, le=65535)
    public_key: Optional[str] = None    # PEM or bare base64 DER, v1 only
    token: Optional[str] = None         # shared secret, v2 only
    protocol_version: ProtocolVersion = ProtocolVersion.V1
    timeout: float = Field(5.0, gt=0)   # seconds, per socket operation

    @model_validator(mode="after")
    def _check_credentials(self):
        if self.protocol_version is ProtocolVersion.V1 and not self.public_key:
            raise ValueError("protocol v1 needs a public_key")
        if self.protocol_version is ProtocolVersion.V2 and not self.token:
            raise ValueError("protocol v2 needs a token")
        if self.protocol_version is ProtocolVersion.AUTO and not (self.public_key or self.token):
            raise ValueError("protocol auto needs a public_key or a token")
        return self


# -------------------- GREETING -------------------- #

class Greeting(BaseModel):
    raw: str
    version: str
    challenge: Optional[str] = None   # only v2 banners carry one

    @property
    def is_v2(self) -> bool:
        return self.challenge is not None

    @classmethod
    def parse(cls, raw) -> "Greeting":
        """
        Parse `VOTIFIER <ver>\\n` (v1) or `VOTIFIER <ver> <challenge>\\n` (v2).
        The last token loses its trailing delimiter.
        """
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8", errors="replace")
        if not raw or BANNER_TAG not in raw:
            raise ProtocolMismatchError()
        parts = raw.split(" ")
        if len(parts) == 2:
            return cls(raw=raw, version=parts[1].rstrip("\r\n"))
        if len(parts) == 3:
            return cls(raw=raw, version=parts[1], challenge=parts[2][:-1])
        raise ProtocolMismatchError()


# -------------------- V2 WIRE MESSAGES -------------------- #

class V2Payload(BaseModel):
    # field order is part of the signed content
    username: str
    serviceName: str
    timestamp: str
    address: str
    challenge: str


class V2Message(BaseModel):
    signature: str    # base64 HMAC-SHA256 over the payload text
    payload: str      # payload JSON text, embedded as a string


class V2Response(BaseModel):
    model_config = ConfigDict(extra="allow")

    status: str
    cause: Optional[str] = None
    error: Optional[str] = None

    @field_validator("status", mode="before")
    @classmethod
    def _status_text(cls, v):
        return v if isinstance(v, str) else str(v)

    @field_validator("cause", "error", mode="before")
    @classmethod
    def _detail_text(cls, v):
        # servers may send numbers, booleans or nested objects here
        return v if v is None or isinstance(v, str) else str(v)

    @property
    def ok(self) -> bool:
        return self.status == "ok"
