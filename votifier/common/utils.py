"""Helper signatures: now_ts, b64e, dumps_compact."""

import time
import json
import base64


def now_ts() -> str:
    """Return current wall-clock time as epoch seconds (decimal string)."""
    return str(int(time.time()))


def b64e(b: bytes) -> str:
    """Base64-encode bytes → UTF-8 string."""
    return base64.b64encode(b).decode()


def dumps_compact(obj) -> str:
    """JSON without whitespace between tokens, the way Votifier servers emit it."""
    return json.dumps(obj, separators=(",", ":"))
