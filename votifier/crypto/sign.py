"""
HMAC-SHA256 sign/verify over UTF-8 text, base64 signatures.
"""
import hmac
import hashlib

from votifier.common.utils import b64e


def hmac_sign_b64(token: str, message: str) -> str:
    digest = hmac.new(token.encode(), message.encode(), hashlib.sha256).digest()
    return b64e(digest)


def hmac_verify_b64(token: str, message: str, sig_b64: str) -> bool:
    """Constant-time comparison of a received signature with the recomputed one."""
    return hmac.compare_digest(hmac_sign_b64(token, message), sig_b64)
