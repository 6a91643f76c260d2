"""
Votifier RSA key helpers.
Provides load_public_key(text), rsa_encrypt(pub, plaintext), rsa_decrypt(priv, ct)
and the bare-base64 key format Votifier writes to rsa/public.key.
"""
import base64
import binascii
import textwrap

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from votifier.common.errors import EncryptionError, Messages

PEM_HEADER = "-----BEGIN PUBLIC KEY-----"
PEM_FOOTER = "-----END PUBLIC KEY-----"
PKCS1V15_OVERHEAD = 11  # bytes of padding per block


def to_pem(key_text: str) -> bytes:
    """Wrap a bare base64 key body in PEM armour; full PEM passes through."""
    key_text = key_text.strip()
    if key_text.startswith("-----BEGIN"):
        return key_text.encode()
    body = "".join(key_text.split())
    pem = f"{PEM_HEADER}\n" + "\n".join(textwrap.wrap(body, 64)) + f"\n{PEM_FOOTER}\n"
    return pem.encode()


def load_public_key(key_text) -> rsa.RSAPublicKey:
    """Load a Votifier public key (PEM string/bytes or bare base64 DER)."""
    if isinstance(key_text, bytes):
        key_text = key_text.decode()
    try:
        key = serialization.load_pem_public_key(to_pem(key_text))
    except (ValueError, TypeError, binascii.Error) as e:
        raise EncryptionError(Messages.get(Messages.BAD_PUBLIC_KEY, reason=e)) from e
    if not isinstance(key, rsa.RSAPublicKey):
        raise EncryptionError(Messages.get(Messages.BAD_PUBLIC_KEY, reason="not an RSA key"))
    return key


def max_plaintext_size(pub: rsa.RSAPublicKey) -> int:
    return pub.key_size // 8 - PKCS1V15_OVERHEAD


def rsa_encrypt(pub: rsa.RSAPublicKey, plaintext: bytes) -> bytes:
    """Encrypt a single block with RSA PKCS#1 v1.5 (no chunking)."""
    limit = max_plaintext_size(pub)
    if len(plaintext) > limit:
        raise EncryptionError(
            Messages.get(Messages.PAYLOAD_TOO_LARGE, size=len(plaintext), limit=limit)
        )
    try:
        return pub.encrypt(plaintext, padding.PKCS1v15())
    except ValueError as e:
        raise EncryptionError(str(e)) from e


def rsa_decrypt(priv: rsa.RSAPrivateKey, ciphertext: bytes) -> bytes:
    """Reverse of rsa_encrypt(). Used by the development receiver."""
    return priv.decrypt(ciphertext, padding.PKCS1v15())


# -------------------- ON-DISK FORMAT -------------------- #

def export_public_key(pub: rsa.RSAPublicKey) -> str:
    """Bare base64 of the DER SubjectPublicKeyInfo, as in rsa/public.key."""
    der = pub.public_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PublicFormat.SubjectPublicKeyInfo
    )
    return base64.b64encode(der).decode()


def export_private_key(priv: rsa.RSAPrivateKey) -> str:
    """Bare base64 of the DER PKCS#8 private key, as in rsa/private.key."""
    der = priv.private_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption()
    )
    return base64.b64encode(der).decode()


def load_private_key(key_text) -> rsa.RSAPrivateKey:
    """Load a private key from PEM or bare base64 DER (PKCS#8)."""
    if isinstance(key_text, bytes):
        key_text = key_text.decode()
    key_text = key_text.strip()
    if key_text.startswith("-----BEGIN"):
        return serialization.load_pem_private_key(key_text.encode(), password=None)
    return serialization.load_der_private_key(base64.b64decode(key_text), password=None)
