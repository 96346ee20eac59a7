# utils/crypto.py
import os
import base64
import hashlib
from typing import Optional
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

NONCE_LEN = 12
KEY_LEN = 32  # 256-bit

APP_KEY = os.getenv("APP_KEY")

if not APP_KEY:
    raise ValueError("CRITICAL: APP_KEY is not set in environment variables. Token encryption cannot proceed.")


def b64e(b: bytes) -> str:
    return base64.b64encode(b).decode()


def b64d(s: str) -> bytes:
    return base64.b64decode(s)


def derive_key(secret: str, purpose: str) -> bytes:
    """SHA-256(purpose || secret) -> 32B key, so one APP_KEY never signs and encrypts with the same bytes."""
    return hashlib.sha256(f"{purpose}:{secret}".encode("utf-8")).digest()[:KEY_LEN]


ENCRYPTION_KEY = derive_key(APP_KEY, "encryption")


def encrypt_value(plaintext: Optional[str], key: bytes = ENCRYPTION_KEY) -> Optional[str]:
    """Encrypts a string as '<nonce_b64>.<ciphertext_b64>'. None passes through."""
    if plaintext is None:
        return None
    nonce = os.urandom(NONCE_LEN)
    ct = AESGCM(key).encrypt(nonce, plaintext.encode("utf-8"), None)
    return f"{b64e(nonce)}.{b64e(ct)}"


def decrypt_value(token: Optional[str], key: bytes = ENCRYPTION_KEY) -> Optional[str]:
    if token is None:
        return None
    nonce_b64, ct_b64 = token.split(".", 1)
    return AESGCM(key).decrypt(b64d(nonce_b64), b64d(ct_b64), None).decode("utf-8")
