# backend/pagegate/security/hashing.py
"""
Salted password hashing.

NOTE: ``create_hash`` is a single SHA-256 round over ``password + salt``.
Stored hashes stay compatible with existing user tables, but this is not
resistant to offline brute force; a slow, memory-hard hash would be a
behaviour change and is not done here.
"""
import hashlib
import hmac
import secrets

from ..shared.errors import RandomnessUnavailable

SALT_BYTES = 32


def create_salt() -> str:
    try:
        raw = secrets.token_bytes(SALT_BYTES)
    except (OSError, NotImplementedError) as e:
        raise RandomnessUnavailable("secure random source failed") from e
    return raw.hex()


def create_hash(password: str, salt: str) -> str:
    return hashlib.sha256((password + salt).encode("utf-8")).hexdigest()


def verify_hash(password: str, salt: str, expected_hash: str) -> bool:
    return hmac.compare_digest(expected_hash.encode("utf-8"), create_hash(password, salt).encode("utf-8"))
