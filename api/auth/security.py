"""
Auth security helpers.

Passwords are hashed with bcrypt. Session secrets are high-entropy random
tokens, so a single SHA-256 is enough to store them; comparisons use
`hmac.compare_digest`.
"""

from __future__ import annotations

import hashlib
import hmac
import secrets
from functools import lru_cache

import bcrypt


class AuthSecurityError(RuntimeError):
    pass


# bcrypt only looks at the first 72 bytes and newer releases reject longer input.
MAX_PASSWORD_BYTES = 72


@lru_cache(maxsize=4)
def _dummy_password_hash(rounds: int) -> bytes:
    # Verified against when the email is unknown so both failure paths pay for bcrypt.
    return bcrypt.hashpw(secrets.token_bytes(16), bcrypt.gensalt(rounds=rounds))


def hash_password(plain_password: str, *, rounds: int = 12) -> str:
    password = (plain_password or "").encode("utf-8")
    if not password:
        raise AuthSecurityError("Password is empty.")
    if len(password) > MAX_PASSWORD_BYTES:
        raise AuthSecurityError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes.")
    return bcrypt.hashpw(password, bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(plain_password: str, password_hash: str) -> bool:
    password = (plain_password or "").encode("utf-8")
    hashed = (password_hash or "").encode("utf-8")
    if not password or not hashed:
        return False
    try:
        return bcrypt.checkpw(password, hashed)
    except ValueError:
        return False


def burn_password_check(plain_password: str, *, rounds: int = 12) -> None:
    """
    Spend the same bcrypt work as a real check, for unknown accounts.
    """
    password = (plain_password or "").encode("utf-8")[:MAX_PASSWORD_BYTES] or b"\x00"
    bcrypt.checkpw(password, _dummy_password_hash(rounds))


def build_client_id() -> str:
    return secrets.token_urlsafe(24)


def build_client_secret() -> str:
    return secrets.token_urlsafe(32)


def hash_client_secret(raw_secret: str) -> str:
    token = (raw_secret or "").encode("utf-8")
    if not token:
        raise AuthSecurityError("Client secret is empty.")
    return hashlib.sha256(token).hexdigest()


def secret_matches(raw_secret: str, stored_hash: str) -> bool:
    if not raw_secret or not stored_hash:
        return False
    return hmac.compare_digest(hash_client_secret(raw_secret), stored_hash)


def parse_bearer_credential(token: str) -> tuple[str, str]:
    """
    Split a `client_id:client_secret` bearer token.
    """
    client_id, sep, client_secret = (token or "").strip().partition(":")
    if not sep or not client_id or not client_secret:
        raise AuthSecurityError("Bearer token must be <client_id>:<client_secret>.")
    return client_id, client_secret
