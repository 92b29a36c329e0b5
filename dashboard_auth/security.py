import hashlib
import secrets
from datetime import datetime, timedelta

from pwdlib import PasswordHash
from pwdlib.exceptions import UnknownHashError

password_hasher = PasswordHash.recommended()

SESSION_TOKEN_BYTES = 32


def hash_password(password: str) -> str:
    return password_hasher.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return password_hasher.verify(password, password_hash)
    except UnknownHashError:
        return False


def generate_session_token() -> str:
    return secrets.token_hex(SESSION_TOKEN_BYTES)


def session_expiry(issued_at: datetime, ttl: timedelta) -> datetime:
    return issued_at + ttl


def token_fingerprint(token: str) -> str:
    """Short, non-reversible identifier for a session token, safe to log."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()[:12]
