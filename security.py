import hashlib
import hmac
import os
from typing import Optional

from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from config import get_settings


SESSION_COOKIE = "pfm_session"

ALGORITHM = "pbkdf2_sha256"
ITERATIONS = 100_000
SALT_BYTES = 16


def _pbkdf2_hash(password: str, salt: bytes) -> bytes:
    return hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, ITERATIONS)


def hash_password(password: str) -> str:
    salt = os.urandom(SALT_BYTES)
    digest = _pbkdf2_hash(password, salt)
    return f"{ALGORITHM}${salt.hex()}${digest.hex()}"


def verify_password(password: str, stored: str) -> bool:
    parts = stored.strip().split("$")
    if len(parts) != 3 or parts[0] != ALGORITHM:
        return False
    try:
        salt = bytes.fromhex(parts[1])
        expected = bytes.fromhex(parts[2])
    except ValueError:
        return False
    return hmac.compare_digest(_pbkdf2_hash(password, salt), expected)


def _serializer() -> URLSafeTimedSerializer:
    settings = get_settings()
    return URLSafeTimedSerializer(settings.session_secret, salt="pfm-session")


def session_max_age_seconds() -> int:
    return get_settings().session_max_age_hours * 3600


def issue_session_token(user_id: int) -> str:
    return _serializer().dumps({"u": user_id})


def read_session_token(token: Optional[str]) -> Optional[int]:
    """User id carried by a session token, or None if missing, forged or expired."""
    if not token:
        return None
    try:
        data = _serializer().loads(token, max_age=session_max_age_seconds())
    except (SignatureExpired, BadSignature):
        return None
    user_id = data.get("u") if isinstance(data, dict) else None
    if not isinstance(user_id, int):
        return None
    return user_id
