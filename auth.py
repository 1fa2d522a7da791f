"""
auth.py
Authentication utilities (bcrypt hashing, verify, login, change password)
and signed session tokens for the HTTP API.

This avoids passlib's bcrypt backend auto-detection issues on some Python 3.13 Windows setups.
"""

from __future__ import annotations

import logging

import bcrypt
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

import db
from config import OwnerCredentials, settings
from errors import ValidationError, require_owner, service_boundary

logger = logging.getLogger(__name__)

SESSION_SALT = "gym-owner-session"
MIN_PASSWORD_LENGTH = 6


def _to_bcrypt_secret(password: str) -> bytes:
    """
    bcrypt only uses the first 72 BYTES of the password.
    We truncate to 72 bytes to avoid ValueError and to make behavior explicit.
    """
    pw = password.encode("utf-8")
    if len(pw) > 72:
        pw = pw[:72]
    return pw


def hash_password(password: str) -> str:
    """
    Returns a bcrypt hash as a UTF-8 string (stored in SQLite).
    """
    secret = _to_bcrypt_secret(password)
    salt = bcrypt.gensalt(rounds=settings.bcrypt_rounds)
    hashed = bcrypt.hashpw(secret, salt)
    return hashed.decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    secret = _to_bcrypt_secret(password)
    stored = password_hash.encode("utf-8")
    return bcrypt.checkpw(secret, stored)


def init_auth(credentials: OwnerCredentials) -> None:
    """Create tables and seed the owner account from the configured credentials."""
    db.init_db(
        credentials.username,
        hash_password(credentials.password),
        force_password_change=credentials.is_default,
    )


def get_admin_by_username(username: str):
    return db.fetch_one("SELECT * FROM admin_users WHERE username = ?", (username,))


def login(username: str, password: str) -> bool:
    admin = get_admin_by_username(username)
    if not admin:
        logger.warning("Login attempt for unknown user %r", username)
        return False
    ok = verify_password(password, admin["password_hash"])
    if not ok:
        logger.warning("Wrong password for %r", username)
    return ok


def is_authorized(username: str | None) -> bool:
    return bool(username) and get_admin_by_username(username) is not None


def set_password(username: str, new_password: str) -> None:
    new_hash = hash_password(new_password)
    db.execute(
        "UPDATE admin_users SET password_hash = ? WHERE username = ?",
        (new_hash, username),
    )
    db.clear_force_password_change()
    logger.info("Password updated for %r", username)


def validate_new_password(new_password: str, confirm: str | None = None) -> list[str]:
    errors: list[str] = []
    if len(new_password) < MIN_PASSWORD_LENGTH:
        errors.append(f"Password must be at least {MIN_PASSWORD_LENGTH} characters.")
    if confirm is not None and new_password != confirm:
        errors.append("Passwords do not match.")
    return errors


@service_boundary
def change_password(username: str | None, old_password: str, new_password: str, *, authorized: bool) -> None:
    require_owner(authorized)
    admin = get_admin_by_username(username)
    if not admin or not verify_password(old_password, admin["password_hash"]):
        raise ValidationError("Old password incorrect.")
    errors = validate_new_password(new_password)
    if errors:
        raise ValidationError(" ".join(errors))
    set_password(username, new_password)


# ---------- Session tokens ----------

def _serializer() -> URLSafeTimedSerializer:
    return URLSafeTimedSerializer(settings.secret_key, salt=SESSION_SALT)


def issue_session_token(username: str) -> str:
    return _serializer().dumps({"user": username})


def read_session_token(token: str | None) -> str | None:
    """Username carried by a valid, unexpired token, else None."""
    if not token:
        return None
    try:
        data = _serializer().loads(token, max_age=settings.session_max_age)
    except SignatureExpired:
        logger.info("Expired session token")
        return None
    except BadSignature:
        logger.warning("Invalid session token")
        return None
    return data.get("user")
