from __future__ import annotations

import hashlib
import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, Optional, Tuple

import bcrypt
from jose import JWTError, jwt
from sqlmodel import Session

from ..config import Settings
from ..errors import AuthError
from ..models.base import utcnow
from ..models.user import User, UserRole
from ..stores import tokens as token_store
from ..stores import users as user_store

logger = logging.getLogger(__name__)

BAD_CREDENTIALS = "The provided credentials are incorrect."
TOKEN_TYPE = "Bearer"

# bcrypt only looks at the first 72 bytes; newer releases refuse longer input
_BCRYPT_MAX_BYTES = 72


@dataclass(frozen=True)
class IssuedSession:
    """
    Result of register/login: the account plus a freshly issued bearer token.
    """
    user: User
    access_token: str
    token_type: str = TOKEN_TYPE


@dataclass(frozen=True)
class Identity:
    """
    An authenticated request: who is calling and which session row they used.
    """
    user: User
    token_hash: str


# -------------------------
# Hashing primitives
# -------------------------

def _pw_bytes(password: str) -> bytes:
    return (password or "").encode("utf-8")[:_BCRYPT_MAX_BYTES]


def hash_password(password: str, rounds: int = 12) -> str:
    return bcrypt.hashpw(_pw_bytes(password), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    try:
        return bcrypt.checkpw(_pw_bytes(plain), (hashed or "").encode("utf-8"))
    except ValueError:
        # malformed stored hash
        return False


_dummy_hashes: Dict[int, str] = {}


def _dummy_hash(rounds: int) -> str:
    """
    A throwaway hash at the configured cost, so a login for an unknown
    email spends the same time in bcrypt as a wrong password does.
    """
    if rounds not in _dummy_hashes:
        _dummy_hashes[rounds] = hash_password(secrets.token_hex(16), rounds)
    return _dummy_hashes[rounds]


def sha256_hex(value: str) -> str:
    return hashlib.sha256(value.encode("utf-8")).hexdigest()


def generate_random_token() -> str:
    return secrets.token_hex(32)


# -------------------------
# Signed bearer tokens
# -------------------------

def encode_bearer(settings: Settings, *, user_id: int, token_hash: str, now: datetime) -> str:
    claims = {"sub": str(user_id), "tkn": token_hash, "iat": int(now.timestamp())}
    if settings.token_ttl_days > 0:
        claims["exp"] = int((now + timedelta(days=settings.token_ttl_days)).timestamp())
    return jwt.encode(claims, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_bearer(settings: Settings, raw: str) -> Tuple[int, str]:
    """
    Verify signature + exp and return (user_id, token_hash).
    Any defect in the token is the same AuthError to the caller.
    """
    try:
        payload = jwt.decode(raw, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
        return int(payload["sub"]), str(payload["tkn"])
    except (JWTError, KeyError, TypeError, ValueError):
        raise AuthError()


def _issue(session: Session, settings: Settings, user: User) -> IssuedSession:
    now = utcnow()
    token_hash = sha256_hex(generate_random_token())
    expires_at: Optional[datetime] = None
    if settings.token_ttl_days > 0:
        expires_at = now + timedelta(days=settings.token_ttl_days)

    token_store.create_token(session, user_id=user.id, token_hash=token_hash, expires_at=expires_at)
    access_token = encode_bearer(settings, user_id=user.id, token_hash=token_hash, now=now)
    return IssuedSession(user=user, access_token=access_token)


# -------------------------
# Operations
# -------------------------

def register(session: Session, settings: Settings, *, name: str, email: str, password: str) -> IssuedSession:
    """
    Create a PLAYER account and its first session.

    Input shape (email format, password length) is validated at the API
    boundary; a taken email raises ConflictError on "email".
    """
    user = user_store.create_user(
        session,
        name=name,
        email=email,
        password_hash=hash_password(password, settings.bcrypt_rounds),
        role=UserRole.PLAYER,
    )
    logger.info("Registered user id=%s", user.id)
    return _issue(session, settings, user)


def login(session: Session, settings: Settings, *, email: str, password: str) -> IssuedSession:
    """
    Issue a new session for matching credentials. Earlier sessions stay valid.

    Unknown email and wrong password are indistinguishable to the caller.
    """
    user = user_store.find_live_by_email(session, email)
    if user is None:
        verify_password(password, _dummy_hash(settings.bcrypt_rounds))
        logger.info("Login rejected")
        raise AuthError(BAD_CREDENTIALS)

    if not verify_password(password, user.password_hash):
        logger.info("Login rejected")
        raise AuthError(BAD_CREDENTIALS)

    return _issue(session, settings, user)


def authenticate(session: Session, settings: Settings, bearer_token: str) -> Identity:
    """
    Map a presented bearer token to a live identity.

    The stored token row is the source of truth: a signed token whose row was
    deleted (logout, revocation) or has expired is rejected.
    """
    if not bearer_token:
        raise AuthError()

    user_id, token_hash = decode_bearer(settings, bearer_token)

    found = token_store.find_with_live_user(session, token_hash)
    if found is None:
        raise AuthError()

    token, user = found
    now = utcnow()
    if token.user_id != user_id or token.is_expired(now):
        raise AuthError()

    token_store.touch(session, token, now)
    return Identity(user=user, token_hash=token_hash)


def logout(session: Session, token_hash: str) -> None:
    """
    Revoke only the session used on this request.
    """
    token_store.delete_by_hash(session, token_hash)


def revoke_all(session: Session, user_id: int) -> int:
    removed = token_store.delete_for_user(session, user_id)
    if removed:
        logger.info("Revoked %s session(s) for user id=%s", removed, user_id)
    return removed
