"""
Auth for league members: pbkdf2 password hashes and bearer JWTs.
The token subject is the user id; every ownership and captain check keys off it.
"""
from __future__ import annotations

import logging
import os
import sqlite3
from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt
from passlib.context import CryptContext

from matchday.models import User
from matchday.persistence.repositories import UserRepository

logger = logging.getLogger(__name__)

# pbkdf2_sha256 needs no native backend
pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")
SECRET_KEY = os.environ.get("JWT_SECRET_KEY", "matchday-dev-secret-change-in-production")
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.environ.get("MATCHDAY_TOKEN_EXPIRE_MINUTES", str(60 * 24 * 7)))


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain: str, hashed: str) -> bool:
    if not hashed:
        return False
    return pwd_context.verify(plain, hashed)


def create_access_token(user_id: str) -> str:
    expire = datetime.now(timezone.utc) + timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    return jwt.encode({"sub": user_id, "exp": expire}, SECRET_KEY, algorithm=ALGORITHM)


def decode_token(token: str) -> str | None:
    """User id from a valid token; None for expired, tampered or malformed tokens."""
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        logger.debug("Rejected bearer token")
        return None
    return payload.get("sub")


def authenticate(conn: sqlite3.Connection, username: str, password: str) -> User | None:
    user = UserRepository().get_by_username(conn, username)
    if user is None or not verify_password(password, user.password_hash or ""):
        return None
    return user
