"""
EShop - Security Utilities
===========================
JWT tokens, password hashing, and password-reset code hashing.
"""

import hashlib
import logging
import secrets
from datetime import timedelta
from typing import Optional

import bcrypt
from jose import jwt, JWTError, ExpiredSignatureError

from config.settings import (
    JWT_SECRET_KEY, ALGORITHM, JWT_EXPIRE_MINUTES,
    BCRYPT_ROUNDS, PASSWORD_RESET_CODE_LENGTH,
)
from common.exceptions import AuthenticationError
from common.helpers import now_utc

logger = logging.getLogger("eshop.security")


# ==========================================
# Passwords
# ==========================================

def hash_password(password: str) -> str:
    """bcrypt hash of a plain-text password."""
    salt = bcrypt.gensalt(rounds=BCRYPT_ROUNDS)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, password_hash: Optional[str]) -> bool:
    if not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        logger.warning("Malformed password hash encountered")
        return False


# ==========================================
# Password reset codes
# ==========================================

def generate_reset_code(length: int = PASSWORD_RESET_CODE_LENGTH) -> str:
    """Random numeric code, e.g. '483920'."""
    lower = 10 ** (length - 1)
    upper = 10 ** length - 1
    return str(secrets.randbelow(upper - lower) + lower)


def hash_reset_code(code: str) -> str:
    return hashlib.sha256(code.strip().encode("utf-8")).hexdigest()


# ==========================================
# JWT
# ==========================================

def create_token(user_id: int) -> str:
    """Issue a signed access token for a user id."""
    issued_at = now_utc()
    payload = {
        "sub": str(user_id),
        "iat": int(issued_at.timestamp()),
        "exp": issued_at + timedelta(minutes=JWT_EXPIRE_MINUTES),
    }
    return jwt.encode(payload, JWT_SECRET_KEY, algorithm=ALGORITHM)


def decode_token(token: str) -> dict:
    """
    Decode and verify an access token.
    Raises AuthenticationError for expired or tampered tokens.
    """
    try:
        return jwt.decode(token, JWT_SECRET_KEY, algorithms=[ALGORITHM])
    except ExpiredSignatureError:
        raise AuthenticationError("Your token has expired. Please log in again.")
    except JWTError:
        raise AuthenticationError("Invalid token. Please log in again.")
