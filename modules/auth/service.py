"""
Auth Module - Service Layer
=============================
Signup, login, and the three-step password reset (send code, verify code,
set new password).
"""

import logging
from datetime import timedelta
from typing import Tuple

from sqlalchemy.orm import Session

from common.exceptions import (
    AuthenticationError, DuplicateError, NotFoundError, ValidationError,
)
from common.helpers import now_utc, slugify
from common.security import (
    hash_password, verify_password, generate_reset_code, hash_reset_code,
)
from config.settings import PASSWORD_RESET_EXPIRE_MINUTES
from modules.user.models import User, UserRole

logger = logging.getLogger("eshop.auth")


class AuthService:
    """Handles all authentication logic. Methods flush; routes commit."""

    def signup(self, db: Session, name: str, email: str, password: str, phone: str = None) -> User:
        email = email.strip().lower()
        if db.query(User.id).filter(User.email == email).first():
            raise DuplicateError("E-mail already in use")

        user = User(
            name=name,
            slug=slugify(name),
            email=email,
            phone=phone,
            password_hash=hash_password(password),
            role=UserRole.USER.value,
        )
        db.add(user)
        db.flush()
        logger.info(f"New user signed up: {user.id} ({email})")
        return user

    def login(self, db: Session, email: str, password: str) -> User:
        user = db.query(User).filter(User.email == email.strip().lower()).first()
        if not user or not verify_password(password, user.password_hash):
            raise AuthenticationError("Incorrect email or password.")
        if not user.active:
            # Logging back in reactivates a self-deleted account
            user.active = True
            db.flush()
        return user

    # ==========================================
    # Password reset
    # ==========================================

    def start_password_reset(self, db: Session, email: str) -> Tuple[User, str]:
        """Store a hashed 6-digit code on the user. Returns (user, plain_code)."""
        user = db.query(User).filter(User.email == email.strip().lower()).first()
        if not user:
            raise NotFoundError(f"There is no user with that email: {email}")

        code = generate_reset_code()
        user.password_reset_code = hash_reset_code(code)
        user.password_reset_expire = now_utc() + timedelta(minutes=PASSWORD_RESET_EXPIRE_MINUTES)
        user.password_reset_verified = False
        db.flush()
        return user, code

    def clear_password_reset(self, db: Session, user: User):
        user.password_reset_code = None
        user.password_reset_expire = None
        user.password_reset_verified = None
        db.flush()

    def verify_reset_code(self, db: Session, code: str) -> User:
        user = db.query(User).filter(
            User.password_reset_code == hash_reset_code(code),
            User.password_reset_expire > now_utc(),
        ).first()
        if not user:
            raise ValidationError("Reset code invalid or expired")
        user.password_reset_verified = True
        db.flush()
        return user

    def reset_password(self, db: Session, email: str, new_password: str) -> User:
        user = db.query(User).filter(User.email == email.strip().lower()).first()
        if not user:
            raise NotFoundError(f"There is no user with email {email}")
        if not user.password_reset_verified:
            raise ValidationError("Reset code not verified")

        user.password_hash = hash_password(new_password)
        user.password_changed_at = now_utc()
        self.clear_password_reset(db, user)
        return user

    def cleanup_expired_reset_codes(self, db: Session) -> int:
        """Clear reset codes past their expiry. Returns affected user count."""
        return db.query(User).filter(
            User.password_reset_expire.isnot(None),
            User.password_reset_expire < now_utc(),
        ).update({
            User.password_reset_code: None,
            User.password_reset_expire: None,
            User.password_reset_verified: None,
        }, synchronize_session=False)


# Singleton
auth_service = AuthService()
