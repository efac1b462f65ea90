"""
User Module - Service Layer
=============================
Admin user management (generic CRUD + password change) and the logged-in
user's own profile operations.
"""

from typing import Any, Dict

from sqlalchemy.orm import Session

from common.crud import CrudService
from common.exceptions import DuplicateError, ValidationError
from common.helpers import now_utc
from common.security import hash_password, verify_password
from modules.user.models import User, USER_HIDDEN_FIELDS


class UserService(CrudService):

    def __init__(self):
        super().__init__(
            User,
            search_fields=("name", "email", "phone"),
            slug_source="name",
            hidden_fields=USER_HIDDEN_FIELDS,
        )

    def create_one(self, db: Session, data: Dict[str, Any]) -> User:
        data = dict(data)
        self._ensure_email_free(db, data.get("email"))
        data["password_hash"] = hash_password(data.pop("password"))
        return super().create_one(db, data)

    def update_one(self, db: Session, obj_id: int, data: Dict[str, Any]) -> User:
        # Password changes go through change_password only
        data = {k: v for k, v in data.items() if k not in ("password", "password_hash")}
        if data.get("email"):
            self._ensure_email_free(db, data["email"], exclude_id=obj_id)
        return super().update_one(db, obj_id, data)

    def change_password(self, db: Session, user_id: int, current_password: str, new_password: str) -> User:
        user = self.get_one(db, user_id)
        if not verify_password(current_password, user.password_hash):
            raise ValidationError("Incorrect current password")
        user.password_hash = hash_password(new_password)
        user.password_changed_at = now_utc()
        db.flush()
        return user

    def update_me(self, db: Session, user: User, data: Dict[str, Any]) -> User:
        allowed = {k: v for k, v in data.items() if k in ("name", "email", "phone")}
        return self.update_one(db, user.id, allowed)

    def deactivate(self, db: Session, user: User):
        user.active = False
        db.flush()

    def _ensure_email_free(self, db: Session, email: str, exclude_id: int = None):
        if not email:
            return
        q = db.query(User.id).filter(User.email == email.strip().lower())
        if exclude_id:
            q = q.filter(User.id != exclude_id)
        if q.first():
            raise DuplicateError("E-mail already in use")


# Singleton
user_service = UserService()
