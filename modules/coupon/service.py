"""
Coupon Service
================
Coupon CRUD and lookup of a currently-valid coupon by name.
A coupon is valid while `expire` lies in the future; names are
case-insensitive (stored uppercase).
"""

from typing import Any, Dict

from sqlalchemy.orm import Session

from common.crud import CrudService
from common.exceptions import DuplicateError, NotFoundError
from common.helpers import now_utc
from modules.coupon.models import Coupon


class CouponService(CrudService):

    def __init__(self):
        super().__init__(Coupon, search_fields=("name",))

    def create_one(self, db: Session, data: Dict[str, Any]) -> Coupon:
        self._ensure_name_free(db, data.get("name"))
        return super().create_one(db, data)

    def update_one(self, db: Session, obj_id: int, data: Dict[str, Any]) -> Coupon:
        if data.get("name"):
            self._ensure_name_free(db, data["name"], exclude_id=obj_id)
        return super().update_one(db, obj_id, data)

    def get_valid_coupon(self, db: Session, name: str) -> Coupon:
        """Unexpired coupon by name, or 404."""
        coupon = None
        if name and name.strip():
            coupon = db.query(Coupon).filter(
                Coupon.name == name.strip().upper(),
                Coupon.expire > now_utc(),
            ).first()
        if not coupon:
            raise NotFoundError("Coupon is invalid or expired.")
        return coupon

    def _ensure_name_free(self, db: Session, name: str, exclude_id: int = None):
        if not name:
            return
        q = db.query(Coupon.id).filter(Coupon.name == name.strip().upper())
        if exclude_id:
            q = q.filter(Coupon.id != exclude_id)
        if q.first():
            raise DuplicateError("This coupon name already exists. Please use a unique name.")


# Singleton
coupon_service = CouponService()
