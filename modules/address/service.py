"""
Address Module - Service Layer
================================
The logged-in user's address book.
"""

from typing import Any, Dict, List

from sqlalchemy.orm import Session

from common.exceptions import NotFoundError
from modules.address.models import UserAddress
from modules.user.models import User

ADDRESS_FIELDS = ("alias", "details", "phone", "city", "postal_code")


class AddressService:

    def add_address(self, db: Session, user: User, data: Dict[str, Any]) -> List[UserAddress]:
        user.addresses.append(UserAddress(**{k: data.get(k) for k in ADDRESS_FIELDS}))
        db.flush()
        return user.addresses

    def remove_address(self, db: Session, user: User, address_id: int) -> List[UserAddress]:
        address = next((a for a in user.addresses if a.id == address_id), None)
        if not address:
            raise NotFoundError(f"No address found for ID: {address_id}")
        user.addresses.remove(address)
        db.flush()
        return user.addresses

    def serialize(self, address: UserAddress) -> dict:
        data = {"id": address.id}
        data.update({k: getattr(address, k) for k in ADDRESS_FIELDS})
        return data


# Singleton
address_service = AddressService()
