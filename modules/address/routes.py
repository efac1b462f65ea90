"""
Address Routes
================
Endpoints (prefix /api/v1/addresses, role: user):
  POST   /               — Add address
  DELETE /{address_id}   — Remove address
  GET    /               — List addresses
"""

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from config.database import get_db
from modules.address.service import address_service
from modules.auth.deps import allowed_to
from modules.user.models import User, UserRole

router = APIRouter(prefix="/addresses", tags=["addresses"])

require_shopper = allowed_to(UserRole.USER)


class AddressRequest(BaseModel):
    alias: Optional[str] = Field(None, max_length=100)
    details: str = Field(..., min_length=1, max_length=500)
    phone: Optional[str] = Field(None, max_length=30)
    city: str = Field(..., min_length=1, max_length=100)
    postal_code: Optional[str] = Field(None, max_length=20)


def _addresses_response(me: User, message: str = None) -> dict:
    body = {
        "status": "Success",
        "results": len(me.addresses),
        "data": [address_service.serialize(a) for a in me.addresses],
    }
    if message:
        body["message"] = message
    return body


@router.post("")
async def add_address(
    body: AddressRequest,
    db: Session = Depends(get_db),
    me: User = Depends(require_shopper),
):
    address_service.add_address(db, me, body.model_dump())
    db.commit()
    return _addresses_response(me, "Address added successfully.")


@router.delete("/{address_id}")
async def remove_address(
    address_id: int,
    db: Session = Depends(get_db),
    me: User = Depends(require_shopper),
):
    address_service.remove_address(db, me, address_id)
    db.commit()
    return _addresses_response(me, "Address removed successfully.")


@router.get("")
async def get_addresses(me: User = Depends(require_shopper)):
    return _addresses_response(me)
