"""
User Module - Routes
=====================
Admin user management + the logged-in user's own account.

Endpoints (prefix /api/v1/users):
  GET    /getMe               — Own profile
  PUT    /changeMyPassword    — Change own password (returns a new token)
  PUT    /updateMe            — Update own name / email / phone
  DELETE /deleteMe            — Deactivate own account
  GET    /                    — List users (admin)
  POST   /                    — Create user (admin)
  GET    /{id}                — Get user (admin)
  PUT    /{id}                — Update user (admin)
  PUT    /changePassword/{id} — Change a user's password (admin)
  DELETE /{id}                — Delete user (admin)
"""

from typing import Optional

from fastapi import APIRouter, Depends, Request, Response
from pydantic import BaseModel, Field, model_validator
from sqlalchemy.orm import Session

from config.database import get_db
from common.schemas import Email
from common.security import create_token
from modules.auth.deps import protect, allowed_to
from modules.user.models import User, UserRole
from modules.user.service import user_service

router = APIRouter(prefix="/users", tags=["users"])


# ==========================================
# Schemas
# ==========================================

class UserCreateRequest(BaseModel):
    name: str = Field(..., min_length=3, max_length=100)
    email: Email
    phone: Optional[str] = None
    profile_image: Optional[str] = None
    password: str = Field(..., min_length=6)
    password_confirm: str
    role: UserRole = UserRole.USER

    @model_validator(mode="after")
    def passwords_match(self):
        if self.password != self.password_confirm:
            raise ValueError("Password confirmation is incorrect")
        return self


class UserUpdateRequest(BaseModel):
    name: Optional[str] = Field(None, min_length=3, max_length=100)
    email: Optional[Email] = None
    phone: Optional[str] = None
    profile_image: Optional[str] = None
    role: Optional[UserRole] = None
    active: Optional[bool] = None


class UpdateMeRequest(BaseModel):
    name: Optional[str] = Field(None, min_length=3, max_length=100)
    email: Optional[Email] = None
    phone: Optional[str] = None


class ChangePasswordRequest(BaseModel):
    current_password: str
    password: str = Field(..., min_length=6)
    password_confirm: str

    @model_validator(mode="after")
    def passwords_match(self):
        if self.password != self.password_confirm:
            raise ValueError("Password confirmation is incorrect")
        return self


def _payload(body: BaseModel) -> dict:
    data = body.model_dump(exclude_unset=True)
    if isinstance(data.get("role"), UserRole):
        data["role"] = data["role"].value
    return data


# ==========================================
# Logged-in user
# ==========================================

@router.get("/getMe")
async def get_me(me: User = Depends(protect)):
    return {"data": user_service.serialize(me)}


@router.put("/changeMyPassword")
async def change_my_password(
    body: ChangePasswordRequest,
    db: Session = Depends(get_db),
    me: User = Depends(protect),
):
    user = user_service.change_password(db, me.id, body.current_password, body.password)
    db.commit()
    return {"status": "Success", "token": create_token(user.id)}


@router.put("/updateMe")
async def update_me(
    body: UpdateMeRequest,
    db: Session = Depends(get_db),
    me: User = Depends(protect),
):
    user = user_service.update_me(db, me, body.model_dump(exclude_unset=True))
    db.commit()
    return {"data": user_service.serialize(user)}


@router.delete("/deleteMe", status_code=204)
async def delete_me(db: Session = Depends(get_db), me: User = Depends(protect)):
    user_service.deactivate(db, me)
    db.commit()
    return Response(status_code=204)


# ==========================================
# Admin
# ==========================================

@router.get("")
async def list_users(
    request: Request,
    db: Session = Depends(get_db),
    admin: User = Depends(allowed_to(UserRole.ADMIN)),
):
    return user_service.get_all(db, request.query_params)


@router.post("", status_code=201)
async def create_user(
    body: UserCreateRequest,
    db: Session = Depends(get_db),
    admin: User = Depends(allowed_to(UserRole.ADMIN)),
):
    data = _payload(body)
    data.pop("password_confirm")
    user = user_service.create_one(db, data)
    db.commit()
    return {"data": user_service.serialize(user)}


@router.get("/{user_id}")
async def get_user(
    user_id: int,
    db: Session = Depends(get_db),
    admin: User = Depends(allowed_to(UserRole.ADMIN)),
):
    return {"data": user_service.serialize(user_service.get_one(db, user_id))}


@router.put("/changePassword/{user_id}")
async def change_user_password(
    user_id: int,
    body: ChangePasswordRequest,
    db: Session = Depends(get_db),
    admin: User = Depends(allowed_to(UserRole.ADMIN)),
):
    user_service.change_password(db, user_id, body.current_password, body.password)
    db.commit()
    return {"status": "Success", "message": "Password updated successfully."}


@router.put("/{user_id}")
async def update_user(
    user_id: int,
    body: UserUpdateRequest,
    db: Session = Depends(get_db),
    admin: User = Depends(allowed_to(UserRole.ADMIN)),
):
    user = user_service.update_one(db, user_id, _payload(body))
    db.commit()
    return {"data": user_service.serialize(user)}


@router.delete("/{user_id}", status_code=204)
async def delete_user(
    user_id: int,
    db: Session = Depends(get_db),
    admin: User = Depends(allowed_to(UserRole.ADMIN)),
):
    user_service.delete_one(db, user_id)
    db.commit()
    return Response(status_code=204)
