"""
Auth Module - Routes
=====================
Signup, login and password reset (JSON API, bearer tokens).

Endpoints (prefix /api/v1/auth):
  POST /signup           — Create account, returns token
  POST /login            — Returns token
  POST /forgotPassword   — Email a 6-digit reset code
  POST /verifyResetCode  — Mark the reset code as verified
  PUT  /resetPassword    — Set a new password, returns token
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field, model_validator
from sqlalchemy.orm import Session

from config.database import get_db
from config.settings import PASSWORD_RESET_EXPIRE_MINUTES
from common.exceptions import EmailDeliveryError
from common.mailer import send_email
from common.schemas import Email
from common.security import create_token
from modules.auth.service import auth_service
from modules.user.service import user_service

router = APIRouter(prefix="/auth", tags=["auth"])
logger = logging.getLogger("eshop.auth")


# ==========================================
# Schemas
# ==========================================

class SignupRequest(BaseModel):
    name: str = Field(..., min_length=3, max_length=100)
    email: Email
    phone: Optional[str] = None
    password: str = Field(..., min_length=6)
    password_confirm: str

    @model_validator(mode="after")
    def passwords_match(self):
        if self.password != self.password_confirm:
            raise ValueError("Password confirmation is incorrect")
        return self


class LoginRequest(BaseModel):
    email: Email
    password: str = Field(..., min_length=1)


class ForgotPasswordRequest(BaseModel):
    email: Email


class VerifyResetCodeRequest(BaseModel):
    reset_code: str = Field(..., min_length=1)


class ResetPasswordRequest(BaseModel):
    email: Email
    new_password: str = Field(..., min_length=6)


# ==========================================
# Signup / Login
# ==========================================

@router.post("/signup", status_code=201)
async def signup(body: SignupRequest, db: Session = Depends(get_db)):
    user = auth_service.signup(db, body.name, body.email, body.password, phone=body.phone)
    db.commit()
    return {"data": user_service.serialize(user), "token": create_token(user.id)}


@router.post("/login")
async def login(body: LoginRequest, db: Session = Depends(get_db)):
    user = auth_service.login(db, body.email, body.password)
    db.commit()
    return {"data": user_service.serialize(user), "token": create_token(user.id)}


# ==========================================
# Password reset
# ==========================================

@router.post("/forgotPassword")
async def forgot_password(body: ForgotPasswordRequest, db: Session = Depends(get_db)):
    user, code = auth_service.start_password_reset(db, body.email)
    db.commit()

    message = (
        f"Hi {user.name},\n\n"
        f"We received a request to reset the password on your E-shop account.\n"
        f"{code}\n"
        f"Enter this code to complete the reset. It expires in {PASSWORD_RESET_EXPIRE_MINUTES} minutes.\n"
    )
    try:
        send_email(user.email, f"Your password reset code (valid for {PASSWORD_RESET_EXPIRE_MINUTES} min)", message)
    except EmailDeliveryError:
        auth_service.clear_password_reset(db, user)
        db.commit()
        raise

    return {"status": "Success", "message": "Reset code sent to your email."}


@router.post("/verifyResetCode")
async def verify_reset_code(body: VerifyResetCodeRequest, db: Session = Depends(get_db)):
    auth_service.verify_reset_code(db, body.reset_code)
    db.commit()
    return {"status": "Success"}


@router.put("/resetPassword")
async def reset_password(body: ResetPasswordRequest, db: Session = Depends(get_db)):
    user = auth_service.reset_password(db, body.email, body.new_password)
    db.commit()
    logger.info(f"Password reset completed for user {user.id}")
    return {"token": create_token(user.id)}
