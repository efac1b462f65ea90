"""
Payment Routes
================
Stripe webhook endpoint. Needs the raw request body for signature checks,
so it reads request.body() instead of a parsed model.
"""

from fastapi import APIRouter, Request, Depends
from sqlalchemy.orm import Session

from config.database import get_db
from modules.payment.service import payment_service

router = APIRouter(tags=["payment"])


@router.post("/webhook-checkout")
async def webhook_checkout(request: Request, db: Session = Depends(get_db)):
    payload = await request.body()
    signature = request.headers.get("stripe-signature", "")
    return payment_service.handle_webhook(db, payload, signature)
