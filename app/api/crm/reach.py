from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.core.deps import get_current_user
from app.db.session import get_db
from app.models.customer import Customer
from app.schemas.crm import ReachEmail
from app.services.email_service import EmailDeliveryError, send_email_message, sender_display_name

router = APIRouter()
_LOG = logging.getLogger("uvicorn.error")

DEFAULT_SUBJECT = "Message from your property advisor"


@router.post("/send-email")
def send_email(payload: ReachEmail, db: Session = Depends(get_db), user: dict = Depends(get_current_user)):
    cust_id = str(payload.cust_id or "").strip()
    message = str(payload.message or "").strip()
    if not cust_id or not message:
        raise HTTPException(status_code=400, detail="custId and message are required")

    customer = db.query(Customer).filter(Customer.cust_id == cust_id).first()
    if customer is None:
        raise HTTPException(status_code=404, detail="Customer not found")
    if not str(customer.email or "").strip():
        raise HTTPException(status_code=400, detail="Customer has no email address")

    subject = str(payload.subject or "").strip() or DEFAULT_SUBJECT
    try:
        delivery = send_email_message(
            email=customer.email,
            subject=subject,
            body=f"Dear {customer.name},\n\n{message}\n",
            sender_name=sender_display_name(user.get("firm_name")),
        )
    except EmailDeliveryError as exc:
        _LOG.error("Reach email to customer %s failed: %s", cust_id, exc)
        raise HTTPException(status_code=500, detail="Failed to send email")

    return {
        "success": True,
        "data": {"messageId": delivery.get("message_id"), "provider": delivery.get("provider")},
        "message": "Email sent",
    }
