from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.core.deps import get_current_user
from app.db.session import get_db
from app.models.customer import Customer
from app.schemas.crm import LeadCreate
from app.services.crm_records import serialize_customer
from app.services.customer_service import DuplicatePhoneError, create_customer

router = APIRouter()


# Older clients expect a bare list here instead of the response envelope.
@router.get("")
def list_leads(db: Session = Depends(get_db), user: dict = Depends(get_current_user)):
    rows = db.query(Customer).order_by(Customer.created_at.desc()).all()
    return [serialize_customer(r) for r in rows]


@router.post("", status_code=201)
def create_lead(payload: LeadCreate, db: Session = Depends(get_db), user: dict = Depends(get_current_user)):
    if not str(payload.name or "").strip() or not str(payload.phone or "").strip():
        raise HTTPException(status_code=400, detail="Name and phone are required")
    try:
        customer = create_customer(db, payload.model_dump())
    except DuplicatePhoneError as exc:
        raise HTTPException(status_code=409, detail=str(exc))
    return serialize_customer(customer)
