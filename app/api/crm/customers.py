from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.core.deps import get_current_user
from app.db.session import get_db
from app.models.customer import Customer, CustomerNote
from app.schemas.crm import CustomerCreate, CustomerUpdate, NoteCreate
from app.services.crm_records import as_utc, serialize_customer, serialize_note
from app.services.customer_service import DuplicatePhoneError, create_customer, find_by_phone, split_csv

router = APIRouter()


def _customer_or_404(db: Session, cust_id: str) -> Customer:
    customer = db.query(Customer).filter(Customer.cust_id == str(cust_id or "").strip()).first()
    if customer is None:
        raise HTTPException(status_code=404, detail="Customer not found")
    return customer


@router.get("")
def list_customers(db: Session = Depends(get_db), user: dict = Depends(get_current_user)):
    rows = db.query(Customer).order_by(Customer.created_at.desc()).all()
    return {"success": True, "data": [serialize_customer(r) for r in rows]}


@router.post("", status_code=201)
def create(payload: CustomerCreate, db: Session = Depends(get_db), user: dict = Depends(get_current_user)):
    name = str(payload.name or "").strip()
    phone = str(payload.phone or "").strip()
    if not name or not phone:
        raise HTTPException(status_code=400, detail="Name and phone are required")
    try:
        customer = create_customer(db, payload.model_dump())
    except DuplicatePhoneError as exc:
        raise HTTPException(status_code=409, detail=str(exc))
    return {
        "success": True,
        "data": serialize_customer(customer),
        "message": "Customer created",
        "custId": customer.cust_id,
    }


@router.get("/followups/upcoming")
def upcoming_followups(db: Session = Depends(get_db), user: dict = Depends(get_current_user)):
    now = datetime.now(timezone.utc)
    rows = (
        db.query(CustomerNote, Customer)
        .join(Customer, Customer.id == CustomerNote.customer_id)
        .filter(CustomerNote.follow_up_date.is_not(None))
        .all()
    )
    items = []
    for note, customer in rows:
        follow_up = as_utc(note.follow_up_date)
        if follow_up is None or follow_up < now:
            continue
        items.append(
            {
                "customerName": customer.name,
                "customerCustId": customer.cust_id,
                "type": note.type,
                "text": note.text,
                "followUpDate": follow_up.isoformat(),
            }
        )
    items.sort(key=lambda item: item["followUpDate"])
    return {"success": True, "data": items}


@router.get("/{cust_id}")
def get_customer(cust_id: str, db: Session = Depends(get_db), user: dict = Depends(get_current_user)):
    return {"success": True, "data": serialize_customer(_customer_or_404(db, cust_id))}


@router.put("/{cust_id}")
def update_customer(
    cust_id: str,
    payload: CustomerUpdate,
    db: Session = Depends(get_db),
    user: dict = Depends(get_current_user),
):
    customer = _customer_or_404(db, cust_id)
    updates = payload.model_dump(exclude_unset=True)

    if "phone" in updates:
        phone = str(updates["phone"] or "").strip()
        if not phone:
            raise HTTPException(status_code=400, detail="Phone cannot be empty")
        existing = find_by_phone(db, phone)
        if existing is not None and existing.id != customer.id:
            raise HTTPException(status_code=409, detail=f"Customer already exists with ID {existing.cust_id}")
        updates["phone"] = phone
    if "name" in updates and not str(updates["name"] or "").strip():
        raise HTTPException(status_code=400, detail="Name cannot be empty")
    if "property_types" in updates:
        updates["property_types"] = split_csv(updates["property_types"])
    if "budget" in updates:
        updates["budget"] = float(updates["budget"] or 0)
    if "status" in updates and not updates["status"]:
        updates["status"] = "New"

    for key, value in updates.items():
        setattr(customer, key, value)
    db.add(customer); db.commit(); db.refresh(customer)
    return {"success": True, "data": serialize_customer(customer), "message": "Customer updated"}


@router.delete("/{cust_id}")
def delete_customer(cust_id: str, db: Session = Depends(get_db), user: dict = Depends(get_current_user)):
    customer = _customer_or_404(db, cust_id)
    db.query(CustomerNote).filter(CustomerNote.customer_id == customer.id).delete(synchronize_session=False)
    db.delete(customer); db.commit()
    return {"success": True, "data": None, "message": "Customer deleted"}


@router.post("/{cust_id}/notes", status_code=201)
def add_note(
    cust_id: str,
    payload: NoteCreate,
    db: Session = Depends(get_db),
    user: dict = Depends(get_current_user),
):
    text = str(payload.text or "").strip()
    if not text:
        raise HTTPException(status_code=400, detail="Note text required")
    customer = _customer_or_404(db, cust_id)
    note = CustomerNote(
        customer_id=customer.id,
        type=payload.type or "general",
        text=text,
        follow_up_date=as_utc(payload.follow_up_date),
    )
    db.add(note); db.commit(); db.refresh(note)
    return {"success": True, "data": serialize_note(note), "message": "Note added"}


@router.get("/{cust_id}/notes")
def list_notes(cust_id: str, db: Session = Depends(get_db), user: dict = Depends(get_current_user)):
    customer = _customer_or_404(db, cust_id)
    notes = (
        db.query(CustomerNote)
        .filter(CustomerNote.customer_id == customer.id)
        .order_by(CustomerNote.created_at.asc())
        .all()
    )
    return {"success": True, "data": [serialize_note(n) for n in notes]}
