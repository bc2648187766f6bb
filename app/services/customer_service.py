from __future__ import annotations

import secrets
from typing import Any

from sqlalchemy.orm import Session

from app.models.customer import Customer

CUST_ID_ATTEMPTS = 100


class DuplicatePhoneError(Exception):
    def __init__(self, existing: Customer):
        super().__init__(f"Customer already exists with ID {existing.cust_id}")
        self.existing = existing


def generate_cust_id() -> str:
    return str(1000 + secrets.randbelow(9000))


def allocate_cust_id(db: Session) -> str:
    for _ in range(CUST_ID_ATTEMPTS):
        candidate = generate_cust_id()
        if db.query(Customer.id).filter(Customer.cust_id == candidate).first() is None:
            return candidate
    raise RuntimeError("Unable to allocate a unique customer id")


def find_by_phone(db: Session, phone: str) -> Customer | None:
    return db.query(Customer).filter(Customer.phone == phone).first()


def split_csv(raw: Any) -> list[str]:
    """Accepts a list or a comma separated string; trims, drops blanks and duplicates."""
    if raw is None:
        return []
    values: list[str] = []
    items = raw if isinstance(raw, (list, tuple)) else [raw]
    for item in items:
        if isinstance(item, str):
            values.extend(item.split(","))
    cleaned: list[str] = []
    for value in values:
        text = value.strip()
        if text and text not in cleaned:
            cleaned.append(text)
    return cleaned


def create_customer(db: Session, fields: dict[str, Any]) -> Customer:
    phone = str(fields.get("phone") or "").strip()
    existing = find_by_phone(db, phone)
    if existing is not None:
        raise DuplicatePhoneError(existing)
    customer = Customer(
        cust_id=allocate_cust_id(db),
        name=str(fields.get("name") or "").strip(),
        phone=phone,
        email=fields.get("email") or None,
        deal_type=fields.get("deal_type") or None,
        req=fields.get("req") or None,
        description=fields.get("description") or None,
        bhk=fields.get("bhk") or None,
        typology=fields.get("typology") or None,
        property_types=split_csv(fields.get("property_types")),
        budget=float(fields.get("budget") or 0),
        status=fields.get("status") or "New",
    )
    db.add(customer)
    db.commit()
    db.refresh(customer)
    return customer
