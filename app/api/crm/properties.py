from __future__ import annotations

import json
import logging
import uuid
from datetime import datetime
from typing import Any, List, Optional

from botocore.exceptions import ClientError
from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile
from fastapi.responses import StreamingResponse
from sqlalchemy import or_
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.deps import get_current_user
from app.db.session import get_db
from app.models.property import PROPERTY_STATUSES, PROPERTY_TYPES, Property
from app.services.crm_records import serialize_property
from app.services.customer_service import split_csv
from app.services.s3_storage import build_object_key, delete_objects_quietly, get_s3_storage

router = APIRouter()
_LOG = logging.getLogger("app.storage")

IMAGE_PREFIX = "properties/"
TRUTHY_FORM_VALUES = {"true", "on", "1", "yes"}
SORT_ORDERS = {
    "priceAsc": Property.price.asc(),
    "priceDesc": Property.price.desc(),
    "createdAsc": Property.created_at.asc(),
    "createdDesc": Property.created_at.desc(),
}
FLOOR_DETAIL_FIELDS = {
    "unitConfiguration": ("unit_configuration", str),
    "floorNumber": ("floor_number", int),
    "totalFloors": ("total_floors", int),
    "facing": ("facing", str),
    "parkingSlots": ("parking_slots", int),
}


def _max_image_bytes() -> int:
    return int(settings.MAX_IMAGE_MB) * 1024 * 1024


def _number_or_400(raw: Any, field_name: str, *, cast=float):
    if raw is None or str(raw).strip() == "":
        return None
    try:
        return cast(str(raw).strip())
    except ValueError:
        raise HTTPException(status_code=400, detail=f'Invalid value for "{field_name}"')


def _date_or_400(raw: Any, field_name: str) -> datetime | None:
    if raw is None or str(raw).strip() == "":
        return None
    try:
        return datetime.fromisoformat(str(raw).strip().replace("Z", "+00:00"))
    except ValueError:
        raise HTTPException(status_code=400, detail=f'Invalid value for "{field_name}"')


def _list_field(raw: str | None) -> list[str]:
    text = str(raw or "").strip()
    if text.startswith("["):
        try:
            parsed = json.loads(text)
        except ValueError:
            raise HTTPException(status_code=400, detail="Invalid list value")
        return split_csv([str(item) for item in parsed if item is not None])
    return split_csv(text)


def _floor_details(raw: str | None) -> dict[str, Any]:
    text = str(raw or "").strip()
    if not text:
        return {}
    try:
        parsed = json.loads(text)
    except ValueError:
        raise HTTPException(status_code=400, detail='Invalid value for "floorDetails"')
    if not isinstance(parsed, dict):
        raise HTTPException(status_code=400, detail='Invalid value for "floorDetails"')
    out: dict[str, Any] = {}
    for key, (column, cast) in FLOOR_DETAIL_FIELDS.items():
        if key not in parsed:
            continue
        value = parsed[key]
        if cast is int:
            out[column] = _number_or_400(value, f"floorDetails.{key}", cast=int)
        else:
            out[column] = str(value).strip() or None if value is not None else None
    return out


def property_form(
    title: Optional[str] = Form(None),
    type: Optional[str] = Form(None),
    status: Optional[str] = Form(None),
    price: Optional[str] = Form(None),
    location: Optional[str] = Form(None),
    sqft: Optional[str] = Form(None),
    carpet_area: Optional[str] = Form(None, alias="carpetArea"),
    built_up_area: Optional[str] = Form(None, alias="builtUpArea"),
    floor_details: Optional[str] = Form(None, alias="floorDetails"),
    amenities: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    customer_cust_id: Optional[str] = Form(None, alias="customerCustId"),
    closed_date: Optional[str] = Form(None, alias="closedDate"),
    replace_images: Optional[str] = Form(None, alias="replaceImages"),
    images: List[UploadFile] = File(default=[]),
    images_bracketed: List[UploadFile] = File(default=[], alias="images[]"),
) -> dict[str, Any]:
    return {
        "fields": {
            "title": title,
            "type": type,
            "status": status,
            "price": price,
            "location": location,
            "sqft": sqft,
            "carpetArea": carpet_area,
            "builtUpArea": built_up_area,
            "floorDetails": floor_details,
            "amenities": amenities,
            "description": description,
            "customerCustId": customer_cust_id,
            "closedDate": closed_date,
        },
        "replace_images": str(replace_images or "").strip().lower() in TRUTHY_FORM_VALUES,
        "images": [f for f in list(images or []) + list(images_bracketed or []) if f is not None and f.filename],
    }


def _read_images_or_400(uploads: list[UploadFile]) -> list[tuple[str, bytes, str]]:
    if len(uploads) > int(settings.MAX_PROPERTY_IMAGES):
        raise HTTPException(status_code=400, detail=f"Maximum {settings.MAX_PROPERTY_IMAGES} images allowed")
    out = []
    for upload in uploads:
        mime_type = str(upload.content_type or "").lower()
        if not mime_type.startswith("image/"):
            raise HTTPException(status_code=400, detail="Only image uploads are allowed")
        content = upload.file.read()
        if len(content) > _max_image_bytes():
            raise HTTPException(status_code=400, detail=f"Image exceeds {settings.MAX_IMAGE_MB} MB limit")
        out.append((upload.filename or "image.jpg", content, mime_type))
    return out


def _store_images(property_id: str, images: list[tuple[str, bytes, str]]) -> list[str]:
    storage = get_s3_storage()
    keys: list[str] = []
    try:
        for file_name, content, mime_type in images:
            key = build_object_key(f"{IMAGE_PREFIX}{property_id}", file_name)
            storage.put_object(key, content, mime_type)
            keys.append(key)
    except ClientError:
        delete_objects_quietly(storage, keys)
        _LOG.exception("Property image upload failed")
        raise HTTPException(status_code=500, detail="Image upload failed")
    return keys


def _apply_fields(row: Property, fields: dict[str, Any], *, creating: bool) -> None:
    def present(key: str) -> bool:
        return fields.get(key) is not None

    if creating:
        required = ("title", "type", "status", "price", "location")
        if any(not str(fields.get(key) or "").strip() for key in required):
            raise HTTPException(status_code=400, detail="Missing required fields")

    if present("type"):
        value = str(fields["type"]).strip()
        if value not in PROPERTY_TYPES:
            raise HTTPException(status_code=400, detail="Invalid property type")
        row.type = value
    if present("status"):
        value = str(fields["status"]).strip()
        if value not in PROPERTY_STATUSES:
            raise HTTPException(status_code=400, detail="Invalid property status")
        row.status = value
    for key in ("title", "location"):
        if present(key):
            value = str(fields[key]).strip()
            if not value:
                raise HTTPException(status_code=400, detail=f'"{key}" cannot be empty')
            setattr(row, key, value)
    if present("price"):
        price = _number_or_400(fields["price"], "price")
        if price is None:
            raise HTTPException(status_code=400, detail='"price" cannot be empty')
        row.price = price
    for key, column in (("sqft", "sqft"), ("carpetArea", "carpet_area"), ("builtUpArea", "built_up_area")):
        if present(key):
            setattr(row, column, _number_or_400(fields[key], key))
    if present("floorDetails"):
        for column, value in _floor_details(fields["floorDetails"]).items():
            setattr(row, column, value)
    if present("amenities"):
        row.amenities = _list_field(fields["amenities"])
    if present("description"):
        row.description = str(fields["description"]).strip()
    if present("customerCustId"):
        row.customer_cust_id = str(fields["customerCustId"]).strip() or None
    if present("closedDate"):
        row.closed_date = _date_or_400(fields["closedDate"], "closedDate")


def _property_or_404(db: Session, property_id: str) -> Property:
    try:
        key = uuid.UUID(str(property_id))
    except ValueError:
        raise HTTPException(status_code=404, detail="Property not found")
    row = db.get(Property, key)
    if row is None:
        raise HTTPException(status_code=404, detail="Property not found")
    return row


@router.get("")
def list_properties(
    type: Optional[str] = Query(None),
    status: Optional[str] = Query(None),
    min_price: Optional[float] = Query(None, alias="minPrice"),
    max_price: Optional[float] = Query(None, alias="maxPrice"),
    search: Optional[str] = Query(None),
    sort: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    user: dict = Depends(get_current_user),
):
    q = db.query(Property)
    types = split_csv(type)
    if types:
        q = q.filter(Property.type.in_(types))
    statuses = split_csv(status)
    if statuses:
        q = q.filter(Property.status.in_(statuses))
    if min_price is not None:
        q = q.filter(Property.price >= min_price)
    if max_price is not None:
        q = q.filter(Property.price <= max_price)
    term = str(search or "").strip()
    if term:
        pattern = f"%{term}%"
        q = q.filter(
            or_(
                Property.title.ilike(pattern),
                Property.description.ilike(pattern),
                Property.location.ilike(pattern),
            )
        )
    q = q.order_by(SORT_ORDERS.get(str(sort or ""), Property.created_at.desc()))
    return {"success": True, "data": [serialize_property(r) for r in q.all()]}


@router.post("", status_code=201)
def create_property(
    form: dict = Depends(property_form),
    db: Session = Depends(get_db),
    user: dict = Depends(get_current_user),
):
    row = Property(amenities=[], images=[], description="")
    _apply_fields(row, form["fields"], creating=True)
    if not form["images"]:
        raise HTTPException(status_code=400, detail="At least one image is required")
    images = _read_images_or_400(form["images"])

    db.add(row)
    db.flush()
    row.images = _store_images(str(row.id), images)
    db.commit()
    db.refresh(row)
    return {"success": True, "data": serialize_property(row), "message": "Property created"}


@router.get("/images/{object_key:path}")
def download_image(object_key: str):
    key = str(object_key or "").strip()
    if not key.startswith(IMAGE_PREFIX) or ".." in key:
        raise HTTPException(status_code=404, detail="Image not found")
    try:
        obj = get_s3_storage().get_object(key)
    except ClientError:
        raise HTTPException(status_code=404, detail="Image not found")

    body = obj["Body"]
    content_length = obj.get("ContentLength")
    media_type = obj.get("ContentType") or "application/octet-stream"
    headers = {"Cache-Control": "public, max-age=86400"}
    if content_length is not None:
        headers["Content-Length"] = str(content_length)
    return StreamingResponse(body.iter_chunks(chunk_size=64 * 1024), media_type=media_type, headers=headers)


@router.get("/{property_id}")
def get_property(property_id: str, db: Session = Depends(get_db), user: dict = Depends(get_current_user)):
    return {"success": True, "data": serialize_property(_property_or_404(db, property_id))}


@router.put("/{property_id}")
def update_property(
    property_id: str,
    form: dict = Depends(property_form),
    db: Session = Depends(get_db),
    user: dict = Depends(get_current_user),
):
    row = _property_or_404(db, property_id)
    _apply_fields(row, form["fields"], creating=False)

    existing = list(row.images or [])
    if form["replace_images"] and not form["images"]:
        raise HTTPException(status_code=400, detail="New images are required when replacing images")
    kept = [] if form["replace_images"] else existing
    if len(kept) + len(form["images"]) > int(settings.MAX_PROPERTY_IMAGES):
        raise HTTPException(status_code=400, detail=f"Maximum {settings.MAX_PROPERTY_IMAGES} images allowed")
    images = _read_images_or_400(form["images"])

    if images:
        row.images = kept + _store_images(str(row.id), images)
    db.add(row)
    db.commit()
    db.refresh(row)
    if form["replace_images"]:
        delete_objects_quietly(get_s3_storage(), existing)
    return {"success": True, "data": serialize_property(row), "message": "Property updated"}


@router.delete("/{property_id}")
def delete_property(property_id: str, db: Session = Depends(get_db), user: dict = Depends(get_current_user)):
    row = _property_or_404(db, property_id)
    keys = list(row.images or [])
    db.delete(row)
    db.commit()
    delete_objects_quietly(get_s3_storage(), keys)
    return {"success": True, "data": None, "message": "Property deleted"}
