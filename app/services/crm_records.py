from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Callable, Mapping

from app.models.customer import Customer, CustomerNote
from app.models.property import Property
from app.models.task import Task

PROPERTY_IMAGE_ROUTE = "/api/properties/images/"


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def as_utc(value: datetime | None) -> datetime | None:
    """Naive datetimes are taken as UTC; aware ones are converted."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def property_image_url(key: str) -> str:
    return PROPERTY_IMAGE_ROUTE + str(key)


def serialize_customer(row: Customer) -> dict[str, Any]:
    return {
        "id": str(row.id),
        "custId": row.cust_id,
        "name": row.name,
        "phone": row.phone,
        "email": row.email,
        "dealType": row.deal_type,
        "req": row.req,
        "description": row.description,
        "bhk": row.bhk,
        "typology": row.typology,
        "propertyTypes": list(row.property_types or []),
        "budget": row.budget,
        "status": row.status,
        "createdAt": _iso(row.created_at),
        "updatedAt": _iso(row.updated_at),
    }


def serialize_note(row: CustomerNote) -> dict[str, Any]:
    return {
        "id": str(row.id),
        "type": row.type,
        "text": row.text,
        "followUpDate": _iso(row.follow_up_date),
        "createdAt": _iso(row.created_at),
    }


def _floor_details(row: Property) -> dict[str, Any] | None:
    details = {
        "unitConfiguration": row.unit_configuration,
        "floorNumber": row.floor_number,
        "totalFloors": row.total_floors,
        "facing": row.facing,
        "parkingSlots": row.parking_slots,
    }
    if all(value is None for value in details.values()):
        return None
    return details


def serialize_property(row: Property) -> dict[str, Any]:
    return {
        "id": str(row.id),
        "title": row.title,
        "type": row.type,
        "status": row.status,
        "price": row.price,
        "location": row.location,
        "sqft": row.sqft,
        "carpetArea": row.carpet_area,
        "builtUpArea": row.built_up_area,
        "floorDetails": _floor_details(row),
        "amenities": list(row.amenities or []),
        "images": [property_image_url(key) for key in (row.images or [])],
        "description": row.description or "",
        "customerCustId": row.customer_cust_id,
        "closedDate": _iso(row.closed_date),
        "createdAt": _iso(row.created_at),
        "updatedAt": _iso(row.updated_at),
    }


def serialize_task(row: Task) -> dict[str, Any]:
    return {
        "id": str(row.id),
        "title": row.title,
        "type": row.type,
        "date": _iso(row.date),
        "description": row.description,
        "customerCustId": row.customer_cust_id,
        "createdAt": _iso(row.created_at),
        "updatedAt": _iso(row.updated_at),
    }


@dataclass(frozen=True)
class QueryField:
    column: Any
    is_list: bool = False


@dataclass(frozen=True)
class CollectionSpec:
    name: str
    model: type
    fields: Mapping[str, QueryField]
    serialize: Callable[[Any], dict[str, Any]]


def _fields(mapping: dict[str, QueryField]) -> Mapping[str, QueryField]:
    return MappingProxyType(mapping)


CUSTOMER_COLLECTION = CollectionSpec(
    name="Customer",
    model=Customer,
    fields=_fields(
        {
            "id": QueryField(Customer.id),
            "_id": QueryField(Customer.id),
            "custId": QueryField(Customer.cust_id),
            "name": QueryField(Customer.name),
            "phone": QueryField(Customer.phone),
            "email": QueryField(Customer.email),
            "dealType": QueryField(Customer.deal_type),
            "req": QueryField(Customer.req),
            "description": QueryField(Customer.description),
            "bhk": QueryField(Customer.bhk),
            "typology": QueryField(Customer.typology),
            "propertyTypes": QueryField(Customer.property_types, is_list=True),
            "budget": QueryField(Customer.budget),
            "status": QueryField(Customer.status),
            "createdAt": QueryField(Customer.created_at),
            "updatedAt": QueryField(Customer.updated_at),
        }
    ),
    serialize=serialize_customer,
)

PROPERTY_COLLECTION = CollectionSpec(
    name="Property",
    model=Property,
    fields=_fields(
        {
            "id": QueryField(Property.id),
            "_id": QueryField(Property.id),
            "title": QueryField(Property.title),
            "type": QueryField(Property.type),
            "status": QueryField(Property.status),
            "price": QueryField(Property.price),
            "location": QueryField(Property.location),
            "sqft": QueryField(Property.sqft),
            "carpetArea": QueryField(Property.carpet_area),
            "builtUpArea": QueryField(Property.built_up_area),
            "floorDetails.unitConfiguration": QueryField(Property.unit_configuration),
            "floorDetails.floorNumber": QueryField(Property.floor_number),
            "floorDetails.totalFloors": QueryField(Property.total_floors),
            "floorDetails.facing": QueryField(Property.facing),
            "floorDetails.parkingSlots": QueryField(Property.parking_slots),
            "amenities": QueryField(Property.amenities, is_list=True),
            "description": QueryField(Property.description),
            "customerCustId": QueryField(Property.customer_cust_id),
            "closedDate": QueryField(Property.closed_date),
            "createdAt": QueryField(Property.created_at),
            "updatedAt": QueryField(Property.updated_at),
        }
    ),
    serialize=serialize_property,
)

TASK_COLLECTION = CollectionSpec(
    name="Task",
    model=Task,
    fields=_fields(
        {
            "id": QueryField(Task.id),
            "_id": QueryField(Task.id),
            "title": QueryField(Task.title),
            "type": QueryField(Task.type),
            "date": QueryField(Task.date),
            "description": QueryField(Task.description),
            "customerCustId": QueryField(Task.customer_cust_id),
            "createdAt": QueryField(Task.created_at),
            "updatedAt": QueryField(Task.updated_at),
        }
    ),
    serialize=serialize_task,
)

QUERYABLE_COLLECTIONS: Mapping[str, CollectionSpec] = MappingProxyType(
    {spec.name: spec for spec in (CUSTOMER_COLLECTION, PROPERTY_COLLECTION, TASK_COLLECTION)}
)
