from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

DealType = Literal["Buy", "Rent", "JV", "Investment", "Consultation"]
CustomerStatus = Literal["New", "Interested", "Closed"]
NoteType = Literal["call", "meeting", "follow-up", "general"]
TaskType = Literal["Client Meeting", "Site Visit", "Internal Review", "Call", "Follow-Up", "Other"]


class CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class CustomerCreate(CamelModel):
    name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    deal_type: Optional[DealType] = Field(default=None, alias="dealType")
    req: Optional[str] = None
    description: Optional[str] = None
    bhk: Optional[str] = None
    typology: Optional[str] = None
    property_types: Union[List[str], str, None] = Field(default=None, alias="propertyTypes")
    budget: Optional[float] = None
    status: Optional[CustomerStatus] = None


class CustomerUpdate(CustomerCreate):
    pass


class NoteCreate(CamelModel):
    type: Optional[NoteType] = None
    text: Optional[str] = None
    follow_up_date: Optional[datetime] = Field(default=None, alias="followUpDate")


class LeadCreate(CamelModel):
    name: Optional[str] = None
    phone: Optional[str] = None
    req: Optional[str] = None
    budget: Optional[float] = None
    status: Optional[CustomerStatus] = None


class TaskCreate(CamelModel):
    title: Optional[str] = None
    type: Optional[TaskType] = None
    date: Optional[datetime] = None
    description: Optional[str] = None
    customer_cust_id: Optional[str] = Field(default=None, alias="customerCustId")


class TaskUpdate(TaskCreate):
    pass


class ReachEmail(CamelModel):
    cust_id: Optional[str] = Field(default=None, alias="custId")
    message: Optional[str] = None
    subject: Optional[str] = None
