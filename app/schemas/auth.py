from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class RegisterIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    firm_name: Optional[str] = Field(default=None, alias="firmName")
    full_name: Optional[str] = Field(default=None, alias="fullName")
    email: Optional[str] = None
    password: Optional[str] = None


class LoginIn(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class ForgotIn(BaseModel):
    email: Optional[str] = None


class ResetIn(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None
    token: Optional[str] = None
