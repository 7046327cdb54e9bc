# edustack/schemas/school.py - School payloads
from datetime import datetime
from pydantic import BaseModel, EmailStr, Field, field_validator
from typing import Optional
import uuid


class SchoolCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=128, description="School name (required, unique)")
    email: Optional[EmailStr] = Field(None, description="Official school email")
    phone: Optional[str] = Field(None, max_length=128, description="Comma separated phone numbers")
    address: Optional[str] = Field(None, max_length=256, description="School address")

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("School name is required")
        return v.strip()


class SchoolUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=128)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=128)
    address: Optional[str] = Field(None, max_length=256)
    is_active: Optional[bool] = None


class SchoolOut(BaseModel):
    id: uuid.UUID
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True
