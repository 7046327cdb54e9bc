# edustack/schemas/auth.py - Signup, signin and user payloads
from datetime import date, datetime
from decimal import Decimal
from pydantic import BaseModel, EmailStr, Field, field_validator
from typing import Optional, List
from uuid import UUID

from edustack.models.user import UserRole, STAFF_ROLES


class AdminSignupIn(BaseModel):
    email: EmailStr
    username: str = Field(..., min_length=3, max_length=64)
    password: str = Field(..., min_length=8, max_length=128)

    @field_validator("username")
    @classmethod
    def validate_username(cls, v: str) -> str:
        v = v.strip()
        if not v or " " in v:
            raise ValueError("Username cannot be empty or contain spaces")
        return v

    class Config:
        json_schema_extra = {
            "example": {
                "email": "admin@edustack.io",
                "username": "admin",
                "password": "change-me-please"
            }
        }


class StaffSignupIn(AdminSignupIn):
    school_id: UUID
    role: UserRole = UserRole.STAFF
    name: str = Field(..., min_length=1, max_length=128)
    phone: Optional[str] = Field(None, max_length=32)
    address: Optional[str] = Field(None, max_length=256)
    designation: Optional[str] = Field(None, max_length=64)
    gender: Optional[str] = Field(None, max_length=16)
    dob: Optional[date] = None
    salary: Optional[Decimal] = Field(None, ge=0)
    joining_date: Optional[date] = None
    photo_url: Optional[str] = Field(None, max_length=512)
    qualification: Optional[str] = Field(None, max_length=128)
    notes: Optional[str] = None

    @field_validator("role")
    @classmethod
    def validate_role(cls, v: UserRole) -> UserRole:
        if v not in STAFF_ROLES:
            raise ValueError(f"Staff role must be one of: {', '.join(r.value for r in STAFF_ROLES)}")
        return v


class StudentSignupIn(AdminSignupIn):
    school_id: UUID
    name: str = Field(..., min_length=1, max_length=128)
    admission_number: Optional[int] = Field(None, ge=1)
    gender: Optional[str] = Field(None, max_length=16)
    dob: Optional[date] = None
    phone: Optional[str] = Field(None, max_length=32)
    address: Optional[str] = Field(None, max_length=256)
    admission_date: Optional[date] = None
    religion: Optional[str] = Field(None, max_length=64)
    blood_group: Optional[str] = Field(None, max_length=8)
    father_name: Optional[str] = Field(None, max_length=128)
    mother_name: Optional[str] = Field(None, max_length=128)
    guardian_name: Optional[str] = Field(None, max_length=128)
    guardian_phone: Optional[str] = Field(None, max_length=32)
    city: Optional[str] = Field(None, max_length=64)
    state: Optional[str] = Field(None, max_length=64)
    country: Optional[str] = Field(None, max_length=64)
    photo_url: Optional[str] = Field(None, max_length=512)


class SigninIn(BaseModel):
    email_or_username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class MembershipOut(BaseModel):
    school_id: UUID
    role: str

    class Config:
        from_attributes = True


class UserOut(BaseModel):
    id: UUID
    email: str
    username: str
    is_super_admin: bool
    is_active: bool
    created_at: datetime
    last_login: Optional[datetime] = None
    memberships: List[MembershipOut] = []

    class Config:
        from_attributes = True


class AuthOut(BaseModel):
    user: UserOut
    access_token: str
    token_type: str = "bearer"
