# edustack/schemas/academic.py - Session and term schemas
from datetime import date, datetime
from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional, List
from uuid import UUID


class TermIn(BaseModel):
    label: str = Field(..., min_length=1, max_length=48, description="Term label, e.g. 'First Term'")
    start_date: date
    end_date: date

    @field_validator("label")
    @classmethod
    def strip_label(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Term label cannot be empty")
        return v.strip()


class SessionCreate(BaseModel):
    label: str = Field(..., min_length=1, max_length=64, description="Session label, e.g. '2024/2025'")
    start_date: date
    end_date: date
    is_active: bool = False
    terms: List[TermIn] = Field(default_factory=list)

    @field_validator("label")
    @classmethod
    def strip_label(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Session label cannot be empty")
        return v.strip()


class SessionUpdate(BaseModel):
    label: Optional[str] = Field(None, min_length=1, max_length=64)
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    is_active: Optional[bool] = None
    terms: Optional[List[TermIn]] = None


class TermOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    session_id: UUID
    label: str
    display_label: str
    start_date: date
    end_date: date
    is_active: bool


class SessionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    label: str
    start_date: date
    end_date: date
    is_active: bool
    created_at: datetime
    updated_at: datetime
    terms: List[TermOut] = []


class TermReconcileOut(BaseModel):
    deactivated: int
    activated: int
