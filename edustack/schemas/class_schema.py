# edustack/schemas/class_schema.py
from pydantic import BaseModel, Field, field_validator
from typing import Optional, List, Union
from datetime import datetime
from uuid import UUID


def split_sections(value: Union[List[str], str]) -> List[str]:
    """Accept "A, B,C" or ["A", "B"]; blanks and repeats are dropped, order kept"""
    if isinstance(value, str):
        value = value.split(",")
    labels = []
    for label in value:
        label = str(label).strip().upper()
        if label and label not in labels:
            labels.append(label)
    return labels


class ClassCreate(BaseModel):
    label: str = Field(..., min_length=1, max_length=64)
    sections: List[str]
    school_id: UUID

    @field_validator("label")
    @classmethod
    def validate_label(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Class label cannot be empty")
        return v.strip()

    @field_validator("sections", mode="before")
    @classmethod
    def validate_sections(cls, v):
        labels = split_sections(v)
        if not labels:
            raise ValueError("At least one section is required")
        return labels


class ClassUpdate(BaseModel):
    label: Optional[str] = Field(None, min_length=1, max_length=64)
    sections: Optional[List[str]] = None
    school_id: Optional[UUID] = None

    @field_validator("sections", mode="before")
    @classmethod
    def validate_sections(cls, v):
        if v is None:
            return v
        labels = split_sections(v)
        if not labels:
            raise ValueError("At least one section is required")
        return labels


class SectionOut(BaseModel):
    id: UUID
    label: str

    class Config:
        from_attributes = True


class ClassOut(BaseModel):
    id: UUID
    school_id: UUID
    label: str
    sections: List[SectionOut] = []
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
