# edustack/schemas/student.py - Lifecycle requests and student views
from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import date, datetime
from uuid import UUID


class EnrollIn(BaseModel):
    student_id: UUID
    class_id: UUID
    section_id: UUID


class PromoteIn(BaseModel):
    student_ids: List[UUID] = Field(..., min_length=1)
    from_class_id: UUID
    to_class_id: UUID
    section_id: UUID


class TransferIn(BaseModel):
    student_ids: List[UUID] = Field(..., min_length=1)
    to_school_id: UUID
    to_class_id: UUID
    to_section_id: UUID
    transfer_reason: Optional[str] = Field(None, max_length=1000)


class EnrollmentOut(BaseModel):
    id: UUID
    student_id: UUID
    class_id: UUID
    section_id: UUID
    session_id: UUID
    term_id: UUID
    status: str
    created_at: datetime

    class Config:
        from_attributes = True


class LabelRef(BaseModel):
    id: UUID
    label: str

    class Config:
        from_attributes = True


class PlacementOut(BaseModel):
    id: UUID
    status: str
    class_info: LabelRef = Field(validation_alias="class_")
    section: LabelRef
    session: LabelRef
    term: LabelRef
    created_at: datetime

    class Config:
        from_attributes = True


class StudentOut(BaseModel):
    id: UUID
    user_id: UUID
    admission_number: Optional[int] = None
    name: str
    gender: Optional[str] = None
    dob: Optional[date] = None
    phone: Optional[str] = None
    guardian_name: Optional[str] = None
    guardian_phone: Optional[str] = None
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True


class StudentDetail(StudentOut):
    email: Optional[str] = None
    username: Optional[str] = None
    address: Optional[str] = None
    admission_date: Optional[date] = None
    religion: Optional[str] = None
    blood_group: Optional[str] = None
    father_name: Optional[str] = None
    mother_name: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    photo_url: Optional[str] = None
    updated_at: datetime
    current_enrollments: List[PlacementOut] = []


class StudentRef(BaseModel):
    id: UUID
    name: str
    admission_number: Optional[int] = None

    class Config:
        from_attributes = True


class TransferOut(BaseModel):
    id: UUID
    student: StudentRef
    from_school_id: UUID
    to_school_id: UUID
    to_class_id: UUID
    to_section_id: UUID
    transfer_reason: Optional[str] = None
    transfer_date: date
    created_at: datetime

    class Config:
        from_attributes = True
