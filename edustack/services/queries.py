# edustack/services/queries.py - Filter objects for the student list endpoints
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field
from sqlalchemy import Select, and_, exists, or_, select
from sqlalchemy.orm import selectinload

from edustack.models.enrollment import StudentEnrollment, StudentTransfer
from edustack.models.school import SchoolMember
from edustack.models.student import Student
from edustack.models.user import UserRole


class StudentFilter(BaseModel):
    school_id: UUID
    session_id: Optional[UUID] = None
    class_id: Optional[UUID] = None
    name: Optional[str] = Field(None, max_length=128, description="Case-insensitive substring of the name")
    admission_number: Optional[int] = None


class TransferFilter(BaseModel):
    school_id: UUID
    from_school_id: Optional[UUID] = None
    to_school_id: Optional[UUID] = None


def build_student_query(filters: StudentFilter) -> Select:
    """
    Students holding a STUDENT membership in the school.

    session_id and class_id narrow the list to students with an
    enrollment row (in any status) matching both.
    """
    query = (
        select(Student)
        .join(
            SchoolMember,
            and_(
                SchoolMember.user_id == Student.user_id,
                SchoolMember.school_id == filters.school_id,
                SchoolMember.role == UserRole.STUDENT.value,
            ),
        )
        .options(selectinload(Student.user))
    )

    if filters.session_id or filters.class_id:
        conditions = [StudentEnrollment.student_id == Student.id]
        if filters.session_id:
            conditions.append(StudentEnrollment.session_id == filters.session_id)
        if filters.class_id:
            conditions.append(StudentEnrollment.class_id == filters.class_id)
        query = query.where(exists(select(StudentEnrollment.id).where(*conditions)))

    if filters.name:
        query = query.where(Student.name.ilike(f"%{filters.name.strip()}%"))
    if filters.admission_number is not None:
        query = query.where(Student.admission_number == filters.admission_number)

    return query.order_by(Student.name)


def build_transfer_query(filters: TransferFilter) -> Select:
    """Transfers into or out of the school, newest first"""
    query = (
        select(StudentTransfer)
        .options(selectinload(StudentTransfer.student))
        .where(
            or_(
                StudentTransfer.from_school_id == filters.school_id,
                StudentTransfer.to_school_id == filters.school_id,
            )
        )
    )
    if filters.from_school_id:
        query = query.where(StudentTransfer.from_school_id == filters.from_school_id)
    if filters.to_school_id:
        query = query.where(StudentTransfer.to_school_id == filters.to_school_id)

    return query.order_by(StudentTransfer.created_at.desc())
