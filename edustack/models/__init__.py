# edustack/models/__init__.py - Import all models so SQLAlchemy can discover them

from edustack.models.base import Base

from edustack.models.user import User, UserRole, STAFF_ROLES
from edustack.models.school import School, SchoolMember
from edustack.models.staff import Staff
from edustack.models.student import Student
from edustack.models.class_model import Class, Section
from edustack.models.academic import AcademicSession, AcademicTerm
from edustack.models.enrollment import (
    EnrollmentStatus,
    StudentEnrollment,
    PromotionHistory,
    StudentTransfer,
)

__all__ = [
    "Base",
    "User",
    "UserRole",
    "STAFF_ROLES",
    "School",
    "SchoolMember",
    "Staff",
    "Student",
    "Class",
    "Section",
    "AcademicSession",
    "AcademicTerm",
    "EnrollmentStatus",
    "StudentEnrollment",
    "PromotionHistory",
    "StudentTransfer",
]
