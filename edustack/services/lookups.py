# edustack/services/lookups.py - Shared lookups that double as preconditions
from typing import Iterable, List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from edustack.core.errors import ConflictError, ForbiddenError, NotFoundError
from edustack.models.academic import AcademicSession, AcademicTerm
from edustack.models.class_model import Class, Section
from edustack.models.school import School
from edustack.models.student import Student
from edustack.models.user import User, UserRole


def ensure_school_role(actor: Optional[User], school_ids: Iterable[UUID], roles: List[UserRole]) -> None:
    """
    Check the caller's role in every school an operation touches.

    Role dependencies only prove the role exists in some school; this
    narrows it to the schools being changed. System callers pass no actor.
    """
    if actor is None:
        return
    for school_id in school_ids:
        if not actor.has_role_in(school_id, roles):
            raise ForbiddenError(
                f"Access denied. Required roles in this school: {', '.join(UserRole(r).value for r in roles)}"
            )


def find_student(db: Session, student_id: UUID) -> Student:
    student = db.get(Student, student_id)
    if not student:
        raise NotFoundError("Student not found")
    return student


def find_school(db: Session, school_id: UUID, require_active: bool = False) -> School:
    school = db.get(School, school_id)
    if not school:
        raise NotFoundError("School not found")
    if require_active and not school.is_active:
        raise NotFoundError(f"School {school.name} is not active")
    return school


def find_class_with_sections(db: Session, class_id: UUID) -> Class:
    """Load a class with its sections; a class without sections cannot take students"""
    class_obj = db.execute(
        select(Class)
        .options(selectinload(Class.sections))
        .where(Class.id == class_id)
    ).scalar_one_or_none()

    if not class_obj:
        raise NotFoundError("Class not found")
    if not class_obj.sections:
        raise NotFoundError(f"Class {class_obj.label} has no sections")
    return class_obj


def find_section_in_class(class_obj: Class, section_id: UUID, message: str = "Section not found in class") -> Section:
    for section in class_obj.sections:
        if section.id == section_id:
            return section
    raise NotFoundError(message)


def find_active_session(db: Session) -> AcademicSession:
    """
    Return the single active session with its terms loaded.

    The activation paths keep this to one row; finding more means
    the data was edited outside the API and nothing should be written.
    """
    sessions = db.execute(
        select(AcademicSession)
        .options(selectinload(AcademicSession.terms))
        .where(AcademicSession.is_active.is_(True))
    ).scalars().all()

    if not sessions:
        raise NotFoundError("No active session found")
    if len(sessions) > 1:
        raise ConflictError("More than one active session found")
    return sessions[0]


def find_active_term(session: AcademicSession) -> AcademicTerm:
    active_terms = [term for term in session.terms if term.is_active]
    if not active_terms:
        raise NotFoundError("No active term in session")
    if len(active_terms) > 1:
        raise ConflictError(f"Session {session.label} has more than one active term")
    return active_terms[0]
