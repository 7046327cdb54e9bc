# edustack/services/student_lifecycle.py - Enrollment, promotion and transfer
from typing import Dict, List, Optional, Sequence
from uuid import UUID
import logging

from sqlalchemy import select, update
from sqlalchemy.orm import Session, selectinload

from edustack.core.db import atomic
from edustack.core.errors import ConflictError, NotFoundError, ValidationError
from edustack.models.enrollment import (
    EnrollmentStatus,
    PromotionHistory,
    StudentEnrollment,
    StudentTransfer,
)
from edustack.models.school import SchoolMember
from edustack.models.student import Student
from edustack.models.user import User, UserRole
from edustack.services.lookups import (
    ensure_school_role,
    find_active_session,
    find_active_term,
    find_class_with_sections,
    find_school,
    find_section_in_class,
    find_student,
)
from edustack.services.queries import (
    StudentFilter,
    TransferFilter,
    build_student_query,
    build_transfer_query,
)

logger = logging.getLogger(__name__)

ENROLLED = EnrollmentStatus.ENROLLED.value
PLACEMENT_ROLES = [UserRole.ADMIN, UserRole.TEACHER]
TRANSFER_ROLES = [UserRole.ADMIN]


def _unique_ids(student_ids: Sequence[UUID]) -> List[UUID]:
    ids = list(dict.fromkeys(student_ids))
    if not ids:
        raise ValidationError("At least one student is required")
    return ids


class StudentLifecycleService:
    """
    The only writer of enrollment, promotion and transfer rows.

    Every operation resolves its preconditions and performs its writes
    inside one transaction, so a batch either applies to all students
    or to none of them.
    """

    def __init__(self, db: Session):
        self.db = db

    def _students(self, ids: List[UUID]) -> Dict[UUID, Student]:
        students = self.db.execute(
            select(Student).where(Student.id.in_(ids))
        ).scalars().all()
        found = {student.id: student for student in students}
        missing = [str(i) for i in ids if i not in found]
        if missing:
            raise NotFoundError("Student not found", data={"student_ids": missing})
        return found

    def _enrolled_rows(self, ids: List[UUID], class_id: Optional[UUID] = None) -> Dict[UUID, StudentEnrollment]:
        query = (
            select(StudentEnrollment)
            .options(
                selectinload(StudentEnrollment.session),
                selectinload(StudentEnrollment.class_),
            )
            .where(
                StudentEnrollment.student_id.in_(ids),
                StudentEnrollment.status == ENROLLED,
            )
        )
        if class_id is not None:
            query = query.where(StudentEnrollment.class_id == class_id)
        rows = self.db.execute(query).scalars().all()
        return {row.student_id: row for row in rows}

    # ---------- writes ----------

    def enroll(
        self,
        student_id: UUID,
        class_id: UUID,
        section_id: UUID,
        actor: Optional[User] = None,
    ) -> StudentEnrollment:
        with atomic(self.db):
            student = find_student(self.db, student_id)
            class_obj = find_class_with_sections(self.db, class_id)
            ensure_school_role(actor, [class_obj.school_id], PLACEMENT_ROLES)
            section = find_section_in_class(class_obj, section_id)
            academic_session = find_active_session(self.db)
            term = find_active_term(academic_session)

            if self._enrolled_rows([student.id]):
                raise ConflictError("Student is already enrolled")

            enrollment = StudentEnrollment(
                student_id=student.id,
                class_id=class_obj.id,
                section_id=section.id,
                session_id=academic_session.id,
                term_id=term.id,
                status=ENROLLED,
            )
            self.db.add(enrollment)

        logger.info(
            f"Student {student.id} enrolled in {class_obj.label}/{section.label} for {term.display_label}"
        )
        return enrollment

    def promote(
        self,
        student_ids: Sequence[UUID],
        from_class_id: UUID,
        to_class_id: UUID,
        section_id: UUID,
        promoted_by: UUID,
        actor: Optional[User] = None,
    ) -> int:
        ids = _unique_ids(student_ids)

        with atomic(self.db):
            from_class = find_class_with_sections(self.db, from_class_id)
            to_class = find_class_with_sections(self.db, to_class_id)
            section = find_section_in_class(to_class, section_id, "Section not found in destination class")
            if from_class.school_id != to_class.school_id:
                raise ValidationError("Classes must belong to the same school")
            ensure_school_role(actor, [from_class.school_id], PLACEMENT_ROLES)

            academic_session = find_active_session(self.db)
            term = find_active_term(academic_session)

            self._students(ids)
            current = self._enrolled_rows(ids, class_id=from_class.id)
            not_enrolled = [str(i) for i in ids if i not in current]
            if not_enrolled:
                raise ValidationError(
                    f"Students are not enrolled in class {from_class.label}",
                    data={"student_ids": not_enrolled},
                )

            behind = [
                str(student_id)
                for student_id, row in current.items()
                if row.session.start_date >= academic_session.start_date
            ]
            if behind:
                raise ValidationError(
                    "Students can only be promoted into a later session",
                    data={"student_ids": behind},
                )

            result = self.db.execute(
                update(StudentEnrollment)
                .where(
                    StudentEnrollment.id.in_([row.id for row in current.values()]),
                    StudentEnrollment.status == ENROLLED,
                )
                .values(status=EnrollmentStatus.PROMOTED.value)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != len(ids):
                raise ConflictError("Enrollments changed during promotion; no students were promoted")

            self.db.add_all([
                PromotionHistory(
                    student_id=student_id,
                    from_class_id=from_class.id,
                    to_class_id=to_class.id,
                    session_id=academic_session.id,
                    term_id=term.id,
                    promoted_by=promoted_by,
                )
                for student_id in ids
            ])
            self.db.add_all([
                StudentEnrollment(
                    student_id=student_id,
                    class_id=to_class.id,
                    section_id=section.id,
                    session_id=academic_session.id,
                    term_id=term.id,
                    status=ENROLLED,
                )
                for student_id in ids
            ])

        logger.info(
            f"{len(ids)} student(s) promoted from {from_class.label} to {to_class.label}/{section.label} by {promoted_by}"
        )
        return len(ids)

    def transfer(
        self,
        student_ids: Sequence[UUID],
        to_school_id: UUID,
        to_class_id: UUID,
        to_section_id: UUID,
        transfer_reason: Optional[str] = None,
        actor: Optional[User] = None,
    ) -> int:
        ids = _unique_ids(student_ids)

        with atomic(self.db):
            students = self._students(ids)
            current = self._enrolled_rows(ids)
            if not current:
                raise NotFoundError("No current enrollment found for the selected students")

            # Students without a placement leave from the batch's first known school
            fallback_school_id = next(current[i].class_.school_id for i in ids if i in current)
            from_schools = {
                student_id: current[student_id].class_.school_id if student_id in current else fallback_school_id
                for student_id in ids
            }
            for school_id in set(from_schools.values()):
                find_school(self.db, school_id, require_active=True)

            to_school = find_school(self.db, to_school_id, require_active=True)
            ensure_school_role(actor, set(from_schools.values()) | {to_school.id}, TRANSFER_ROLES)
            to_class = find_class_with_sections(self.db, to_class_id)
            if to_class.school_id != to_school.id:
                raise ValidationError(f"Class {to_class.label} does not belong to {to_school.name}")
            section = find_section_in_class(to_class, to_section_id)

            same_school = [str(i) for i, school_id in from_schools.items() if school_id == to_school.id]
            if same_school:
                raise ValidationError(
                    f"Students are already in {to_school.name}",
                    data={"student_ids": same_school},
                )

            academic_session = find_active_session(self.db)
            term = find_active_term(academic_session)

            result = self.db.execute(
                update(StudentEnrollment)
                .where(
                    StudentEnrollment.student_id.in_(ids),
                    StudentEnrollment.status == ENROLLED,
                )
                .values(status=EnrollmentStatus.TRANSFERRED.value)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != len(current):
                raise ConflictError("Enrollments changed during transfer; no students were transferred")

            for student_id in ids:
                self.db.add(StudentEnrollment(
                    student_id=student_id,
                    class_id=to_class.id,
                    section_id=section.id,
                    session_id=academic_session.id,
                    term_id=term.id,
                    status=ENROLLED,
                ))
                self.db.add(StudentTransfer(
                    student_id=student_id,
                    from_school_id=from_schools[student_id],
                    to_school_id=to_school.id,
                    to_class_id=to_class.id,
                    to_section_id=section.id,
                    transfer_reason=transfer_reason,
                ))
                self._move_membership(students[student_id].user_id, from_schools[student_id], to_school.id)

        logger.info(f"{len(ids)} student(s) transferred to {to_school.name} ({to_class.label}/{section.label})")
        return len(ids)

    def _move_membership(self, user_id: UUID, from_school_id: UUID, to_school_id: UUID) -> None:
        memberships = self.db.execute(
            select(SchoolMember).where(
                SchoolMember.user_id == user_id,
                SchoolMember.school_id.in_([from_school_id, to_school_id]),
            )
        ).scalars().all()
        old = next((m for m in memberships if m.school_id == from_school_id and m.role == UserRole.STUDENT.value), None)
        existing = next((m for m in memberships if m.school_id == to_school_id), None)

        if existing is not None:
            if old is not None:
                self.db.delete(old)
        elif old is not None:
            old.school_id = to_school_id
        else:
            self.db.add(SchoolMember(user_id=user_id, school_id=to_school_id, role=UserRole.STUDENT.value))

    # ---------- reads ----------

    def list_students(self, filters: StudentFilter) -> List[Student]:
        find_school(self.db, filters.school_id)
        return list(self.db.execute(build_student_query(filters)).scalars().all())

    def list_transfers(self, filters: TransferFilter) -> List[StudentTransfer]:
        find_school(self.db, filters.school_id)
        return list(self.db.execute(build_transfer_query(filters)).scalars().all())

    def get_student_details(self, student_id: UUID) -> Student:
        find_student(self.db, student_id)
        return self.db.execute(
            select(Student)
            .options(
                selectinload(Student.user),
                selectinload(Student.enrollments).selectinload(StudentEnrollment.class_),
                selectinload(Student.enrollments).selectinload(StudentEnrollment.section),
                selectinload(Student.enrollments).selectinload(StudentEnrollment.session),
                selectinload(Student.enrollments).selectinload(StudentEnrollment.term),
            )
            .where(Student.id == student_id)
        ).scalar_one()
