# /tests/test_student_lifecycle.py

import uuid
from unittest.mock import patch

import pytest
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError

from edustack.core.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from edustack.models import (
    EnrollmentStatus,
    PromotionHistory,
    SchoolMember,
    StudentEnrollment,
    StudentTransfer,
    UserRole,
)
from edustack.services.student_lifecycle import StudentLifecycleService


@pytest.fixture
def school(make_school):
    return make_school("Greenfield Academy")


@pytest.fixture
def current_session(make_session, this_year):
    start, end = this_year
    return make_session("Current", start, end, is_active=True)


def rows(db, student_id, status=None):
    query = select(StudentEnrollment).where(StudentEnrollment.student_id == student_id)
    if status:
        query = query.where(StudentEnrollment.status == status)
    return db.execute(query).scalars().all()


# ---------- enroll ----------

def test_enroll_creates_one_enrolled_row(db, school, make_class, make_student, current_session):
    jss1 = make_class(school, "JSS 1")
    student = make_student(school)

    enrollment = StudentLifecycleService(db).enroll(student.id, jss1.id, jss1.sections[0].id)

    assert enrollment.status == EnrollmentStatus.ENROLLED.value
    assert enrollment.session_id == current_session.id
    assert enrollment.term_id == current_session.terms[0].id
    assert len(rows(db, student.id)) == 1


def test_second_enroll_conflicts(db, school, make_class, make_student, current_session):
    jss1 = make_class(school, "JSS 1")
    student = make_student(school)
    service = StudentLifecycleService(db)
    service.enroll(student.id, jss1.id, jss1.sections[0].id)

    with pytest.raises(ConflictError):
        service.enroll(student.id, jss1.id, jss1.sections[1].id)
    assert len(rows(db, student.id)) == 1


def test_enroll_requires_active_session(db, school, make_class, make_student, make_session, this_year):
    start, end = this_year
    make_session("Inactive", start, end, is_active=False)
    jss1 = make_class(school, "JSS 1")
    student = make_student(school)

    with pytest.raises(NotFoundError, match="No active session"):
        StudentLifecycleService(db).enroll(student.id, jss1.id, jss1.sections[0].id)


def test_enroll_requires_active_term(db, school, make_class, make_student, make_session, this_year):
    start, end = this_year
    make_session("Current", start, end, is_active=True, term_active=False)
    jss1 = make_class(school, "JSS 1")
    student = make_student(school)

    with pytest.raises(NotFoundError, match="No active term"):
        StudentLifecycleService(db).enroll(student.id, jss1.id, jss1.sections[0].id)


def test_enroll_rejects_section_from_another_class(db, school, make_class, make_student, current_session):
    jss1 = make_class(school, "JSS 1")
    jss2 = make_class(school, "JSS 2")
    student = make_student(school)

    with pytest.raises(NotFoundError):
        StudentLifecycleService(db).enroll(student.id, jss1.id, jss2.sections[0].id)


def test_enroll_rejects_class_without_sections(db, school, make_class, make_student, current_session):
    empty = make_class(school, "Empty", sections=())
    student = make_student(school)

    with pytest.raises(NotFoundError, match="no sections"):
        StudentLifecycleService(db).enroll(student.id, empty.id, empty.id)


def test_partial_index_blocks_second_enrolled_row(db, school, make_class, make_student, current_session):
    jss1 = make_class(school, "JSS 1")
    student = make_student(school)
    term = current_session.terms[0]
    for _ in range(2):
        db.add(StudentEnrollment(
            student_id=student.id,
            class_id=jss1.id,
            section_id=jss1.sections[0].id,
            session_id=current_session.id,
            term_id=term.id,
        ))
    with pytest.raises(IntegrityError):
        db.commit()
    db.rollback()


# ---------- promote ----------

@pytest.fixture
def promotion_setup(db, school, make_class, make_student, make_session, last_year, this_year):
    """Two students enrolled in JSS 1 last year, with this year's session now active."""
    jss1 = make_class(school, "JSS 1")
    jss2 = make_class(school, "JSS 2", sections=("X", "Y"))
    s1 = make_student(school, "Ada Obi")
    s2 = make_student(school, "Bola Ade")

    old_start, old_end = last_year
    old = make_session("Previous", old_start, old_end, is_active=True, term_active=True)
    service = StudentLifecycleService(db)
    service.enroll(s1.id, jss1.id, jss1.sections[0].id)
    service.enroll(s2.id, jss1.id, jss1.sections[1].id)

    old.is_active = False
    db.commit()
    start, end = this_year
    current = make_session("Current", start, end, is_active=True)
    return {"jss1": jss1, "jss2": jss2, "s1": s1, "s2": s2, "old": old, "current": current}


def test_promote_moves_whole_batch(db, make_user, school, promotion_setup):
    ctx = promotion_setup
    teacher = make_user("teacher", school, "TEACHER")
    section_x = ctx["jss2"].sections[0]

    count = StudentLifecycleService(db).promote(
        [ctx["s1"].id, ctx["s2"].id, ctx["s1"].id],
        ctx["jss1"].id, ctx["jss2"].id, section_x.id, teacher.id,
    )

    assert count == 2
    for student in (ctx["s1"], ctx["s2"]):
        assert len(rows(db, student.id, EnrollmentStatus.PROMOTED.value)) == 1
        [current] = rows(db, student.id, EnrollmentStatus.ENROLLED.value)
        assert (current.class_id, current.section_id, current.session_id) == (
            ctx["jss2"].id, section_x.id, ctx["current"].id,
        )
    history = db.execute(select(PromotionHistory)).scalars().all()
    assert len(history) == 2
    assert {h.promoted_by for h in history} == {teacher.id}


def test_promote_rejects_when_session_not_ahead(db, make_user, school, make_class, make_student, current_session):
    jss1 = make_class(school, "JSS 1")
    jss2 = make_class(school, "JSS 2")
    s1 = make_student(school)
    teacher = make_user("teacher", school, "TEACHER")
    service = StudentLifecycleService(db)
    service.enroll(s1.id, jss1.id, jss1.sections[0].id)

    with pytest.raises(ValidationError, match="later session"):
        service.promote([s1.id], jss1.id, jss2.id, jss2.sections[0].id, teacher.id)

    [row] = rows(db, s1.id)
    assert row.status == EnrollmentStatus.ENROLLED.value
    assert row.class_id == jss1.id
    assert db.execute(select(PromotionHistory)).first() is None


def test_promote_validates_every_student(db, make_user, make_student, school, promotion_setup):
    ctx = promotion_setup
    stranger = make_student(school, "Not Enrolled")
    teacher = make_user("teacher", school, "TEACHER")

    with pytest.raises(ValidationError) as exc:
        StudentLifecycleService(db).promote(
            [ctx["s1"].id, stranger.id],
            ctx["jss1"].id, ctx["jss2"].id, ctx["jss2"].sections[0].id, teacher.id,
        )

    assert exc.value.data == {"student_ids": [str(stranger.id)]}
    assert rows(db, ctx["s1"].id, EnrollmentStatus.PROMOTED.value) == []


def test_promote_requires_same_school(db, make_school, make_class, make_user, school, promotion_setup):
    ctx = promotion_setup
    other = make_school("Riverside College")
    foreign = make_class(other, "SS 1")
    teacher = make_user("teacher", school, "TEACHER")

    with pytest.raises(ValidationError, match="same school"):
        StudentLifecycleService(db).promote(
            [ctx["s1"].id], ctx["jss1"].id, foreign.id, foreign.sections[0].id, teacher.id,
        )


def test_promote_section_must_belong_to_destination(db, make_user, school, promotion_setup):
    ctx = promotion_setup
    teacher = make_user("teacher", school, "TEACHER")

    with pytest.raises(NotFoundError, match="destination"):
        StudentLifecycleService(db).promote(
            [ctx["s1"].id], ctx["jss1"].id, ctx["jss2"].id, ctx["jss1"].sections[0].id, teacher.id,
        )


# ---------- transfer ----------

def test_transfer_moves_student_to_new_school(db, school, make_school, make_class, make_student, current_session):
    jss1 = make_class(school, "JSS 1")
    other = make_school("Riverside College")
    target = make_class(other, "JSS 1", sections=("Gold",))
    student = make_student(school)
    service = StudentLifecycleService(db)
    service.enroll(student.id, jss1.id, jss1.sections[0].id)

    count = service.transfer([student.id], other.id, target.id, target.sections[0].id, "Family relocated")

    assert count == 1
    assert len(rows(db, student.id, EnrollmentStatus.TRANSFERRED.value)) == 1
    [current] = rows(db, student.id, EnrollmentStatus.ENROLLED.value)
    assert current.class_id == target.id
    [record] = db.execute(select(StudentTransfer)).scalars().all()
    assert record.from_school_id == school.id
    assert record.to_school_id == other.id
    assert record.transfer_reason == "Family relocated"
    schools = db.execute(
        select(SchoolMember.school_id).where(SchoolMember.user_id == student.user_id)
    ).scalars().all()
    assert schools == [other.id]


def test_transfer_into_same_school_is_rejected(db, school, make_class, make_student, current_session):
    jss1 = make_class(school, "JSS 1")
    jss2 = make_class(school, "JSS 2")
    student = make_student(school)
    service = StudentLifecycleService(db)
    service.enroll(student.id, jss1.id, jss1.sections[0].id)

    with pytest.raises(ValidationError):
        service.transfer([student.id], school.id, jss2.id, jss2.sections[0].id)
    assert rows(db, student.id, EnrollmentStatus.TRANSFERRED.value) == []


def test_transfer_class_must_belong_to_target_school(db, school, make_school, make_class, make_student, current_session):
    jss1 = make_class(school, "JSS 1")
    other = make_school("Riverside College")
    student = make_student(school)
    service = StudentLifecycleService(db)
    service.enroll(student.id, jss1.id, jss1.sections[0].id)

    with pytest.raises(ValidationError):
        service.transfer([student.id], other.id, jss1.id, jss1.sections[0].id)


def test_transfer_without_any_enrollment_is_not_found(db, school, make_school, make_class, make_student, current_session):
    other = make_school("Riverside College")
    target = make_class(other, "JSS 1")
    student = make_student(school)

    with pytest.raises(NotFoundError):
        StudentLifecycleService(db).transfer([student.id], other.id, target.id, target.sections[0].id)


def test_transfer_to_inactive_school_is_not_found(db, school, make_school, make_class, make_student, current_session):
    jss1 = make_class(school, "JSS 1")
    closed = make_school("Closed School", is_active=False)
    target = make_class(closed, "JSS 1")
    student = make_student(school)
    service = StudentLifecycleService(db)
    service.enroll(student.id, jss1.id, jss1.sections[0].id)

    with pytest.raises(NotFoundError, match="not active"):
        service.transfer([student.id], closed.id, target.id, target.sections[0].id)


def test_transfer_batch_with_unplaced_student_uses_first_known_school(
    db, school, make_school, make_class, make_student, current_session
):
    """Students without a current placement leave from the school of the batch's first placed student."""
    jss1 = make_class(school, "JSS 1")
    other = make_school("Riverside College")
    target = make_class(other, "JSS 1")
    placed = make_student(school, "Ada Obi")
    unplaced = make_student(school, "Bola Ade")
    service = StudentLifecycleService(db)
    service.enroll(placed.id, jss1.id, jss1.sections[0].id)

    count = service.transfer([unplaced.id, placed.id], other.id, target.id, target.sections[0].id)

    assert count == 2
    records = db.execute(select(StudentTransfer)).scalars().all()
    assert {r.student_id: r.from_school_id for r in records} == {placed.id: school.id, unplaced.id: school.id}
    assert len(rows(db, placed.id, EnrollmentStatus.TRANSFERRED.value)) == 1
    for student in (placed, unplaced):
        [current] = rows(db, student.id, EnrollmentStatus.ENROLLED.value)
        assert current.class_id == target.id


def test_transfer_with_unknown_student_is_not_found(db, school, make_school, make_class, make_student, current_session):
    jss1 = make_class(school, "JSS 1")
    other = make_school("Riverside College")
    target = make_class(other, "JSS 1")
    student = make_student(school)
    service = StudentLifecycleService(db)
    service.enroll(student.id, jss1.id, jss1.sections[0].id)
    unknown = uuid.uuid4()

    with pytest.raises(NotFoundError) as exc:
        service.transfer([student.id, unknown], other.id, target.id, target.sections[0].id)

    assert exc.value.data == {"student_ids": [str(unknown)]}
    assert rows(db, student.id, EnrollmentStatus.TRANSFERRED.value) == []


def test_transfer_drops_old_membership_when_already_member_of_destination(
    db, school, make_school, make_class, make_student, current_session
):
    jss1 = make_class(school, "JSS 1")
    other = make_school("Riverside College")
    target = make_class(other, "JSS 1")
    student = make_student(school)
    db.add(SchoolMember(user_id=student.user_id, school_id=other.id, role=UserRole.STUDENT.value))
    db.commit()
    service = StudentLifecycleService(db)
    service.enroll(student.id, jss1.id, jss1.sections[0].id)

    service.transfer([student.id], other.id, target.id, target.sections[0].id)

    memberships = db.execute(
        select(SchoolMember).where(SchoolMember.user_id == student.user_id)
    ).scalars().all()
    assert [(m.school_id, m.role) for m in memberships] == [(other.id, UserRole.STUDENT.value)]


# ---------- concurrent changes ----------

def racing_enrolled_rows(status):
    """
    Wrap _enrolled_rows so that another writer moves the first student's
    enrolled row to `status` after the checks have read it.
    """
    read_rows = StudentLifecycleService._enrolled_rows

    def _racing(self, ids, class_id=None):
        found = read_rows(self, ids, class_id)
        self.db.execute(
            update(StudentEnrollment)
            .where(StudentEnrollment.student_id == ids[0], StudentEnrollment.status == EnrollmentStatus.ENROLLED.value)
            .values(status=status)
        )
        return found
    return _racing


def test_promote_conflict_inside_transaction_leaves_no_rows(db, make_user, school, promotion_setup):
    ctx = promotion_setup
    teacher = make_user("teacher", school, "TEACHER")

    with patch.object(StudentLifecycleService, "_enrolled_rows", racing_enrolled_rows(EnrollmentStatus.PROMOTED.value)):
        with pytest.raises(ConflictError, match="no students were promoted"):
            StudentLifecycleService(db).promote(
                [ctx["s1"].id, ctx["s2"].id],
                ctx["jss1"].id, ctx["jss2"].id, ctx["jss2"].sections[0].id, teacher.id,
            )

    assert db.execute(select(PromotionHistory)).first() is None
    for student in (ctx["s1"], ctx["s2"]):
        [row] = rows(db, student.id)
        assert (row.status, row.class_id) == (EnrollmentStatus.ENROLLED.value, ctx["jss1"].id)


def test_transfer_conflict_inside_transaction_leaves_no_rows(
    db, school, make_school, make_class, make_student, current_session
):
    jss1 = make_class(school, "JSS 1")
    other = make_school("Riverside College")
    target = make_class(other, "JSS 1")
    s1 = make_student(school, "Ada Obi")
    s2 = make_student(school, "Bola Ade")
    service = StudentLifecycleService(db)
    service.enroll(s1.id, jss1.id, jss1.sections[0].id)
    service.enroll(s2.id, jss1.id, jss1.sections[1].id)

    with patch.object(StudentLifecycleService, "_enrolled_rows", racing_enrolled_rows(EnrollmentStatus.PROMOTED.value)):
        with pytest.raises(ConflictError, match="no students were transferred"):
            service.transfer([s1.id, s2.id], other.id, target.id, target.sections[0].id)

    assert db.execute(select(StudentTransfer)).first() is None
    for student in (s1, s2):
        [row] = rows(db, student.id)
        assert (row.status, row.class_id) == (EnrollmentStatus.ENROLLED.value, jss1.id)
        schools = db.execute(
            select(SchoolMember.school_id).where(SchoolMember.user_id == student.user_id)
        ).scalars().all()
        assert schools == [school.id]


# ---------- per-school roles ----------

def test_teacher_of_another_school_cannot_enroll(db, school, make_school, make_class, make_user, make_student, current_session):
    jss1 = make_class(school, "JSS 1")
    student = make_student(school)
    outsider = make_user("outsider", make_school("Riverside College"), "TEACHER")

    with pytest.raises(ForbiddenError):
        StudentLifecycleService(db).enroll(student.id, jss1.id, jss1.sections[0].id, actor=outsider)
    assert rows(db, student.id) == []


def test_teacher_of_another_school_cannot_promote(db, make_school, make_user, promotion_setup):
    ctx = promotion_setup
    outsider = make_user("outsider", make_school("Riverside College"), "TEACHER")

    with pytest.raises(ForbiddenError):
        StudentLifecycleService(db).promote(
            [ctx["s1"].id], ctx["jss1"].id, ctx["jss2"].id, ctx["jss2"].sections[0].id,
            outsider.id, actor=outsider,
        )
    assert rows(db, ctx["s1"].id, EnrollmentStatus.PROMOTED.value) == []


def test_transfer_needs_admin_in_both_schools(db, school, make_school, make_class, make_user, make_student, current_session):
    jss1 = make_class(school, "JSS 1")
    other = make_school("Riverside College")
    target = make_class(other, "JSS 1")
    student = make_student(school)
    service = StudentLifecycleService(db)
    service.enroll(student.id, jss1.id, jss1.sections[0].id)

    receiving_admin = make_user("receiver", other, "ADMIN")
    with pytest.raises(ForbiddenError):
        service.transfer([student.id], other.id, target.id, target.sections[0].id, actor=receiving_admin)
    assert rows(db, student.id, EnrollmentStatus.TRANSFERRED.value) == []

    db.add(SchoolMember(user_id=receiving_admin.id, school_id=school.id, role=UserRole.ADMIN.value))
    db.commit()
    db.refresh(receiving_admin)
    assert service.transfer([student.id], other.id, target.id, target.sections[0].id, actor=receiving_admin) == 1
