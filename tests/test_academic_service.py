# /tests/test_academic_service.py

import uuid
from datetime import date, timedelta

import pytest
from sqlalchemy import func, select

from edustack.core.errors import ConflictError, NotFoundError, ValidationError
from edustack.models import AcademicSession, AcademicTerm
from edustack.schemas.academic import SessionCreate, SessionUpdate, TermIn
from edustack.services.academic_service import AcademicService

TODAY = date(2025, 1, 15)


def session_payload(label="2024/2025", is_active=False, terms=None):
    return SessionCreate(
        label=label,
        start_date=date(2024, 9, 1),
        end_date=date(2025, 7, 31),
        is_active=is_active,
        terms=terms if terms is not None else [
            TermIn(label="First Term", start_date=date(2024, 9, 1), end_date=date(2024, 12, 20)),
            TermIn(label="Second Term", start_date=date(2025, 1, 6), end_date=date(2025, 4, 4)),
            TermIn(label="Third Term", start_date=date(2025, 4, 22), end_date=date(2025, 7, 31)),
        ],
    )


def active_count(db):
    return db.execute(
        select(func.count(AcademicSession.id)).where(AcademicSession.is_active.is_(True))
    ).scalar_one()


def test_create_session_computes_term_activity(db):
    """Only the term whose window contains today starts active."""
    academic_session = AcademicService(db).create_session(session_payload(), today=TODAY)

    flags = {term.label: term.is_active for term in academic_session.terms}
    assert flags == {"First Term": False, "Second Term": True, "Third Term": False}
    assert academic_session.terms[1].display_label == "2024/2025 Second Term"


def test_activating_a_session_deactivates_the_others(db):
    service = AcademicService(db)
    first = service.create_session(session_payload("2023/2024", is_active=True), today=TODAY)
    second = service.create_session(session_payload("2024/2025", is_active=True), today=TODAY)

    assert active_count(db) == 1
    assert db.get(AcademicSession, second.id).is_active is True
    assert db.get(AcademicSession, first.id).is_active is False


def test_create_session_rejects_bad_windows(db):
    service = AcademicService(db)
    bad_session = session_payload()
    bad_session.end_date = bad_session.start_date

    with pytest.raises(ValidationError):
        service.create_session(bad_session, today=TODAY)

    bad_term = session_payload(terms=[
        TermIn(label="First Term", start_date=date(2024, 12, 1), end_date=date(2024, 9, 1)),
    ])
    with pytest.raises(ValidationError):
        service.create_session(bad_term, today=TODAY)

    with pytest.raises(ValidationError):
        service.create_session(session_payload(terms=[]), today=TODAY)

    assert db.execute(select(func.count(AcademicSession.id))).scalar_one() == 0


def test_duplicate_term_labels_are_rejected(db):
    payload = session_payload(terms=[
        TermIn(label="First Term", start_date=date(2024, 9, 1), end_date=date(2024, 12, 20)),
        TermIn(label="first term", start_date=date(2025, 1, 6), end_date=date(2025, 4, 4)),
    ])
    with pytest.raises(ValidationError):
        AcademicService(db).create_session(payload, today=TODAY)


def test_duplicate_session_label_conflicts(db):
    service = AcademicService(db)
    service.create_session(session_payload(), today=TODAY)
    with pytest.raises(ConflictError):
        service.create_session(session_payload(), today=TODAY)


def test_update_checks_lone_date_against_stored_value(db):
    service = AcademicService(db)
    academic_session = service.create_session(session_payload(), today=TODAY)

    with pytest.raises(ValidationError):
        service.update_session(academic_session.id, SessionUpdate(start_date=date(2025, 8, 1)), today=TODAY)


def test_update_upserts_terms_by_label(db):
    service = AcademicService(db)
    academic_session = service.create_session(session_payload(), today=TODAY)

    updated = service.update_session(
        academic_session.id,
        SessionUpdate(terms=[
            TermIn(label="Second Term", start_date=date(2025, 1, 20), end_date=date(2025, 4, 10)),
            TermIn(label="Holiday Term", start_date=date(2025, 8, 1), end_date=date(2025, 8, 30)),
        ]),
        today=TODAY,
    )

    terms = {term.label: term for term in updated.terms}
    assert set(terms) == {"First Term", "Second Term", "Third Term", "Holiday Term"}
    assert terms["Second Term"].start_date == date(2025, 1, 20)
    # recomputed: the new window no longer covers TODAY
    assert terms["Second Term"].is_active is False
    assert terms["Holiday Term"].is_active is False


def test_update_to_active_leaves_single_active_session(db):
    service = AcademicService(db)
    service.create_session(session_payload("2023/2024", is_active=True), today=TODAY)
    second = service.create_session(session_payload("2024/2025"), today=TODAY)

    service.update_session(second.id, SessionUpdate(is_active=True), today=TODAY)

    assert active_count(db) == 1
    assert service.get_active_sessions()[0].id == second.id


def test_update_missing_session_is_not_found(db):
    with pytest.raises(NotFoundError):
        AcademicService(db).update_session(uuid.uuid4(), SessionUpdate(label="x"), today=TODAY)


def test_delete_active_session_conflicts(db):
    service = AcademicService(db)
    academic_session = service.create_session(session_payload(is_active=True), today=TODAY)

    with pytest.raises(ConflictError):
        service.delete_session(academic_session.id)
    assert db.get(AcademicSession, academic_session.id) is not None


def test_delete_inactive_session_removes_terms(db):
    service = AcademicService(db)
    academic_session = service.create_session(session_payload(), today=TODAY)

    service.delete_session(academic_session.id)

    assert db.execute(select(func.count(AcademicSession.id))).scalar_one() == 0
    assert db.execute(select(func.count(AcademicTerm.id))).scalar_one() == 0


def test_reconcile_is_idempotent(db):
    service = AcademicService(db)
    service.create_session(session_payload(), today=TODAY)

    later = TODAY + timedelta(days=100)  # 2025-04-25, inside the third term
    first = service.reconcile_term_status(today=later)
    second = service.reconcile_term_status(today=later)

    assert first == {"deactivated": 1, "activated": 1}
    assert second == {"deactivated": 0, "activated": 0}
    active = db.execute(select(AcademicTerm.label).where(AcademicTerm.is_active.is_(True))).scalars().all()
    assert active == ["Third Term"]
