# edustack/services/academic_service.py - Session activation and term status
from datetime import date
from typing import Dict, List, Optional
from uuid import UUID
import logging

from sqlalchemy import select, update, delete
from sqlalchemy.orm import Session, selectinload

from edustack.core.db import atomic
from edustack.core.errors import ConflictError, NotFoundError, ValidationError
from edustack.models.academic import AcademicSession, AcademicTerm
from edustack.schemas.academic import SessionCreate, SessionUpdate, TermIn

logger = logging.getLogger(__name__)


def _validate_window(start: date, end: date, what: str) -> None:
    if start >= end:
        raise ValidationError(f"{what}: start_date must be earlier than end_date")


def _validate_terms(terms: List[TermIn]) -> None:
    seen = set()
    for term in terms:
        _validate_window(term.start_date, term.end_date, f"Term {term.label}")
        key = term.label.lower()
        if key in seen:
            raise ValidationError(f"Duplicate term label: {term.label}")
        seen.add(key)


class AcademicService:
    """
    Owns the session/term activation rules.

    At most one session is active: activating one deactivates every
    other session with a set-based UPDATE inside the same transaction.
    A term's is_active flag tracks whether today falls in its window;
    it is computed on write and corrected by reconcile_term_status().
    """

    def __init__(self, db: Session):
        self.db = db

    # ---------- reads ----------

    def get_active_sessions(self) -> List[AcademicSession]:
        return list(self.db.execute(
            select(AcademicSession)
            .options(selectinload(AcademicSession.terms))
            .where(AcademicSession.is_active.is_(True))
        ).scalars().all())

    def list_sessions(self) -> List[AcademicSession]:
        return list(self.db.execute(
            select(AcademicSession)
            .options(selectinload(AcademicSession.terms))
            .order_by(AcademicSession.start_date.desc())
        ).scalars().all())

    def get_session(self, session_id: UUID) -> AcademicSession:
        academic_session = self.db.execute(
            select(AcademicSession)
            .options(selectinload(AcademicSession.terms))
            .where(AcademicSession.id == session_id)
        ).scalar_one_or_none()
        if not academic_session:
            raise NotFoundError("Session doesn't exist")
        return academic_session

    def list_terms(self, session_id: Optional[UUID] = None) -> List[AcademicTerm]:
        query = (
            select(AcademicTerm)
            .options(selectinload(AcademicTerm.session))
            .order_by(AcademicTerm.start_date)
        )
        if session_id:
            query = query.where(AcademicTerm.session_id == session_id)
        return list(self.db.execute(query).scalars().all())

    def get_term(self, term_id: UUID) -> AcademicTerm:
        term = self.db.get(AcademicTerm, term_id)
        if not term:
            raise NotFoundError("Term doesn't exist")
        return term

    # ---------- writes ----------

    def _deactivate_sessions(self, exclude_id: Optional[UUID] = None) -> None:
        stmt = (
            update(AcademicSession)
            .where(AcademicSession.is_active.is_(True))
            .values(is_active=False)
        )
        if exclude_id is not None:
            stmt = stmt.where(AcademicSession.id != exclude_id)
        self.db.execute(stmt)

    def _ensure_label_free(self, label: str, exclude_id: Optional[UUID] = None) -> None:
        query = select(AcademicSession.id).where(AcademicSession.label == label)
        if exclude_id is not None:
            query = query.where(AcademicSession.id != exclude_id)
        if self.db.execute(query).first():
            raise ConflictError(f"Session {label} already exists")

    def create_session(self, data: SessionCreate, today: Optional[date] = None) -> AcademicSession:
        today = today or date.today()

        _validate_window(data.start_date, data.end_date, "Session")
        if not data.terms:
            raise ValidationError("At least one term is required")
        _validate_terms(data.terms)
        self._ensure_label_free(data.label)

        academic_session = AcademicSession(
            label=data.label,
            start_date=data.start_date,
            end_date=data.end_date,
            is_active=data.is_active,
        )
        academic_session.terms = [
            AcademicTerm(label=term.label, start_date=term.start_date, end_date=term.end_date)
            for term in data.terms
        ]
        for term in academic_session.terms:
            term.is_active = term.covers(today)

        with atomic(self.db):
            if data.is_active:
                self._deactivate_sessions()
            self.db.add(academic_session)

        logger.info(
            f"Session created: {academic_session.label} with {len(data.terms)} term(s), active={data.is_active}"
        )
        return self.get_session(academic_session.id)

    def update_session(
        self, session_id: UUID, data: SessionUpdate, today: Optional[date] = None
    ) -> AcademicSession:
        today = today or date.today()
        academic_session = self.get_session(session_id)
        fields = data.model_dump(exclude_unset=True, exclude={"terms"})

        if "start_date" in fields or "end_date" in fields:
            _validate_window(
                fields.get("start_date") or academic_session.start_date,
                fields.get("end_date") or academic_session.end_date,
                "Session",
            )
        if fields.get("label"):
            self._ensure_label_free(fields["label"], exclude_id=session_id)
        if data.terms:
            _validate_terms(data.terms)

        existing_terms = {term.label.lower(): term for term in academic_session.terms}

        with atomic(self.db):
            if fields.get("is_active") is True:
                self._deactivate_sessions(exclude_id=session_id)

            for field, value in fields.items():
                if value is not None:
                    setattr(academic_session, field, value)

            # Upsert by label; terms missing from the payload are kept
            for term_data in data.terms or []:
                term = existing_terms.get(term_data.label.lower())
                if term is None:
                    term = AcademicTerm(label=term_data.label)
                    academic_session.terms.append(term)
                term.start_date = term_data.start_date
                term.end_date = term_data.end_date
                term.is_active = term.covers(today)

        logger.info(f"Session updated: {academic_session.label} ({', '.join(fields) or 'terms only'})")
        return self.get_session(session_id)

    def delete_session(self, session_id: UUID) -> None:
        academic_session = self.get_session(session_id)
        if academic_session.is_active:
            raise ConflictError("Cannot delete an active session")

        label = academic_session.label
        with atomic(self.db):
            self.db.execute(delete(AcademicTerm).where(AcademicTerm.session_id == session_id))
            self.db.execute(delete(AcademicSession).where(AcademicSession.id == session_id))

        logger.info(f"Session deleted: {label}")

    def reconcile_term_status(self, today: Optional[date] = None) -> Dict[str, int]:
        """
        Align every term's is_active flag with today's date.

        Both statements are conditional set-based UPDATEs, so running
        the sweep twice, or alongside request traffic, is harmless.
        """
        today = today or date.today()

        with atomic(self.db):
            ended = self.db.execute(
                update(AcademicTerm)
                .where(AcademicTerm.end_date < today, AcademicTerm.is_active.is_(True))
                .values(is_active=False)
                .execution_options(synchronize_session=False)
            )
            started = self.db.execute(
                update(AcademicTerm)
                .where(
                    AcademicTerm.start_date <= today,
                    AcademicTerm.end_date >= today,
                    AcademicTerm.is_active.is_(False),
                )
                .values(is_active=True)
                .execution_options(synchronize_session=False)
            )

        result = {"deactivated": ended.rowcount or 0, "activated": started.rowcount or 0}
        logger.info(f"Term status reconciled for {today.isoformat()}: {result}")
        return result
