# edustack/models/academic.py - Academic sessions and their terms
from __future__ import annotations
import uuid
from datetime import date, datetime
from sqlalchemy import String, Boolean, ForeignKey, Date, DateTime, Index, CheckConstraint, text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship
from edustack.models.base import Base


class AcademicSession(Base):
    """A school year. At most one session is active at any time."""
    __tablename__ = "academic_sessions"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    label: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)  # "2024/2025"
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    terms: Mapped[list["AcademicTerm"]] = relationship(
        "AcademicTerm",
        back_populates="session",
        cascade="all, delete-orphan",
        order_by="AcademicTerm.start_date",
    )

    __table_args__ = (
        CheckConstraint("start_date < end_date", name="ck_academic_session_dates"),
        Index(
            "uq_single_active_session",
            "is_active",
            unique=True,
            postgresql_where=text("is_active"),
            sqlite_where=text("is_active = 1"),
        ),
    )


class AcademicTerm(Base):
    __tablename__ = "academic_terms"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    session_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("academic_sessions.id", ondelete="CASCADE"),
        index=True,
        nullable=False
    )
    label: Mapped[str] = mapped_column(String(48), nullable=False)  # "First Term", unprefixed
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    session: Mapped["AcademicSession"] = relationship("AcademicSession", back_populates="terms")

    @property
    def display_label(self) -> str:
        """Session-prefixed label, e.g. "2024/2025 First Term" """
        return f"{self.session.label} {self.label}" if self.session else self.label

    def covers(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date

    __table_args__ = (
        Index("uq_term_label_per_session", "session_id", "label", unique=True),
        CheckConstraint("start_date < end_date", name="ck_academic_term_dates"),
    )
