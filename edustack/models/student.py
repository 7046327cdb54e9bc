# edustack/models/student.py - Student profile owned by a user account
from __future__ import annotations
import uuid
from datetime import date, datetime
from sqlalchemy import String, Date, ForeignKey, DateTime, Boolean, Integer
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship
from edustack.models.base import Base


class Student(Base):
    __tablename__ = "students"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    admission_number: Mapped[int | None] = mapped_column(Integer, unique=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    gender: Mapped[str | None] = mapped_column(String(16))
    dob: Mapped[date | None] = mapped_column(Date())
    phone: Mapped[str | None] = mapped_column(String(32))
    address: Mapped[str | None] = mapped_column(String(256))
    admission_date: Mapped[date | None] = mapped_column(Date())
    religion: Mapped[str | None] = mapped_column(String(64))
    blood_group: Mapped[str | None] = mapped_column(String(8))
    father_name: Mapped[str | None] = mapped_column(String(128))
    mother_name: Mapped[str | None] = mapped_column(String(128))
    guardian_name: Mapped[str | None] = mapped_column(String(128))
    guardian_phone: Mapped[str | None] = mapped_column(String(32))
    city: Mapped[str | None] = mapped_column(String(64))
    state: Mapped[str | None] = mapped_column(String(64))
    country: Mapped[str | None] = mapped_column(String(64))
    photo_url: Mapped[str | None] = mapped_column(String(512))
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    user: Mapped["User"] = relationship("User", back_populates="student")
    enrollments: Mapped[list["StudentEnrollment"]] = relationship(
        "StudentEnrollment", back_populates="student", cascade="all, delete-orphan"
    )
    transfers: Mapped[list["StudentTransfer"]] = relationship(
        "StudentTransfer", back_populates="student", cascade="all, delete-orphan"
    )

    @property
    def current_enrollments(self) -> list["StudentEnrollment"]:
        return [e for e in self.enrollments if e.status == "enrolled"]

    @property
    def email(self) -> str | None:
        return self.user.email if self.user else None

    @property
    def username(self) -> str | None:
        return self.user.username if self.user else None
