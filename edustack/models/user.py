# edustack/models/user.py - User accounts and the closed role enumeration
from __future__ import annotations
import uuid
import enum
from datetime import datetime
from typing import Optional
from sqlalchemy import String, DateTime, Boolean
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship
from edustack.models.base import Base


class UserRole(str, enum.Enum):
    """Per-school roles, assigned through SchoolMember"""
    ADMIN = "ADMIN"              # Manages the school, its classes and students
    TEACHER = "TEACHER"          # Enrolls and promotes students
    ACCOUNTANT = "ACCOUNTANT"
    LIBRARIAN = "LIBRARIAN"
    STAFF = "STAFF"
    STUDENT = "STUDENT"
    PARENT = "PARENT"


STAFF_ROLES = [role for role in UserRole if role not in (UserRole.STUDENT, UserRole.PARENT)]


class User(Base):
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)

    email: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    username: Mapped[str] = mapped_column(String(64), unique=True, index=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)

    # Platform-wide capability, independent of any school membership.
    # Super admins pass every role check and own session management.
    is_super_admin: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)
    last_login: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    memberships: Mapped[list["SchoolMember"]] = relationship(
        "SchoolMember", back_populates="user", cascade="all, delete-orphan"
    )
    student: Mapped[Optional["Student"]] = relationship("Student", back_populates="user", uselist=False)
    staff: Mapped[Optional["Staff"]] = relationship("Staff", back_populates="user", uselist=False)

    def roles_for_school(self, school_id: uuid.UUID) -> list[UserRole]:
        return [UserRole(m.role) for m in self.memberships if m.school_id == school_id]

    def has_any_role(self, roles: list[UserRole]) -> bool:
        """True for super admins, or when any membership carries one of the roles"""
        if self.is_super_admin:
            return True
        wanted = {UserRole(r).value for r in roles}
        return any(m.role in wanted for m in self.memberships)

    def has_role_in(self, school_id: uuid.UUID, roles: list[UserRole]) -> bool:
        """True for super admins, or when the membership in this school carries one of the roles"""
        if self.is_super_admin:
            return True
        return any(role in roles for role in self.roles_for_school(school_id))

    def is_member_of(self, school_id: uuid.UUID) -> bool:
        return self.is_super_admin or any(m.school_id == school_id for m in self.memberships)

    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}', super_admin={self.is_super_admin})>"
