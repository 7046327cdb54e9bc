# edustack/services/auth_service.py - Account creation and signin
from datetime import datetime
from typing import Tuple
import logging

from sqlalchemy import select, or_, func
from sqlalchemy.orm import Session, selectinload

from edustack.core.db import atomic
from edustack.core.errors import AuthError, ConflictError, NotFoundError
from edustack.core.security import password_manager, token_manager
from edustack.models.school import SchoolMember
from edustack.models.staff import Staff
from edustack.models.student import Student
from edustack.models.user import User, UserRole
from edustack.schemas.auth import AdminSignupIn, StaffSignupIn, StudentSignupIn
from edustack.services.lookups import find_school

logger = logging.getLogger(__name__)

STAFF_PROFILE_FIELDS = (
    "name", "phone", "address", "designation", "gender", "dob",
    "salary", "joining_date", "photo_url", "qualification", "notes",
)
STUDENT_PROFILE_FIELDS = (
    "name", "admission_number", "gender", "dob", "phone", "address", "admission_date",
    "religion", "blood_group", "father_name", "mother_name", "guardian_name",
    "guardian_phone", "city", "state", "country", "photo_url",
)


class AuthService:
    """Service class for authentication operations"""

    def __init__(self, db: Session):
        self.db = db

    def issue_token(self, user: User) -> str:
        return token_manager.create_access_token(user.id, additional_claims={"username": user.username})

    def _ensure_unique(self, email: str, username: str) -> None:
        existing = self.db.execute(
            select(User.id).where(or_(User.email == email, User.username == username))
        ).first()
        if existing:
            raise ConflictError("User with this email or username already exists")

    def _new_user(self, data: AdminSignupIn, is_super_admin: bool = False) -> User:
        email = data.email.lower().strip()
        self._ensure_unique(email, data.username)
        return User(
            email=email,
            username=data.username,
            password_hash=password_manager.hash_password(data.password),
            is_super_admin=is_super_admin,
            is_active=True,
        )

    def _load(self, user_id) -> User:
        return self.db.execute(
            select(User).options(selectinload(User.memberships)).where(User.id == user_id)
        ).scalar_one()

    def admin_signup(self, data: AdminSignupIn) -> Tuple[User, str]:
        """Create a super admin; super admins pass every role check"""
        with atomic(self.db):
            user = self._new_user(data, is_super_admin=True)
            self.db.add(user)

        logger.info(f"Super admin created: {user.username}")
        return self._load(user.id), self.issue_token(user)

    def staff_signup(self, data: StaffSignupIn) -> Tuple[User, str]:
        """Create a user, its school membership and the staff profile together"""
        with atomic(self.db):
            school = find_school(self.db, data.school_id)
            user = self._new_user(data)
            user.memberships.append(SchoolMember(school_id=school.id, role=UserRole(data.role).value))
            user.staff = Staff(
                email=user.email,
                **{field: getattr(data, field) for field in STAFF_PROFILE_FIELDS},
            )
            self.db.add(user)

        logger.info(f"Staff account created: {user.username} ({data.role.value}) in {school.name}")
        return self._load(user.id), self.issue_token(user)

    def student_signup(self, data: StudentSignupIn) -> Tuple[User, str]:
        with atomic(self.db):
            school = find_school(self.db, data.school_id)
            if data.admission_number is not None:
                taken = self.db.execute(
                    select(Student.id).where(Student.admission_number == data.admission_number)
                ).first()
                if taken:
                    raise ConflictError(f"Admission number {data.admission_number} is already in use")

            user = self._new_user(data)
            user.memberships.append(SchoolMember(school_id=school.id, role=UserRole.STUDENT.value))
            user.student = Student(**{field: getattr(data, field) for field in STUDENT_PROFILE_FIELDS})
            self.db.add(user)

        logger.info(f"Student account created: {user.username} in {school.name}")
        return self._load(user.id), self.issue_token(user)

    def signin(self, email_or_username: str, password: str) -> Tuple[User, str]:
        identifier = email_or_username.strip()
        user = self.db.execute(
            select(User)
            .options(selectinload(User.memberships))
            .where(or_(func.lower(User.email) == identifier.lower(), User.username == identifier))
        ).scalar_one_or_none()

        if not user:
            raise NotFoundError("User not found")
        if not password_manager.verify_password(password, user.password_hash):
            logger.warning(f"Failed signin for {identifier}")
            raise AuthError("Invalid credentials")
        if not user.is_active:
            raise AuthError("Account is inactive")

        with atomic(self.db):
            user.last_login = datetime.utcnow()

        logger.info(f"User signed in: {user.username}")
        return self._load(user.id), self.issue_token(user)
