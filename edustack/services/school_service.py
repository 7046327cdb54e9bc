# edustack/services/school_service.py - School registration and membership-scoped access
from typing import List
from uuid import UUID
import logging

from sqlalchemy import select, func
from sqlalchemy.orm import Session

from edustack.core.config import settings
from edustack.core.db import atomic
from edustack.core.errors import ConflictError, NotFoundError, ValidationError
from edustack.models.school import School, SchoolMember
from edustack.models.user import User, UserRole
from edustack.schemas.school import SchoolCreate, SchoolUpdate
from edustack.services.lookups import ensure_school_role

logger = logging.getLogger(__name__)


class SchoolService:
    def __init__(self, db: Session):
        self.db = db

    def _ensure_name_free(self, name: str, exclude_id: UUID = None) -> None:
        query = select(School.id).where(func.lower(School.name) == name.lower())
        if exclude_id is not None:
            query = query.where(School.id != exclude_id)
        if self.db.execute(query).first():
            raise ConflictError("School with this name already exists")

    def create_school(self, data: SchoolCreate, user: User) -> School:
        """
        Register a school and make the creator its ADMIN.

        Regular admins may administer at most SCHOOL_LIMIT_PER_USER
        schools; super admins are not limited.
        """
        self._ensure_name_free(data.name)

        if not user.is_super_admin:
            administered = self.db.execute(
                select(func.count(SchoolMember.id)).where(
                    SchoolMember.user_id == user.id,
                    SchoolMember.role == UserRole.ADMIN.value,
                )
            ).scalar_one()
            if administered >= settings.SCHOOL_LIMIT_PER_USER:
                raise ValidationError(
                    f"A user can administer at most {settings.SCHOOL_LIMIT_PER_USER} schools"
                )

        school = School(
            name=data.name,
            email=data.email,
            phone=data.phone,
            address=data.address,
            is_active=True,
        )
        school.members.append(SchoolMember(user_id=user.id, role=UserRole.ADMIN.value))

        with atomic(self.db):
            self.db.add(school)

        logger.info(f"School created: {school.name} by {user.username}")
        return school

    def list_schools(self, user: User) -> List[School]:
        query = select(School).order_by(School.name)
        if not user.is_super_admin:
            query = query.join(SchoolMember, SchoolMember.school_id == School.id).where(
                SchoolMember.user_id == user.id
            )
        schools = list(self.db.execute(query).scalars().unique().all())
        if not schools:
            raise NotFoundError("No schools found")
        return schools

    def get_school(self, school_id: UUID, user: User) -> School:
        school = self.db.get(School, school_id)
        if not school or not user.is_member_of(school_id):
            raise NotFoundError("School with this user not found")
        return school

    def update_school(self, school_id: UUID, data: SchoolUpdate, user: User) -> School:
        school = self.get_school(school_id, user)
        ensure_school_role(user, [school_id], [UserRole.ADMIN])
        fields = data.model_dump(exclude_unset=True)
        if fields.get("name"):
            fields["name"] = fields["name"].strip()
            self._ensure_name_free(fields["name"], exclude_id=school_id)

        with atomic(self.db):
            for field, value in fields.items():
                if value is not None or field in ("email", "phone", "address"):
                    setattr(school, field, value)

        logger.info(f"School updated: {school.name} ({', '.join(fields)})")
        return school

    def delete_school(self, school_id: UUID, user: User) -> None:
        school = self.get_school(school_id, user)
        ensure_school_role(user, [school_id], [UserRole.ADMIN])
        name = school.name
        with atomic(self.db):
            self.db.delete(school)
        logger.info(f"School deleted: {name} by {user.username}")
