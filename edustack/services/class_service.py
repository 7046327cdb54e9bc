# edustack/services/class_service.py - Classes and their sections
from typing import List, Optional
from uuid import UUID
import logging

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from edustack.core.db import atomic
from edustack.core.errors import ConflictError, NotFoundError
from edustack.models.class_model import Class, Section
from edustack.models.user import User, UserRole
from edustack.schemas.class_schema import ClassCreate, ClassUpdate
from edustack.services.lookups import ensure_school_role, find_school

logger = logging.getLogger(__name__)

CLASS_ADMINS = [UserRole.ADMIN]


class ClassService:
    def __init__(self, db: Session):
        self.db = db

    def _ensure_label_free(self, school_id: UUID, label: str, exclude_id: Optional[UUID] = None) -> None:
        query = select(Class.id).where(Class.school_id == school_id, Class.label == label)
        if exclude_id is not None:
            query = query.where(Class.id != exclude_id)
        if self.db.execute(query).first():
            raise ConflictError(f"Class {label} already exists in this school")

    def create_class(self, data: ClassCreate, actor: Optional[User] = None) -> Class:
        school = find_school(self.db, data.school_id)
        ensure_school_role(actor, [school.id], CLASS_ADMINS)
        self._ensure_label_free(school.id, data.label)

        class_obj = Class(school_id=school.id, label=data.label)
        class_obj.sections = [Section(label=label) for label in data.sections]

        with atomic(self.db):
            self.db.add(class_obj)

        logger.info(f"Class created: {data.label} ({', '.join(data.sections)}) in {school.name}")
        return self.get_class(class_obj.id)

    def list_classes(self, school_id: Optional[UUID] = None) -> List[Class]:
        query = select(Class).options(selectinload(Class.sections)).order_by(Class.label)
        if school_id:
            query = query.where(Class.school_id == school_id)
        return list(self.db.execute(query).scalars().all())

    def get_class(self, class_id: UUID) -> Class:
        class_obj = self.db.execute(
            select(Class).options(selectinload(Class.sections)).where(Class.id == class_id)
        ).scalar_one_or_none()
        if not class_obj:
            raise NotFoundError("Class not found")
        return class_obj

    def update_class(self, class_id: UUID, data: ClassUpdate, actor: Optional[User] = None) -> Class:
        """Sections are reconciled by label: new labels are added, missing ones removed"""
        class_obj = self.get_class(class_id)
        school_id = data.school_id or class_obj.school_id
        label = data.label.strip() if data.label else class_obj.label

        if data.school_id:
            find_school(self.db, data.school_id)
        # Moving a class needs admin rights on both sides
        ensure_school_role(actor, {class_obj.school_id, school_id}, CLASS_ADMINS)
        if label != class_obj.label or school_id != class_obj.school_id:
            self._ensure_label_free(school_id, label, exclude_id=class_id)

        with atomic(self.db):
            class_obj.label = label
            class_obj.school_id = school_id
            if data.sections is not None:
                wanted = set(data.sections)
                existing = {section.label: section for section in class_obj.sections}
                for section in list(class_obj.sections):
                    if section.label not in wanted:
                        class_obj.sections.remove(section)
                for section_label in data.sections:
                    if section_label not in existing:
                        class_obj.sections.append(Section(label=section_label))

        logger.info(f"Class updated: {label}")
        return self.get_class(class_id)

    def delete_class(self, class_id: UUID, actor: Optional[User] = None) -> None:
        class_obj = self.get_class(class_id)
        ensure_school_role(actor, [class_obj.school_id], CLASS_ADMINS)
        label = class_obj.label
        with atomic(self.db):
            self.db.delete(class_obj)
        logger.info(f"Class deleted: {label}")
