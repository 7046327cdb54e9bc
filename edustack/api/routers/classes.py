# edustack/api/routers/classes.py - Class and section administration
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import Dict, Any, Optional
from uuid import UUID

from edustack.core.db import get_db
from edustack.api.deps.auth import get_current_user, require_admin
from edustack.schemas.class_schema import ClassCreate, ClassUpdate, ClassOut
from edustack.schemas.common import ApiResponse, api_response
from edustack.services.class_service import ClassService

router = APIRouter()


def _out(class_obj) -> dict:
    return ClassOut.model_validate(class_obj).model_dump(mode="json")


@router.post("", response_model=ApiResponse, status_code=status.HTTP_201_CREATED)
def create_class(
    payload: ClassCreate,
    ctx: Dict[str, Any] = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Create a class with its sections"""
    class_obj = ClassService(db).create_class(payload, actor=ctx["user"])
    return api_response("Class created successfully", _out(class_obj))


@router.get("", response_model=ApiResponse)
def list_classes(
    school_id: Optional[UUID] = Query(None, description="Only classes of this school"),
    ctx: Dict[str, Any] = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    classes = ClassService(db).list_classes(school_id)
    return api_response("Classes fetched successfully", [_out(c) for c in classes])


@router.get("/{class_id}", response_model=ApiResponse)
def get_class(
    class_id: UUID,
    ctx: Dict[str, Any] = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return api_response("Class fetched successfully", _out(ClassService(db).get_class(class_id)))


@router.put("/{class_id}", response_model=ApiResponse)
def update_class(
    class_id: UUID,
    payload: ClassUpdate,
    ctx: Dict[str, Any] = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Update label/school; sections are replaced by the given labels"""
    class_obj = ClassService(db).update_class(class_id, payload, actor=ctx["user"])
    return api_response("Class updated successfully", _out(class_obj))


@router.delete("/{class_id}", response_model=ApiResponse)
def delete_class(
    class_id: UUID,
    ctx: Dict[str, Any] = Depends(require_admin),
    db: Session = Depends(get_db)
):
    ClassService(db).delete_class(class_id, actor=ctx["user"])
    return api_response("Class deleted successfully")
