# edustack/api/routers/schools.py - School registration and management
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import Dict, Any
from uuid import UUID

from edustack.core.db import get_db
from edustack.api.deps.auth import get_current_user, require_admin
from edustack.schemas.common import ApiResponse, api_response
from edustack.schemas.school import SchoolCreate, SchoolUpdate, SchoolOut
from edustack.services.school_service import SchoolService

router = APIRouter()


def _out(school) -> dict:
    return SchoolOut.model_validate(school).model_dump(mode="json")


@router.post("", response_model=ApiResponse, status_code=status.HTTP_201_CREATED)
def create_school(
    payload: SchoolCreate,
    ctx: Dict[str, Any] = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Create a school; the caller becomes its admin"""
    school = SchoolService(db).create_school(payload, ctx["user"])
    return api_response("School created successfully", _out(school))


@router.get("", response_model=ApiResponse)
def list_schools(
    ctx: Dict[str, Any] = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Schools the caller belongs to (all schools for super admins)"""
    schools = SchoolService(db).list_schools(ctx["user"])
    return api_response("Schools fetched successfully", [_out(s) for s in schools])


@router.get("/{school_id}", response_model=ApiResponse)
def get_school(
    school_id: UUID,
    ctx: Dict[str, Any] = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    school = SchoolService(db).get_school(school_id, ctx["user"])
    return api_response("School fetched successfully", _out(school))


@router.put("/{school_id}", response_model=ApiResponse)
def update_school(
    school_id: UUID,
    payload: SchoolUpdate,
    ctx: Dict[str, Any] = Depends(require_admin),
    db: Session = Depends(get_db)
):
    school = SchoolService(db).update_school(school_id, payload, ctx["user"])
    return api_response("School updated successfully", _out(school))


@router.delete("/{school_id}", response_model=ApiResponse)
def delete_school(
    school_id: UUID,
    ctx: Dict[str, Any] = Depends(require_admin),
    db: Session = Depends(get_db)
):
    SchoolService(db).delete_school(school_id, ctx["user"])
    return api_response("School deleted successfully")
