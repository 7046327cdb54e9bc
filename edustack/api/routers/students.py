# edustack/api/routers/students.py - Enrollment, promotion, transfer and student lookups
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import Dict, Any, Optional
from uuid import UUID

from edustack.core.db import get_db
from edustack.api.deps.auth import get_current_user, require_admin, require_teacher
from edustack.schemas.common import ApiResponse, api_response
from edustack.schemas.student import (
    EnrollIn, PromoteIn, TransferIn,
    EnrollmentOut, StudentOut, StudentDetail, TransferOut,
)
from edustack.services.queries import StudentFilter, TransferFilter
from edustack.services.student_lifecycle import StudentLifecycleService

router = APIRouter()


@router.post("/enroll", response_model=ApiResponse, status_code=status.HTTP_201_CREATED)
def enroll_student(
    payload: EnrollIn,
    ctx: Dict[str, Any] = Depends(require_teacher),
    db: Session = Depends(get_db)
):
    """Enroll a student in the active session and term"""
    enrollment = StudentLifecycleService(db).enroll(
        payload.student_id, payload.class_id, payload.section_id, actor=ctx["user"]
    )
    return api_response(
        "Student enrolled successfully",
        EnrollmentOut.model_validate(enrollment).model_dump(mode="json"),
    )


@router.put("/promote", response_model=ApiResponse)
def promote_students(
    payload: PromoteIn,
    ctx: Dict[str, Any] = Depends(require_teacher),
    db: Session = Depends(get_db)
):
    """Promote a batch of students; either all are promoted or none"""
    count = StudentLifecycleService(db).promote(
        payload.student_ids,
        payload.from_class_id,
        payload.to_class_id,
        payload.section_id,
        promoted_by=ctx["user"].id,
        actor=ctx["user"],
    )
    return api_response("Students promoted successfully", {"count": count})


@router.put("/transfer", response_model=ApiResponse)
def transfer_students(
    payload: TransferIn,
    ctx: Dict[str, Any] = Depends(require_admin),
    db: Session = Depends(get_db)
):
    count = StudentLifecycleService(db).transfer(
        payload.student_ids,
        payload.to_school_id,
        payload.to_class_id,
        payload.to_section_id,
        payload.transfer_reason,
        actor=ctx["user"],
    )
    return api_response(f"{count} student(s) transferred successfully", {"count": count})


@router.get("/{school_id}/transfer", response_model=ApiResponse)
def list_transfers(
    school_id: UUID,
    from_school_id: Optional[UUID] = Query(None),
    to_school_id: Optional[UUID] = Query(None),
    ctx: Dict[str, Any] = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Transfers into or out of a school"""
    transfers = StudentLifecycleService(db).list_transfers(
        TransferFilter(school_id=school_id, from_school_id=from_school_id, to_school_id=to_school_id)
    )
    return api_response(
        "Transfer students fetched successfully",
        [TransferOut.model_validate(t).model_dump(mode="json") for t in transfers],
    )


@router.get("/{school_id}/{session_id}", response_model=ApiResponse)
def list_students(
    school_id: UUID,
    session_id: UUID,
    class_id: Optional[UUID] = Query(None),
    name: Optional[str] = Query(None, max_length=128),
    admission_number: Optional[int] = Query(None),
    ctx: Dict[str, Any] = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    students = StudentLifecycleService(db).list_students(
        StudentFilter(
            school_id=school_id,
            session_id=session_id,
            class_id=class_id,
            name=name,
            admission_number=admission_number,
        )
    )
    return api_response(
        "Students fetched successfully",
        [StudentOut.model_validate(s).model_dump(mode="json") for s in students],
    )


@router.get("/{student_id}", response_model=ApiResponse)
def get_student_details(
    student_id: UUID,
    ctx: Dict[str, Any] = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    student = StudentLifecycleService(db).get_student_details(student_id)
    return api_response(
        "Student details fetched successfully",
        StudentDetail.model_validate(student).model_dump(mode="json"),
    )
