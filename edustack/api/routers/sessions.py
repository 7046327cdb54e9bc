# edustack/api/routers/sessions.py - Academic sessions and terms
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import Dict, Any, Optional
from uuid import UUID

from edustack.core.db import get_db
from edustack.api.deps.auth import get_current_user, require_super_admin
from edustack.schemas.academic import SessionCreate, SessionUpdate, SessionOut, TermOut, TermReconcileOut
from edustack.schemas.common import ApiResponse, api_response
from edustack.services.academic_service import AcademicService

router = APIRouter()


def _session_out(academic_session) -> dict:
    return SessionOut.model_validate(academic_session).model_dump(mode="json")


def _term_out(term) -> dict:
    return TermOut.model_validate(term).model_dump(mode="json")


@router.post("", response_model=ApiResponse, status_code=status.HTTP_201_CREATED)
def create_session(
    payload: SessionCreate,
    ctx: Dict[str, Any] = Depends(require_super_admin),
    db: Session = Depends(get_db)
):
    """Create a session with its terms; is_active=true deactivates every other session"""
    academic_session = AcademicService(db).create_session(payload)
    return api_response("Session created successfully", _session_out(academic_session))


@router.get("", response_model=ApiResponse)
def get_active_sessions(
    ctx: Dict[str, Any] = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    sessions = AcademicService(db).get_active_sessions()
    return api_response("Active session fetched successfully", [_session_out(s) for s in sessions])


@router.get("/all", response_model=ApiResponse)
def list_sessions(
    ctx: Dict[str, Any] = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    sessions = AcademicService(db).list_sessions()
    return api_response("Sessions fetched successfully", [_session_out(s) for s in sessions])


@router.get("/all-term", response_model=ApiResponse)
def list_terms(
    session_id: Optional[UUID] = Query(None, description="Only terms of this session"),
    ctx: Dict[str, Any] = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    terms = AcademicService(db).list_terms(session_id)
    return api_response("Terms fetched successfully", [_term_out(t) for t in terms])


@router.get("/term/{term_id}", response_model=ApiResponse)
def get_term(
    term_id: UUID,
    ctx: Dict[str, Any] = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return api_response("Term fetched successfully", _term_out(AcademicService(db).get_term(term_id)))


@router.post("/reconcile-terms", response_model=ApiResponse)
def reconcile_terms(
    ctx: Dict[str, Any] = Depends(require_super_admin),
    db: Session = Depends(get_db)
):
    """Run the term status sweep now instead of waiting for the daily run"""
    result = AcademicService(db).reconcile_term_status()
    return api_response("Term status reconciled", TermReconcileOut(**result).model_dump())


@router.get("/{session_id}", response_model=ApiResponse)
def get_session(
    session_id: UUID,
    ctx: Dict[str, Any] = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return api_response("Session fetched successfully", _session_out(AcademicService(db).get_session(session_id)))


@router.put("/{session_id}", response_model=ApiResponse)
def update_session(
    session_id: UUID,
    payload: SessionUpdate,
    ctx: Dict[str, Any] = Depends(require_super_admin),
    db: Session = Depends(get_db)
):
    """Partial update; terms are upserted by label"""
    academic_session = AcademicService(db).update_session(session_id, payload)
    return api_response("Session updated successfully", _session_out(academic_session))


@router.delete("/{session_id}", response_model=ApiResponse)
def delete_session(
    session_id: UUID,
    ctx: Dict[str, Any] = Depends(require_super_admin),
    db: Session = Depends(get_db)
):
    AcademicService(db).delete_session(session_id)
    return api_response("Session deleted successfully")
