# edustack/api/routers/auth.py - Signup and signin endpoints
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import Dict, Any

from edustack.core.db import get_db
from edustack.api.deps.auth import get_current_user, require_secure_header
from edustack.schemas.auth import AdminSignupIn, StaffSignupIn, StudentSignupIn, SigninIn, AuthOut, UserOut
from edustack.schemas.common import ApiResponse, api_response
from edustack.services.auth_service import AuthService

router = APIRouter()


def _auth_payload(user, token: str) -> dict:
    return AuthOut(user=UserOut.model_validate(user), access_token=token).model_dump(mode="json")


@router.post(
    "/admin-signup",
    response_model=ApiResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_secure_header)],
)
def admin_signup(payload: AdminSignupIn, db: Session = Depends(get_db)):
    """Create a super admin account; needs the x-header-secure-key header"""
    user, token = AuthService(db).admin_signup(payload)
    return api_response("Admin created successfully", _auth_payload(user, token))


@router.post("/staff-signup", response_model=ApiResponse, status_code=status.HTTP_201_CREATED)
def staff_signup(payload: StaffSignupIn, db: Session = Depends(get_db)):
    user, token = AuthService(db).staff_signup(payload)
    return api_response("Staff created successfully", _auth_payload(user, token))


@router.post("/student-signup", response_model=ApiResponse, status_code=status.HTTP_201_CREATED)
def student_signup(payload: StudentSignupIn, db: Session = Depends(get_db)):
    user, token = AuthService(db).student_signup(payload)
    return api_response("Student created successfully", _auth_payload(user, token))


@router.post("/signin", response_model=ApiResponse)
def signin(payload: SigninIn, db: Session = Depends(get_db)):
    user, token = AuthService(db).signin(payload.email_or_username, payload.password)
    return api_response("Signed in successfully", _auth_payload(user, token))


@router.get("/me", response_model=ApiResponse)
def me(ctx: Dict[str, Any] = Depends(get_current_user)):
    """Get current user info"""
    return api_response("User fetched successfully", UserOut.model_validate(ctx["user"]).model_dump(mode="json"))
