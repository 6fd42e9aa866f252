"""설문 접근 토큰/응답 제출 API 라우터입니다."""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from survey_core.database import get_db
from survey_core.middleware.auth_middleware import get_current_user, get_optional_user
from survey_core.models.user import User
from survey_core.schemas.token import (
    AccessTokenOut,
    AttemptOut,
    EmployeeTokenRequest,
    SubmissionOut,
    SubmissionRequest,
    TokenListOut,
)
from survey_core.services import token_service

router = APIRouter(tags=["tokens"])


@router.post("/api/surveys/{survey_id}/tokens/employee", response_model=AccessTokenOut)
def issue_employee_token(
    survey_id: int,
    data: EmployeeTokenRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return token_service.issue_employee_token(
        db,
        survey_id=survey_id,
        employee_id=data.employee_id,
        current_user=current_user,
    )


@router.post("/api/surveys/{survey_id}/tokens/anonymous", response_model=AccessTokenOut)
def issue_anonymous_token(
    survey_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return token_service.issue_anonymous_token(db, survey_id=survey_id, current_user=current_user)


@router.post("/api/surveys/{survey_id}/attempt", response_model=AttemptOut)
def start_session_attempt(
    survey_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return token_service.start_session_attempt(db, survey_id=survey_id, current_user=current_user)


@router.post("/api/public/{public_link_token}/tokens", response_model=AccessTokenOut)
def issue_public_token(public_link_token: str, db: Session = Depends(get_db)):
    return token_service.issue_public_token(db, public_link_token)


@router.post("/api/tokens/{token}/redeem", response_model=AttemptOut)
def redeem_token(token: str, db: Session = Depends(get_db)):
    return token_service.redeem(db, token)


@router.post("/api/attempts/{attempt_key}/submit", response_model=SubmissionOut)
def submit_attempt(
    attempt_key: str,
    data: SubmissionRequest,
    db: Session = Depends(get_db),
    current_user: Optional[User] = Depends(get_optional_user),
):
    return token_service.finalize_submission(
        db,
        attempt_key=attempt_key,
        answers=data.answers,
        current_user=current_user,
    )


@router.get("/api/surveys/{survey_id}/tokens", response_model=TokenListOut)
def list_tokens(
    survey_id: int,
    status: Optional[str] = Query(None, pattern="^(issued|redeemed|expired)$"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return token_service.list_tokens(db, survey_id=survey_id, current_user=current_user, status=status)


@router.delete("/api/surveys/{survey_id}/tokens/{token_id}", response_model=AccessTokenOut)
def revoke_token(
    survey_id: int,
    token_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return token_service.revoke_token(db, survey_id=survey_id, token_id=token_id, current_user=current_user)
