"""동의 원장 API 라우터입니다. 동의 링크 조회/결정은 로그인 없이 토큰만으로 처리합니다."""

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from survey_core.database import get_db
from survey_core.middleware.auth_middleware import get_current_user
from survey_core.models.user import User
from survey_core.schemas.consent import (
    ConsentDecisionOut,
    ConsentDecisionRequest,
    ConsentGenerateRequest,
    ConsentGenerateResult,
    ConsentRecordOut,
    ConsentVerifyOut,
)
from survey_core.services import consent_service

router = APIRouter(tags=["consent"])


@router.post("/api/surveys/{survey_id}/consent/generate", response_model=ConsentGenerateResult)
def generate_consent(
    survey_id: int,
    data: ConsentGenerateRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    if data.employee_ids:
        return consent_service.generate(
            db,
            survey_id=survey_id,
            employee_ids=data.employee_ids,
            current_user=current_user,
        )
    return consent_service.generate_for_scope(db, survey_id=survey_id, current_user=current_user)


@router.get("/api/surveys/{survey_id}/consent", response_model=List[ConsentRecordOut])
def list_consent_records(
    survey_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return consent_service.list_records(db, survey_id=survey_id, current_user=current_user)


@router.get("/api/surveys/{survey_id}/consent/me", response_model=ConsentRecordOut)
def my_consent(
    survey_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return consent_service.my_consent(db, survey_id=survey_id, current_user=current_user)


@router.get("/api/consent/{token}", response_model=ConsentVerifyOut)
def verify_consent_token(token: str, db: Session = Depends(get_db)):
    return consent_service.verify(db, token)


@router.post("/api/consent/{token}", response_model=ConsentDecisionOut)
def decide_consent(token: str, data: ConsentDecisionRequest, db: Session = Depends(get_db)):
    return consent_service.decide(db, token, data.granted)
