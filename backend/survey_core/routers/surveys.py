"""설문/문항 관리 API 라우터입니다."""

from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from survey_core.database import get_db
from survey_core.middleware.auth_middleware import get_current_user, require_admin
from survey_core.models.user import User
from survey_core.schemas.survey import (
    SurveyCreate,
    SurveyOut,
    SurveyPhase,
    SurveyQuestionCreate,
    SurveyQuestionImport,
    SurveyQuestionOut,
    SurveyQuestionUpdate,
    SurveyStatusUpdate,
    SurveySweepOut,
    SurveyUpdate,
)
from survey_core.services import survey_service

router = APIRouter(prefix="/api/surveys", tags=["surveys"])


@router.get("", response_model=List[SurveyOut])
def list_surveys(
    phase: Optional[SurveyPhase] = None,
    db: Session = Depends(get_db),
    _admin: User = Depends(require_admin),
):
    return survey_service.list_surveys(db, phase=phase)


@router.post("", response_model=SurveyOut)
def create_survey(
    data: SurveyCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return survey_service.create_survey(db, data, current_user)


@router.post("/sweep", response_model=SurveySweepOut)
def sweep_phases(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return survey_service.sweep_phases(db, current_user=current_user)


@router.get("/{survey_id}", response_model=SurveyOut)
def get_survey(
    survey_id: int,
    db: Session = Depends(get_db),
    _admin: User = Depends(require_admin),
):
    return survey_service.get_survey(db, survey_id)


@router.put("/{survey_id}", response_model=SurveyOut)
def update_survey(
    survey_id: int,
    data: SurveyUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return survey_service.update_survey(
        db,
        survey_id=survey_id,
        data=data,
        current_user=current_user,
    )


@router.put("/{survey_id}/status", response_model=SurveyOut)
def transition_status(
    survey_id: int,
    data: SurveyStatusUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return survey_service.transition_status(
        db,
        survey_id=survey_id,
        target=data.status,
        current_user=current_user,
    )


@router.delete("/{survey_id}")
def delete_survey(
    survey_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    survey_service.delete_survey(db, survey_id=survey_id, current_user=current_user)
    return {"message": "삭제되었습니다."}


@router.get("/{survey_id}/questions", response_model=List[SurveyQuestionOut])
def list_questions(
    survey_id: int,
    db: Session = Depends(get_db),
    _admin: User = Depends(require_admin),
):
    return survey_service.list_questions(db, survey_id=survey_id)


@router.post("/{survey_id}/questions", response_model=SurveyQuestionOut)
def create_question(
    survey_id: int,
    data: SurveyQuestionCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return survey_service.create_question(
        db,
        survey_id=survey_id,
        data=data,
        current_user=current_user,
    )


@router.post("/{survey_id}/questions/import", response_model=List[SurveyQuestionOut])
def import_questions(
    survey_id: int,
    data: SurveyQuestionImport,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return survey_service.import_questions(
        db,
        survey_id=survey_id,
        rows=data.rows,
        current_user=current_user,
    )


@router.put("/questions/{question_id}", response_model=SurveyQuestionOut)
def update_question(
    question_id: int,
    data: SurveyQuestionUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return survey_service.update_question(
        db,
        question_id=question_id,
        data=data,
        current_user=current_user,
    )


@router.delete("/questions/{question_id}")
def delete_question(
    question_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    survey_service.delete_question(db, question_id=question_id, current_user=current_user)
    return {"message": "삭제되었습니다."}
