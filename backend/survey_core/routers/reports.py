"""설문 결과 리포트 API 라우터입니다."""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from survey_core.database import get_db
from survey_core.middleware.auth_middleware import get_current_user
from survey_core.models.user import User
from survey_core.schemas.report import (
    ConsentStatisticsOut,
    DetailedResponsesOut,
    EmployeeReportOut,
    ParameterScoreOut,
    ParticipationStatisticsOut,
    QuestionDistributionOut,
    SurveyReportOut,
)
from survey_core.services import report_service

router = APIRouter(prefix="/api/reports/surveys", tags=["reports"])


@router.get("/{survey_id}", response_model=SurveyReportOut)
def survey_report(
    survey_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return report_service.survey_report(db, survey_id=survey_id, current_user=current_user)


@router.get("/{survey_id}/questions/{question_id}/distribution", response_model=QuestionDistributionOut)
def question_distribution(
    survey_id: int,
    question_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return report_service.question_distribution(
        db,
        survey_id=survey_id,
        question_id=question_id,
        current_user=current_user,
    )


@router.get("/{survey_id}/parameters/{parameter}/score", response_model=ParameterScoreOut)
def parameter_score(
    survey_id: int,
    parameter: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return report_service.parameter_score(
        db,
        survey_id=survey_id,
        parameter=parameter,
        current_user=current_user,
    )


@router.get("/{survey_id}/consent", response_model=ConsentStatisticsOut)
def consent_statistics(
    survey_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return report_service.consent_statistics(db, survey_id=survey_id, current_user=current_user)


@router.get("/{survey_id}/participation", response_model=ParticipationStatisticsOut)
def participation_statistics(
    survey_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return report_service.participation_statistics(db, survey_id=survey_id, current_user=current_user)


@router.get("/{survey_id}/responses", response_model=DetailedResponsesOut)
def detailed_responses(
    survey_id: int,
    page: int = Query(1, ge=1),
    page_size: Optional[int] = Query(None, ge=1),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return report_service.detailed_responses(
        db,
        survey_id=survey_id,
        current_user=current_user,
        page=page,
        page_size=page_size,
    )


@router.get("/{survey_id}/employees/{employee_id}", response_model=EmployeeReportOut)
def employee_report(
    survey_id: int,
    employee_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return report_service.employee_report(
        db,
        survey_id=survey_id,
        employee_id=employee_id,
        current_user=current_user,
    )


@router.get("/{survey_id}/export.csv")
def export_csv(
    survey_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    csv_text = report_service.export_csv(db, survey_id=survey_id, current_user=current_user)
    return Response(
        content=csv_text,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="survey_{survey_id}.csv"'},
    )
