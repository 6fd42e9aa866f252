"""수신자 확장/설문 배포 API 라우터입니다."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from survey_core.database import get_db
from survey_core.middleware.auth_middleware import get_current_user, require_admin
from survey_core.models.user import User
from survey_core.schemas.recipient import (
    DistributionOut,
    DistributionRequest,
    RecipientExpandRequest,
    RecipientExpansionOut,
)
from survey_core.services import recipient_service

router = APIRouter(tags=["recipients"])


@router.post("/api/recipients/expand", response_model=RecipientExpansionOut)
def expand_recipients(
    data: RecipientExpandRequest,
    db: Session = Depends(get_db),
    _admin: User = Depends(require_admin),
):
    return recipient_service.expand(db, data.department_ids)


@router.post("/api/surveys/{survey_id}/distribute", response_model=DistributionOut)
def distribute_survey(
    survey_id: int,
    data: DistributionRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return recipient_service.send_survey_links(
        db,
        survey_id=survey_id,
        department_ids=data.department_ids,
        include_additional=data.include_additional,
        current_user=current_user,
    )
