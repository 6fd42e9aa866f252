"""Notifications 기능 API 라우터입니다. 직원이 받은 동의 요청/설문 안내를 조회합니다."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List
from survey_core.database import get_db
from survey_core.schemas.notification import NotificationOut
from survey_core.services import notification_service
from survey_core.middleware.auth_middleware import get_current_user
from survey_core.models.user import User

router = APIRouter(prefix="/api/notifications", tags=["notifications"])


@router.get("", response_model=List[NotificationOut])
def list_notifications(
    unread_only: bool = False,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return notification_service.get_notifications(db, current_user.user_id, unread_only)


@router.patch("/{noti_id}/read", response_model=NotificationOut)
def mark_read(noti_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return notification_service.mark_read(db, noti_id, current_user.user_id)
