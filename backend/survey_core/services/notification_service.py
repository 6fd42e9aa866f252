"""Notification Service 도메인 서비스 레이어입니다. 동의 요청/설문 안내 전달을 담당합니다."""

import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from survey_core.errors import NotFoundError
from survey_core.models.notification import Notification

logger = logging.getLogger(__name__)

CONSENT_REQUEST = "consent_request"
SURVEY_INVITATION = "survey_invitation"


def get_notifications(db: Session, user_id: int, unread_only: bool = False) -> List[Notification]:
    q = db.query(Notification).filter(Notification.user_id == user_id)
    if unread_only:
        q = q.filter(Notification.is_read == False)  # noqa: E712
    return q.order_by(Notification.created_at.desc(), Notification.noti_id.desc()).limit(50).all()


def mark_read(db: Session, noti_id: int, user_id: int) -> Notification:
    noti = db.query(Notification).filter(
        Notification.noti_id == noti_id,
        Notification.user_id == user_id,
    ).first()
    if not noti:
        raise NotFoundError("알림을 찾을 수 없습니다.")
    noti.is_read = True
    db.commit()
    db.refresh(noti)
    return noti


def build_notification(
    *,
    user_id: int,
    noti_type: str,
    title: str,
    message: Optional[str] = None,
    link_url: Optional[str] = None,
    survey_id: Optional[int] = None,
) -> Notification:
    return Notification(
        user_id=user_id,
        survey_id=survey_id,
        noti_type=noti_type,
        title=title,
        message=message,
        link_url=link_url,
    )


def notify_recipients(db: Session, rows: List[Notification]) -> int:
    """같은 트랜잭션에서 만든 알림을 한 번에 기록한다. 커밋은 호출자 몫이다."""
    if not rows:
        return 0
    db.add_all(rows)
    logger.info("[notify] queued %s notification(s) type=%s", len(rows), rows[0].noti_type)
    return len(rows)
