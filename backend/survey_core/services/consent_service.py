"""동의 원장 서비스 레이어입니다.

응답 행에 직원 식별자를 남길지는 오직 이 원장(``is_identity_linked``)이 결정합니다.
동의 결정은 ``pending`` 인 행에만 쓰이는 조건부 갱신이라 두 번째 결정은 항상 실패합니다.
"""

import logging
from datetime import datetime

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from survey_core.config import settings
from survey_core.errors import (
    AlreadyDecided,
    ConsentDeadlinePassed,
    NotFoundError,
    TokenAlreadyDecided,
    TokenInvalid,
    ValidationError,
)
from survey_core.models.consent import (
    CONSENT_DECLINED,
    CONSENT_GRANTED,
    CONSENT_PENDING,
    ConsentRecord,
)
from survey_core.models.survey import Survey
from survey_core.models.user import User
from survey_core.services import notification_service, survey_service, survey_state
from survey_core.utils.db_retry import with_store_retry
from survey_core.utils.helpers import generate_token, mask_token, survey_link, utcnow
from survey_core.utils.permissions import ensure_admin

logger = logging.getLogger(__name__)


def _consent_link(token: str) -> str:
    return survey_link(f"consent/{token}")


def _get_record_by_token(db: Session, token: str) -> ConsentRecord:
    row = db.query(ConsentRecord).filter(ConsentRecord.token == str(token or "")).first()
    if not row:
        raise TokenInvalid("유효하지 않은 동의 링크입니다.")
    return row


def _notify_consent_requests(db: Session, survey: Survey, records: list[ConsentRecord], now: datetime):
    rows = [
        notification_service.build_notification(
            user_id=record.employee_id,
            survey_id=survey.survey_id,
            noti_type=notification_service.CONSENT_REQUEST,
            title=f"[설문 동의 요청] {survey.name}",
            message=f"{survey.consent_deadline:%Y-%m-%d %H:%M} 까지 응답 식별 여부를 선택해주세요.",
            link_url=_consent_link(record.token),
        )
        for record in records
    ]
    notification_service.notify_recipients(db, rows)
    for record in records:
        record.notified_at = now
    db.commit()


def generate(
    db: Session,
    *,
    survey_id: int,
    employee_ids: list[int],
    current_user: User,
    now: datetime | None = None,
) -> dict:
    ensure_admin(current_user, "동의 요청은 관리자만 생성할 수 있습니다.")
    now = now or utcnow()
    survey = survey_service.get_survey_row(db, survey_id)
    survey_state.ensure_phase(
        survey,
        now,
        survey_state.EDITABLE_PHASES,
        detail="게시된 설문에는 동의 요청을 만들 수 없습니다.",
    )
    requested = []
    for raw in employee_ids or []:
        value = int(raw)
        if value not in requested:
            requested.append(value)
    if not requested:
        raise ValidationError("동의 요청 대상 직원이 없습니다.")

    created: list[ConsentRecord] = []
    skipped: list[dict] = []
    for employee_id in requested:
        employee = db.query(User).filter(User.user_id == employee_id).first()
        if not employee:
            skipped.append({"employee_id": employee_id, "reason": "not_found"})
            continue
        if not employee.is_active:
            skipped.append({"employee_id": employee_id, "reason": "inactive"})
            continue
        exists = (
            db.query(ConsentRecord.consent_id)
            .filter(ConsentRecord.survey_id == survey.survey_id, ConsentRecord.employee_id == employee_id)
            .first()
        )
        if exists:
            skipped.append({"employee_id": employee_id, "reason": "already_exists"})
            continue
        record = ConsentRecord(
            survey_id=survey.survey_id,
            employee_id=employee_id,
            token=generate_token(settings.CONSENT_TOKEN_BYTES),
            decision=CONSENT_PENDING,
        )
        db.add(record)
        try:
            db.commit()
        except IntegrityError:
            # 동시에 같은 직원의 행이 만들어졌다.
            db.rollback()
            skipped.append({"employee_id": employee_id, "reason": "already_exists"})
            continue
        db.refresh(record)
        created.append(record)

    if created:
        _notify_consent_requests(db, survey, created, now)
    # 원장에 한 건도 없으면 초안 상태를 유지한다.
    has_records = bool(created) or (
        db.query(ConsentRecord.consent_id).filter(ConsentRecord.survey_id == survey.survey_id).first() is not None
    )
    if has_records:
        survey_service.mark_consent_requested(db, survey)
    logger.info(
        "[consent] survey_id=%s created=%s skipped=%s",
        survey.survey_id,
        len(created),
        len(skipped),
    )
    return {
        "survey_id": survey.survey_id,
        "created": [record.employee_id for record in created],
        "skipped": skipped,
        "phase": survey_state.compute_phase(survey, now),
    }


def generate_for_scope(db: Session, *, survey_id: int, current_user: User, now: datetime | None = None) -> dict:
    survey = survey_service.get_survey_row(db, survey_id)
    employees = survey_service.resolve_target_employees(db, survey)
    if not employees:
        raise ValidationError("설문 대상 범위에 해당하는 활성 직원이 없습니다.")
    return generate(
        db,
        survey_id=survey.survey_id,
        employee_ids=[row.user_id for row in employees],
        current_user=current_user,
        now=now,
    )


@with_store_retry
def verify(db: Session, token: str, *, now: datetime | None = None) -> dict:
    now = now or utcnow()
    record = _get_record_by_token(db, token)
    if record.decision != CONSENT_PENDING:
        raise TokenAlreadyDecided()
    survey = record.survey
    employee = record.employee
    return {
        "survey": {
            "survey_id": survey.survey_id,
            "name": survey.name,
            "publish_date": survey.publish_date,
            "consent_deadline": survey.consent_deadline,
        },
        "employee": {
            "employee_id": employee.user_id,
            "name": employee.name,
            "email": employee.email,
            "department": employee.department,
        },
        "decision": record.decision,
        "deadline_passed": now > survey.consent_deadline,
    }


def decide(db: Session, token: str, granted: bool, *, now: datetime | None = None) -> ConsentRecord:
    now = now or utcnow()
    record = _get_record_by_token(db, token)
    if record.decision != CONSENT_PENDING:
        raise AlreadyDecided()
    if now > record.survey.consent_deadline:
        raise ConsentDeadlinePassed()

    decision = CONSENT_GRANTED if granted else CONSENT_DECLINED
    affected = (
        db.query(ConsentRecord)
        .filter(ConsentRecord.consent_id == record.consent_id, ConsentRecord.decision == CONSENT_PENDING)
        .update({"decision": decision, "decided_at": now}, synchronize_session=False)
    )
    db.commit()
    if affected == 0:
        raise AlreadyDecided()
    db.refresh(record)
    logger.info("[consent] token=%s decision=%s", mask_token(token), decision)
    return record


def is_identity_linked(db: Session, survey_id: int, employee_id: int | None) -> bool:
    if employee_id is None:
        return False
    decision = (
        db.query(ConsentRecord.decision)
        .filter(ConsentRecord.survey_id == int(survey_id), ConsentRecord.employee_id == int(employee_id))
        .scalar()
    )
    return decision == CONSENT_GRANTED


@with_store_retry
def list_records(db: Session, *, survey_id: int, current_user: User) -> list[ConsentRecord]:
    ensure_admin(current_user, "동의 현황은 관리자만 조회할 수 있습니다.")
    survey_service.get_survey_row(db, survey_id)
    return (
        db.query(ConsentRecord)
        .filter(ConsentRecord.survey_id == int(survey_id))
        .order_by(ConsentRecord.consent_id.asc())
        .all()
    )


def my_consent(db: Session, *, survey_id: int, current_user: User) -> ConsentRecord:
    row = (
        db.query(ConsentRecord)
        .filter(ConsentRecord.survey_id == int(survey_id), ConsentRecord.employee_id == current_user.user_id)
        .first()
    )
    if not row:
        raise NotFoundError("동의 요청 기록이 없습니다.")
    return row
