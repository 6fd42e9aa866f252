"""설문 접근 토큰 발급/사용과 응답 제출 서비스 레이어입니다.

토큰 사용(redeem)은 ``issued`` 상태인 행만 바꾸는 조건부 갱신 한 번으로 처리합니다.
영향받은 행이 없으면 다른 요청이 먼저 사용한 것이므로 ``TokenAlreadyRedeemed`` 입니다.
제출은 응답 행과 제출 행을 한 트랜잭션으로 기록하고, 유니크 제약 위반은
``DuplicateSubmission`` 으로 바꿔 돌려줍니다.
"""

import logging
from datetime import datetime

from fastapi import HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from survey_core.config import settings
from survey_core.errors import (
    AlreadyCompleted,
    DuplicateSubmission,
    NotFoundError,
    StateConflictError,
    SurveyNotActive,
    TokenAlreadyRedeemed,
    TokenInvalid,
    ValidationError,
)
from survey_core.models.access_token import (
    CHANNEL_LINK,
    CHANNEL_PUBLIC,
    CHANNEL_SESSION,
    TOKEN_EXPIRED,
    TOKEN_ISSUED,
    TOKEN_REDEEMED,
    AccessToken,
)
from survey_core.models.submission import SurveyResponse, SurveySubmission
from survey_core.models.survey import Survey
from survey_core.models.user import User
from survey_core.schemas.token import AnswerInput
from survey_core.services import consent_service, survey_service, survey_state
from survey_core.utils.db_retry import with_store_retry
from survey_core.utils.helpers import generate_token, mask_token, survey_link, utcnow
from survey_core.utils.permissions import ensure_admin

logger = logging.getLogger(__name__)


def token_url(token: AccessToken) -> str:
    return survey_link(f"survey/{token.token}")


def _attach_token_view(token: AccessToken) -> AccessToken:
    setattr(token, "survey_url", token_url(token))
    return token


def has_submitted(db: Session, survey_id: int, employee_id: int | None) -> bool:
    if employee_id is None:
        return False
    return (
        db.query(SurveySubmission.submission_id)
        .filter(SurveySubmission.survey_id == int(survey_id), SurveySubmission.employee_id == int(employee_id))
        .first()
        is not None
    )


def _ensure_active(survey: Survey, now: datetime):
    survey_state.ensure_phase(
        survey,
        now,
        {survey_state.ACTIVE},
        detail="진행중인 설문에만 토큰을 발급할 수 있습니다.",
    )


def mint_token(db: Session, survey: Survey, *, employee_id: int | None, channel: str, now: datetime) -> AccessToken:
    """호출자가 단계/대상 검증을 마친 뒤 토큰 행을 추가한다. 커밋은 호출자 몫이다."""
    row = AccessToken(
        token=generate_token(settings.ACCESS_TOKEN_BYTES),
        survey_id=survey.survey_id,
        employee_id=employee_id,
        channel=channel,
        status=TOKEN_ISSUED,
        issued_at=now,
    )
    db.add(row)
    return row


def _get_active_employee(db: Session, employee_id: int) -> User:
    employee = db.query(User).filter(User.user_id == int(employee_id)).first()
    if not employee or not employee.is_active:
        raise NotFoundError("활성 직원을 찾을 수 없습니다.")
    return employee


def issue_employee_token(
    db: Session,
    *,
    survey_id: int,
    employee_id: int,
    current_user: User,
    now: datetime | None = None,
) -> AccessToken:
    ensure_admin(current_user, "설문 링크 발급은 관리자만 가능합니다.")
    now = now or utcnow()
    survey = survey_service.get_survey_row(db, survey_id)
    _ensure_active(survey, now)
    employee = _get_active_employee(db, employee_id)
    if has_submitted(db, survey.survey_id, employee.user_id):
        raise AlreadyCompleted()
    row = mint_token(db, survey, employee_id=employee.user_id, channel=CHANNEL_LINK, now=now)
    db.commit()
    db.refresh(row)
    logger.info("[token] issued survey_id=%s employee_id=%s token=%s", survey.survey_id, employee.user_id, mask_token(row.token))
    return _attach_token_view(row)


def issue_anonymous_token(
    db: Session,
    *,
    survey_id: int,
    current_user: User,
    now: datetime | None = None,
) -> AccessToken:
    ensure_admin(current_user, "설문 링크 발급은 관리자만 가능합니다.")
    now = now or utcnow()
    survey = survey_service.get_survey_row(db, survey_id)
    _ensure_active(survey, now)
    row = mint_token(db, survey, employee_id=None, channel=CHANNEL_LINK, now=now)
    db.commit()
    db.refresh(row)
    logger.info("[token] issued anonymous survey_id=%s token=%s", survey.survey_id, mask_token(row.token))
    return _attach_token_view(row)


def issue_public_token(db: Session, public_link_token: str, *, now: datetime | None = None) -> AccessToken:
    now = now or utcnow()
    survey = db.query(Survey).filter(Survey.public_link_token == str(public_link_token or "")).first()
    if not survey:
        raise TokenInvalid("유효하지 않은 공개 설문 링크입니다.")
    if survey_state.compute_phase(survey, now) != survey_state.ACTIVE:
        raise SurveyNotActive()
    row = mint_token(db, survey, employee_id=None, channel=CHANNEL_PUBLIC, now=now)
    db.commit()
    db.refresh(row)
    return _attach_token_view(row)


@with_store_retry
def list_tokens(db: Session, *, survey_id: int, current_user: User, status: str | None = None) -> dict:
    ensure_admin(current_user, "설문 링크 현황은 관리자만 조회할 수 있습니다.")
    survey = survey_service.get_survey_row(db, survey_id)
    rows = (
        db.query(AccessToken)
        .filter(AccessToken.survey_id == survey.survey_id)
        .order_by(AccessToken.issued_at.desc(), AccessToken.token_id.desc())
        .all()
    )
    counts = {TOKEN_ISSUED: 0, TOKEN_REDEEMED: 0, TOKEN_EXPIRED: 0}
    for row in rows:
        counts[row.status] = counts.get(row.status, 0) + 1
    items = [_attach_token_view(row) for row in rows if status is None or row.status == status]
    return {"survey_id": survey.survey_id, "total": len(rows), "counts": counts, "items": items}


def revoke_token(
    db: Session,
    *,
    survey_id: int,
    token_id: int,
    current_user: User,
    now: datetime | None = None,
) -> AccessToken:
    """아직 쓰이지 않은 링크를 만료시킨다. 이미 만료된 링크는 그대로 돌려준다."""
    ensure_admin(current_user, "설문 링크 회수는 관리자만 가능합니다.")
    now = now or utcnow()
    row = (
        db.query(AccessToken)
        .filter(AccessToken.token_id == int(token_id), AccessToken.survey_id == int(survey_id))
        .first()
    )
    if not row:
        raise NotFoundError("설문 링크를 찾을 수 없습니다.")
    if row.status == TOKEN_REDEEMED:
        raise TokenAlreadyRedeemed("이미 사용된 설문 링크는 회수할 수 없습니다.")
    if row.status == TOKEN_ISSUED and _expire_token(db, row, now) == 0:
        raise TokenAlreadyRedeemed("이미 사용된 설문 링크는 회수할 수 없습니다.")
    db.refresh(row)
    logger.info("[token] revoked survey_id=%s token=%s", row.survey_id, mask_token(row.token))
    return _attach_token_view(row)


def _attempt_payload(db: Session, token: AccessToken, survey: Survey) -> dict:
    questions = survey_service.load_questions(db, survey.survey_id)
    return {
        "attempt_id": token.token_id,
        "attempt_key": token.attempt_key,
        "survey_id": survey.survey_id,
        "survey_name": survey.name,
        "end_date": survey.end_date,
        "identity_linked": consent_service.is_identity_linked(db, survey.survey_id, token.employee_id),
        "questions": [
            {
                "question_id": q.question_id,
                "question_text": q.question_text,
                "options": q.options,
                "parameter": q.parameter,
                "display_order": q.display_order,
            }
            for q in questions
        ],
    }


def _expire_token(db: Session, token: AccessToken, now: datetime) -> int:
    affected = (
        db.query(AccessToken)
        .filter(AccessToken.token_id == token.token_id, AccessToken.status == TOKEN_ISSUED)
        .update({"status": TOKEN_EXPIRED, "expired_at": now}, synchronize_session=False)
    )
    db.commit()
    return affected


def redeem(db: Session, token: str, *, now: datetime | None = None) -> dict:
    now = now or utcnow()
    row = db.query(AccessToken).filter(AccessToken.token == str(token or "")).first()
    if not row:
        raise TokenInvalid("유효하지 않은 설문 링크입니다.")
    if has_submitted(db, row.survey_id, row.employee_id):
        raise AlreadyCompleted()
    if row.status == TOKEN_REDEEMED:
        raise TokenAlreadyRedeemed()

    survey = row.survey
    phase = survey_state.compute_phase(survey, now)
    if phase != survey_state.ACTIVE:
        if phase in {survey_state.COMPLETED, survey_state.ARCHIVED}:
            _expire_token(db, row, now)
        raise SurveyNotActive()
    if row.status == TOKEN_EXPIRED:
        raise SurveyNotActive("만료된 설문 링크입니다.")

    # 제출은 순번 token_id 가 아니라 이 비밀값으로만 할 수 있다.
    attempt_key = generate_token(settings.ACCESS_TOKEN_BYTES)
    affected = (
        db.query(AccessToken)
        .filter(AccessToken.token_id == row.token_id, AccessToken.status == TOKEN_ISSUED)
        .update(
            {"status": TOKEN_REDEEMED, "redeemed_at": now, "attempt_key": attempt_key},
            synchronize_session=False,
        )
    )
    db.commit()
    if affected == 0:
        raise TokenAlreadyRedeemed()
    db.refresh(row)
    logger.info("[token] redeemed token=%s attempt_id=%s", mask_token(row.token), row.token_id)
    return _attempt_payload(db, row, survey)


def start_session_attempt(db: Session, *, survey_id: int, current_user: User, now: datetime | None = None) -> dict:
    """로그인한 직원이 링크 없이 설문을 시작한다. 식별 여부는 여전히 동의 원장이 정한다."""
    now = now or utcnow()
    survey = survey_service.get_survey_row(db, survey_id)
    if survey_state.compute_phase(survey, now) != survey_state.ACTIVE:
        raise SurveyNotActive()
    if has_submitted(db, survey.survey_id, current_user.user_id):
        raise AlreadyCompleted()
    row = mint_token(db, survey, employee_id=current_user.user_id, channel=CHANNEL_SESSION, now=now)
    db.commit()
    db.refresh(row)
    return redeem(db, row.token, now=now)


def _validate_answers(db: Session, survey_id: int, answers: list[AnswerInput]) -> tuple[list[tuple[int, str]], int]:
    questions = {q.question_id: q for q in survey_service.load_questions(db, survey_id)}
    if not questions:
        raise ValidationError("문항이 없는 설문입니다.")
    rows: list[tuple[int, str]] = []
    seen: set[int] = set()
    for answer in answers:
        question = questions.get(int(answer.question_id))
        if not question:
            raise ValidationError(f"설문에 속하지 않은 문항입니다. (question_id={answer.question_id})")
        if question.question_id in seen:
            raise ValidationError(f"같은 문항에 두 번 답할 수 없습니다. (question_id={question.question_id})")
        option = answer.selected_option.strip()
        if option not in question.options:
            raise ValidationError(f"선택지에 없는 답변입니다. (question_id={question.question_id})")
        seen.add(question.question_id)
        rows.append((question.question_id, option))
    if not rows:
        raise ValidationError("최소 한 문항 이상 답해야 합니다.")
    if settings.SURVEY_REQUIRE_ALL_QUESTIONS and len(seen) != len(questions):
        missing = sorted(set(questions) - seen)
        raise ValidationError(f"답하지 않은 문항이 있습니다. (question_id={missing})")
    return rows, len(questions)


def finalize_submission(
    db: Session,
    *,
    attempt_key: str,
    answers: list[AnswerInput],
    current_user: User | None = None,
    now: datetime | None = None,
) -> SurveySubmission:
    """redeem 이 돌려준 ``attempt_key`` 로만 제출한다.

    로그인 세션으로 시작한 응답은 같은 사용자의 인증까지 요구한다.
    """
    now = now or utcnow()
    key = str(attempt_key or "")
    token = db.query(AccessToken).filter(AccessToken.attempt_key == key).first() if key else None
    if not token:
        raise NotFoundError("설문 응답 세션을 찾을 수 없습니다.")
    if token.status != TOKEN_REDEEMED:
        raise StateConflictError("시작되지 않은 설문 응답 세션입니다.")
    if token.channel == CHANNEL_SESSION and (current_user is None or current_user.user_id != token.employee_id):
        raise HTTPException(status_code=403, detail="본인이 시작한 설문 응답만 제출할 수 있습니다.")
    survey = token.survey
    if survey_state.compute_phase(survey, now) != survey_state.ACTIVE:
        raise SurveyNotActive()

    rows, total_questions = _validate_answers(db, survey.survey_id, answers)
    linked = consent_service.is_identity_linked(db, survey.survey_id, token.employee_id)
    response_employee_id = token.employee_id if linked else None

    submission = SurveySubmission(
        survey_id=survey.survey_id,
        employee_id=token.employee_id,
        access_token_id=token.token_id,
        total_questions=total_questions,
        answered_questions=len(rows),
        submitted_at=now,
    )
    db.add(submission)
    db.add_all(
        [
            SurveyResponse(
                survey_id=survey.survey_id,
                question_id=question_id,
                attempt_id=token.token_id,
                employee_id=response_employee_id,
                selected_option=option,
                created_at=now,
            )
            for question_id, option in rows
        ]
    )
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        logger.info("[token] duplicate submission rejected attempt_id=%s", token.token_id)
        raise DuplicateSubmission() from exc
    db.refresh(submission)
    setattr(submission, "identity_linked", linked)
    logger.info(
        "[token] submitted survey_id=%s attempt_id=%s answers=%s linked=%s",
        survey.survey_id,
        token.token_id,
        len(rows),
        linked,
    )
    return submission
