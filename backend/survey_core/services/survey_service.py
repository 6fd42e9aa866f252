"""설문/문항 서비스 레이어입니다. 설문 단계 전이와 게시 전 편집 규칙을 담당합니다."""

import logging
from datetime import datetime

from sqlalchemy.orm import Session

from survey_core.config import settings
from survey_core.errors import NotFoundError, StateConflictError, ValidationError
from survey_core.models.access_token import AccessToken
from survey_core.models.consent import ConsentRecord
from survey_core.models.notification import Notification
from survey_core.models.submission import SurveySubmission
from survey_core.models.survey import Survey, SurveyQuestion
from survey_core.models.user import User
from survey_core.schemas.survey import (
    SurveyCreate,
    SurveyQuestionCreate,
    SurveyQuestionUpdate,
    SurveyUpdate,
)
from survey_core.services import survey_state
from survey_core.utils.db_retry import with_store_retry
from survey_core.utils.helpers import (
    dump_json_list,
    generate_token,
    parse_json_list,
    to_naive_utc,
    utcnow,
)
from survey_core.utils.permissions import RESPONDENT_ROLES, ensure_admin

logger = logging.getLogger(__name__)

ALL_DEPARTMENTS = "All Departments"
MIN_OPTIONS = 2
MAX_OPTIONS = 4


def _normalize_options(values: list[str] | None) -> list[str]:
    rows = []
    seen = set()
    for raw in values or []:
        text = str(raw or "").strip()
        if not text or text in seen:
            continue
        seen.add(text)
        rows.append(text)
    return rows


def parse_options(question: SurveyQuestion) -> list[str]:
    return [str(v) for v in parse_json_list(question.options_json) if str(v).strip()]


def _attach_question_options(question: SurveyQuestion) -> SurveyQuestion:
    setattr(question, "options", parse_options(question))
    return question


def target_employee_ids(survey: Survey) -> list[int]:
    ids = []
    for raw in parse_json_list(survey.target_employees_json):
        try:
            ids.append(int(raw))
        except (TypeError, ValueError):
            continue
    return ids


def attach_survey_view(survey: Survey, now: datetime | None = None) -> Survey:
    setattr(survey, "phase", survey_state.compute_phase(survey, now or utcnow()))
    setattr(survey, "target_employee_ids", target_employee_ids(survey))
    return survey


def get_survey_row(db: Session, survey_id: int) -> Survey:
    row = db.query(Survey).filter(Survey.survey_id == int(survey_id)).first()
    if not row:
        raise NotFoundError("설문을 찾을 수 없습니다.")
    return row


def _validate_schedule(publish_date: datetime, duration_days: int) -> datetime:
    if int(duration_days) < 1:
        raise ValidationError("설문 기간은 최소 1일이어야 합니다.")
    if int(duration_days) > settings.SURVEY_MAX_DURATION_DAYS:
        raise ValidationError(f"설문 기간은 {settings.SURVEY_MAX_DURATION_DAYS}일을 넘을 수 없습니다.")
    end_date = survey_state.end_date_for(publish_date, duration_days)
    if end_date <= publish_date:
        raise ValidationError("설문 종료일은 게시일 이후여야 합니다.")
    return end_date


def _validate_consent_deadline(deadline: datetime, publish_date: datetime):
    if deadline > publish_date:
        raise ValidationError("동의 기한은 게시일 이후일 수 없습니다.")


def _validate_target(db: Session, target_department: str | None, employee_ids: list[int]) -> tuple[str | None, list[int]]:
    department = str(target_department or "").strip() or None
    ids = sorted({int(v) for v in employee_ids or []})
    if not department and not ids:
        raise ValidationError("대상 부서 또는 대상 직원을 지정해야 합니다.")
    if ids:
        found = {
            int(row[0])
            for row in db.query(User.user_id).filter(User.user_id.in_(ids)).all()
        }
        missing = [v for v in ids if v not in found]
        if missing:
            raise ValidationError(f"존재하지 않는 직원이 포함되어 있습니다: {missing}")
        # 명시 목록이 있으면 부서 지정은 무시한다.
        department = None
    return department, ids


def resolve_target_employees(db: Session, survey: Survey) -> list[User]:
    """설문 대상 범위(명시 목록 / 부서 / 전체 부서)를 활성 응답자 목록으로 푼다."""
    query = db.query(User).filter(User.is_active == True)  # noqa: E712
    ids = target_employee_ids(survey)
    if ids:
        query = query.filter(User.user_id.in_(ids))
    else:
        query = query.filter(User.role.in_(RESPONDENT_ROLES))
        if survey.target_department and survey.target_department != ALL_DEPARTMENTS:
            query = query.filter(User.department == survey.target_department)
    return query.order_by(User.user_id.asc()).all()


def create_survey(db: Session, data: SurveyCreate, current_user: User, *, now: datetime | None = None) -> Survey:
    ensure_admin(current_user, "설문 관리는 관리자만 가능합니다.")
    now = now or utcnow()
    publish_date = to_naive_utc(data.publish_date)
    if publish_date <= now:
        raise ValidationError("게시일은 현재 시각 이후여야 합니다.")
    end_date = _validate_schedule(publish_date, data.duration_days)
    consent_deadline = to_naive_utc(data.consent_deadline) if data.consent_deadline else publish_date
    _validate_consent_deadline(consent_deadline, publish_date)
    department, ids = _validate_target(db, data.target_department, data.target_employee_ids)

    row = Survey(
        name=data.name.strip(),
        description=data.description,
        publish_date=publish_date,
        duration_days=int(data.duration_days),
        end_date=end_date,
        target_department=department,
        target_employees_json=dump_json_list(ids),
        status=survey_state.DRAFT,
        consent_deadline=consent_deadline,
        public_link_token=generate_token(settings.PUBLIC_LINK_TOKEN_BYTES),
        created_by=current_user.user_id,
        updated_by=current_user.user_id,
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    logger.info("[survey] created survey_id=%s publish=%s end=%s", row.survey_id, row.publish_date, row.end_date)
    return attach_survey_view(row, now)


@with_store_retry
def get_survey(db: Session, survey_id: int, *, now: datetime | None = None) -> Survey:
    now = now or utcnow()
    row = get_survey_row(db, survey_id)
    if survey_state.refresh_cached_phase(row, now):
        db.commit()
        db.refresh(row)
    return attach_survey_view(row, now)


@with_store_retry
def list_surveys(db: Session, *, phase: str | None = None, now: datetime | None = None) -> list[Survey]:
    now = now or utcnow()
    rows = db.query(Survey).order_by(Survey.publish_date.desc(), Survey.survey_id.desc()).all()
    changed = False
    for row in rows:
        changed = survey_state.refresh_cached_phase(row, now) or changed
    if changed:
        db.commit()
    result = [attach_survey_view(row, now) for row in rows]
    if phase:
        result = [row for row in result if row.phase == phase]
    return result


def update_survey(
    db: Session,
    *,
    survey_id: int,
    data: SurveyUpdate,
    current_user: User,
    now: datetime | None = None,
) -> Survey:
    ensure_admin(current_user, "설문 관리는 관리자만 가능합니다.")
    now = now or utcnow()
    row = get_survey_row(db, survey_id)
    survey_state.ensure_phase(
        row,
        now,
        survey_state.EDITABLE_PHASES,
        detail="게시된 설문은 수정할 수 없습니다.",
    )
    payload = data.model_dump(exclude_unset=True)

    next_publish = row.publish_date
    if payload.get("publish_date") is not None:
        next_publish = to_naive_utc(payload["publish_date"])
        if next_publish <= now:
            raise ValidationError("게시일은 현재 시각 이후여야 합니다.")
    next_duration = payload.get("duration_days") or row.duration_days
    next_end = _validate_schedule(next_publish, next_duration)

    if payload.get("consent_deadline") is not None:
        next_deadline = to_naive_utc(payload["consent_deadline"])
    elif row.consent_deadline == row.publish_date:
        next_deadline = next_publish
    else:
        next_deadline = row.consent_deadline
    _validate_consent_deadline(next_deadline, next_publish)

    if "target_department" in payload or "target_employee_ids" in payload:
        department, ids = _validate_target(
            db,
            payload.get("target_department", row.target_department),
            payload.get("target_employee_ids") if payload.get("target_employee_ids") is not None else target_employee_ids(row),
        )
        row.target_department = department
        row.target_employees_json = dump_json_list(ids)

    if payload.get("name") is not None:
        row.name = payload["name"].strip()
    if "description" in payload:
        row.description = payload["description"]
    row.publish_date = next_publish
    row.duration_days = int(next_duration)
    row.end_date = next_end
    row.consent_deadline = next_deadline
    row.updated_by = current_user.user_id
    db.commit()
    db.refresh(row)
    return attach_survey_view(row, now)


def transition_status(
    db: Session,
    *,
    survey_id: int,
    target: str,
    current_user: User,
    now: datetime | None = None,
) -> Survey:
    ensure_admin(current_user, "설문 관리는 관리자만 가능합니다.")
    now = now or utcnow()
    row = get_survey_row(db, survey_id)
    current = survey_state.compute_phase(row, now)
    next_phase = survey_state.next_manual_phase(current, target)
    if next_phase != current:
        row.status = next_phase
        if next_phase == survey_state.ARCHIVED:
            row.archived_at = now
        row.updated_by = current_user.user_id
        logger.info("[survey] survey_id=%s %s -> %s", row.survey_id, current, next_phase)
    else:
        survey_state.refresh_cached_phase(row, now)
    db.commit()
    db.refresh(row)
    return attach_survey_view(row, now)


def mark_consent_requested(db: Session, survey: Survey):
    """동의 요청이 생성되면 draft 설문을 pending_consent 로 옮긴다. 이미 옮겨졌으면 그대로."""
    if survey.status == survey_state.DRAFT:
        survey.status = survey_state.PENDING_CONSENT
        db.commit()
        logger.info("[survey] survey_id=%s draft -> pending_consent", survey.survey_id)


def sweep_phases(db: Session, *, current_user: User, now: datetime | None = None) -> dict:
    ensure_admin(current_user, "설문 관리는 관리자만 가능합니다.")
    now = now or utcnow()
    activated = 0
    completed = 0
    rows = (
        db.query(Survey)
        .filter(Survey.status.in_([survey_state.PENDING_CONSENT, survey_state.ACTIVE]))
        .all()
    )
    for row in rows:
        before = row.status
        if not survey_state.refresh_cached_phase(row, now):
            continue
        if row.status == survey_state.ACTIVE:
            activated += 1
        elif row.status == survey_state.COMPLETED:
            completed += 1
        logger.info("[survey] sweep survey_id=%s %s -> %s", row.survey_id, before, row.status)
    db.commit()
    return {"activated": activated, "completed": completed}


def delete_survey(db: Session, *, survey_id: int, current_user: User):
    ensure_admin(current_user, "설문 관리는 관리자만 가능합니다.")
    row = get_survey_row(db, survey_id)
    has_submissions = (
        db.query(SurveySubmission.submission_id)
        .filter(SurveySubmission.survey_id == row.survey_id)
        .first()
        is not None
    )
    if has_submissions:
        raise StateConflictError("응답이 있는 설문은 삭제할 수 없습니다. 보관(archived) 처리하세요.")
    for model in (Notification, ConsentRecord, AccessToken):
        db.query(model).filter(model.survey_id == row.survey_id).delete(synchronize_session=False)
    db.delete(row)
    db.commit()


def _validate_question_options(options: list[str] | None) -> list[str]:
    normalized = _normalize_options(options)
    if len(normalized) < MIN_OPTIONS or len(normalized) > MAX_OPTIONS:
        raise ValidationError(f"문항의 선택지는 {MIN_OPTIONS}~{MAX_OPTIONS}개여야 합니다.")
    for value in normalized:
        if len(value) > 200:
            raise ValidationError("선택지는 200자를 넘을 수 없습니다.")
    return normalized


def _normalize_parameter(value: str | None) -> str | None:
    text = str(value or "").strip()
    return text or None


def _ensure_questions_editable(survey: Survey, now: datetime):
    survey_state.ensure_phase(
        survey,
        now,
        survey_state.EDITABLE_PHASES,
        detail="게시된 설문의 문항은 변경할 수 없습니다.",
    )


def load_questions(db: Session, survey_id: int) -> list[SurveyQuestion]:
    rows = (
        db.query(SurveyQuestion)
        .filter(SurveyQuestion.survey_id == int(survey_id))
        .order_by(SurveyQuestion.display_order.asc(), SurveyQuestion.question_id.asc())
        .all()
    )
    return [_attach_question_options(row) for row in rows]


@with_store_retry
def list_questions(db: Session, *, survey_id: int) -> list[SurveyQuestion]:
    get_survey_row(db, survey_id)
    return load_questions(db, survey_id)


def _build_question(survey_id: int, data: SurveyQuestionCreate) -> SurveyQuestion:
    return SurveyQuestion(
        survey_id=int(survey_id),
        question_text=data.question_text.strip(),
        options_json=dump_json_list(_validate_question_options(data.options)),
        parameter=_normalize_parameter(data.parameter),
        display_order=max(1, int(data.display_order or 1)),
    )


def create_question(
    db: Session,
    *,
    survey_id: int,
    data: SurveyQuestionCreate,
    current_user: User,
    now: datetime | None = None,
) -> SurveyQuestion:
    ensure_admin(current_user, "질문 관리는 관리자만 가능합니다.")
    survey = get_survey_row(db, survey_id)
    _ensure_questions_editable(survey, now or utcnow())
    row = _build_question(survey.survey_id, data)
    db.add(row)
    db.commit()
    db.refresh(row)
    return _attach_question_options(row)


def import_questions(
    db: Session,
    *,
    survey_id: int,
    rows: list[SurveyQuestionCreate],
    current_user: User,
    now: datetime | None = None,
) -> list[SurveyQuestion]:
    """파일 파서가 검증해 넘겨준 행을 한 번에 등록한다. 하나라도 잘못되면 아무것도 쓰지 않는다."""
    ensure_admin(current_user, "질문 관리는 관리자만 가능합니다.")
    survey = get_survey_row(db, survey_id)
    _ensure_questions_editable(survey, now or utcnow())
    if not rows:
        raise ValidationError("등록할 문항이 없습니다.")
    built = []
    for index, data in enumerate(rows, start=1):
        try:
            built.append(_build_question(survey.survey_id, data))
        except ValidationError as exc:
            raise ValidationError(f"{index}행: {exc.detail}") from exc
    db.add_all(built)
    db.commit()
    for row in built:
        db.refresh(row)
    return [_attach_question_options(row) for row in built]


def _get_question(db: Session, question_id: int) -> SurveyQuestion:
    row = db.query(SurveyQuestion).filter(SurveyQuestion.question_id == int(question_id)).first()
    if not row:
        raise NotFoundError("질문을 찾을 수 없습니다.")
    return row


def update_question(
    db: Session,
    *,
    question_id: int,
    data: SurveyQuestionUpdate,
    current_user: User,
    now: datetime | None = None,
) -> SurveyQuestion:
    ensure_admin(current_user, "질문 관리는 관리자만 가능합니다.")
    row = _get_question(db, question_id)
    _ensure_questions_editable(row.survey, now or utcnow())
    payload = data.model_dump(exclude_unset=True)
    if payload.get("question_text") is not None:
        row.question_text = payload["question_text"].strip()
    if payload.get("options") is not None:
        row.options_json = dump_json_list(_validate_question_options(payload["options"]))
    if "parameter" in payload:
        row.parameter = _normalize_parameter(payload["parameter"])
    if payload.get("display_order") is not None:
        row.display_order = max(1, int(payload["display_order"]))
    db.commit()
    db.refresh(row)
    return _attach_question_options(row)


def delete_question(db: Session, *, question_id: int, current_user: User, now: datetime | None = None):
    ensure_admin(current_user, "질문 관리는 관리자만 가능합니다.")
    row = _get_question(db, question_id)
    _ensure_questions_editable(row.survey, now or utcnow())
    db.delete(row)
    db.commit()
