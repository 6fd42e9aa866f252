"""설문 단계(phase) 계산 규칙입니다.

단계는 저장된 ``status`` 가 아니라 (현재 시각, 게시일, 종료일) 로부터 매번 계산합니다.
``draft`` 와 ``archived`` 만 관리자 조작으로 정해지는 단계이고, 나머지는 시간이 지나면서
저절로 바뀝니다. 그래서 스케줄러 없이도 읽는 순간의 단계가 항상 정확합니다.
"""

from datetime import datetime, timedelta

from survey_core.errors import StateConflictError
from survey_core.models.survey import Survey


DRAFT = "draft"
PENDING_CONSENT = "pending_consent"
ACTIVE = "active"
COMPLETED = "completed"
ARCHIVED = "archived"

PHASES = (DRAFT, PENDING_CONSENT, ACTIVE, COMPLETED, ARCHIVED)
STICKY_PHASES = {DRAFT, ARCHIVED}
# 게시 전(관리자 편집 가능) 단계
EDITABLE_PHASES = {DRAFT, PENDING_CONSENT}


def end_date_for(publish_date: datetime, duration_days: int) -> datetime:
    return publish_date + timedelta(days=int(duration_days))


def phase_from_schedule(publish_date: datetime, end_date: datetime, now: datetime) -> str:
    if now < publish_date:
        return PENDING_CONSENT
    if now <= end_date:
        return ACTIVE
    return COMPLETED


def compute_phase(survey: Survey, now: datetime) -> str:
    stored = str(survey.status or DRAFT)
    if stored in STICKY_PHASES:
        return stored
    return phase_from_schedule(survey.publish_date, survey.end_date, now)


def refresh_cached_phase(survey: Survey, now: datetime) -> bool:
    """캐시된 status 를 계산값으로 맞춘다. 값이 바뀌었으면 True."""
    phase = compute_phase(survey, now)
    if phase == survey.status:
        return False
    survey.status = phase
    return True


def ensure_phase(survey: Survey, now: datetime, allowed: set[str], error_cls=StateConflictError, detail: str | None = None) -> str:
    phase = compute_phase(survey, now)
    if phase not in allowed:
        raise error_cls(detail or f"현재 설문 단계({phase})에서는 처리할 수 없습니다.")
    return phase


def next_manual_phase(current: str, target: str) -> str:
    """관리자가 직접 요청할 수 있는 전이만 허용한다.

    같은 단계로의 전이는 변화 없이 그대로 통과한다.
    """
    if target == current:
        return current
    if current == DRAFT and target == PENDING_CONSENT:
        return PENDING_CONSENT
    if current == COMPLETED and target == ARCHIVED:
        return ARCHIVED
    if target in {ACTIVE, COMPLETED}:
        raise StateConflictError("진행/종료 단계는 게시일과 기간에 따라 자동으로 바뀝니다.")
    raise StateConflictError(f"'{current}' 단계에서 '{target}' 단계로 바꿀 수 없습니다.")
