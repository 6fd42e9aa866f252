"""수신자 확장 서비스 레이어입니다.

선택한 부서의 응답자를 대상자로 두고, 대상자의 직속 관리자와 직속 부하 중 선택 부서 밖에
있는 사람을 추가 수신자로 붙입니다. 부서 수와 상관없이 대상/관리자/부하 세 번의 질의로
끝나며, 관계는 한 단계만 따라갑니다.
"""

import logging
from collections import Counter, defaultdict
from datetime import datetime

from sqlalchemy import or_
from sqlalchemy.orm import Session

from survey_core.errors import ValidationError
from survey_core.models.access_token import CHANNEL_LINK
from survey_core.models.user import User
from survey_core.services import notification_service, survey_service, survey_state, token_service
from survey_core.utils.helpers import utcnow
from survey_core.utils.permissions import RESPONDENT_ROLES, ensure_admin

logger = logging.getLogger(__name__)

RELATION_MANAGER = "manager"
RELATION_DIRECT_REPORT = "direct_report"


def _sort_key(user: User):
    return (user.department or "", user.name or "", user.user_id)


def _recipient_dict(user: User) -> dict:
    return {
        "employee_id": user.user_id,
        "emp_id": user.emp_id,
        "name": user.name,
        "email": user.email,
        "department": user.department,
        "role": user.role,
    }


def _normalize_departments(department_ids: list[str]) -> list[str]:
    departments = sorted({str(v or "").strip() for v in department_ids or []} - {""})
    if not departments:
        raise ValidationError("부서를 하나 이상 선택해야 합니다.")
    return departments


def _active_respondents(db: Session):
    return db.query(User).filter(
        User.is_active == True,  # noqa: E712
        User.role.in_(RESPONDENT_ROLES),
    )


def _outside(query, departments: list[str], all_departments: bool):
    if all_departments:
        return query
    return query.filter(or_(User.department.is_(None), User.department.notin_(departments)))


def expand(db: Session, department_ids: list[str]) -> dict:
    departments = _normalize_departments(department_ids)
    all_departments = survey_service.ALL_DEPARTMENTS in departments

    target_query = _active_respondents(db)
    if not all_departments:
        target_query = target_query.filter(User.department.in_(departments))
    targets = sorted(target_query.all(), key=_sort_key)
    target_ids = {user.user_id for user in targets}

    manager_links: dict[int, set[int]] = defaultdict(set)
    for user in targets:
        if user.manager_id and user.manager_id not in target_ids:
            manager_links[user.manager_id].add(user.user_id)

    managers = []
    if manager_links:
        managers = _outside(
            _active_respondents(db).filter(User.user_id.in_(list(manager_links))),
            departments,
            all_departments,
        ).all()

    reports = []
    if target_ids:
        reports = _outside(
            _active_respondents(db).filter(
                User.manager_id.in_(list(target_ids)),
                User.user_id.notin_(list(target_ids)),
            ),
            departments,
            all_departments,
        ).all()

    additional: dict[int, dict] = {}
    for user in managers:
        row = _recipient_dict(user)
        row["relation"] = RELATION_MANAGER
        row["related_to"] = set(manager_links[user.user_id])
        additional[user.user_id] = row
    for user in reports:
        row = additional.get(user.user_id)
        if row is None:
            row = _recipient_dict(user)
            row["related_to"] = set()
            additional[user.user_id] = row
        # 두 관계에 모두 해당하면 직속 부하로 분류한다.
        row["relation"] = RELATION_DIRECT_REPORT
        row["related_to"].add(user.manager_id)

    additional_rows = sorted(
        additional.values(),
        key=lambda row: (row["department"] or "", row["name"] or "", row["employee_id"]),
    )
    for row in additional_rows:
        row["related_to"] = sorted(row["related_to"])

    per_department = Counter(user.department or "" for user in targets)
    manager_count = sum(1 for row in additional_rows if row["relation"] == RELATION_MANAGER)
    summary = {
        "target_count": len(targets),
        "additional_count": len(additional_rows),
        "total_count": len(targets) + len(additional_rows),
        "manager_count": manager_count,
        "direct_report_count": len(additional_rows) - manager_count,
        "departments": [
            {"department": name, "target_count": per_department[name]}
            for name in sorted(per_department)
        ],
    }
    logger.info(
        "[recipient] departments=%s targets=%s additional=%s",
        len(departments),
        summary["target_count"],
        summary["additional_count"],
    )
    return {
        "target_employees": [_recipient_dict(user) for user in targets],
        "additional_employees": additional_rows,
        "summary": summary,
    }


def send_survey_links(
    db: Session,
    *,
    survey_id: int,
    department_ids: list[str],
    include_additional: bool,
    current_user: User,
    now: datetime | None = None,
) -> dict:
    """확장한 수신자마다 개인 링크 토큰을 발급하고 설문 안내 알림을 남긴다."""
    ensure_admin(current_user, "설문 배포는 관리자만 가능합니다.")
    now = now or utcnow()
    survey = survey_service.get_survey_row(db, survey_id)
    survey_state.ensure_phase(
        survey,
        now,
        {survey_state.ACTIVE},
        detail="진행중인 설문만 배포할 수 있습니다.",
    )
    expansion = expand(db, department_ids)
    recipients = list(expansion["target_employees"])
    if include_additional:
        recipients.extend(expansion["additional_employees"])

    skipped_completed: list[int] = []
    issued = []
    for recipient in recipients:
        employee_id = recipient["employee_id"]
        if token_service.has_submitted(db, survey.survey_id, employee_id):
            skipped_completed.append(employee_id)
            continue
        issued.append(
            token_service.mint_token(db, survey, employee_id=employee_id, channel=CHANNEL_LINK, now=now)
        )
    db.flush()

    notified = notification_service.notify_recipients(
        db,
        [
            notification_service.build_notification(
                user_id=token.employee_id,
                survey_id=survey.survey_id,
                noti_type=notification_service.SURVEY_INVITATION,
                title=f"[설문 안내] {survey.name}",
                message=f"{survey.end_date:%Y-%m-%d %H:%M} 까지 참여해주세요.",
                link_url=token_service.token_url(token),
            )
            for token in issued
        ],
    )
    db.commit()
    logger.info(
        "[recipient] distributed survey_id=%s tokens=%s skipped=%s",
        survey.survey_id,
        len(issued),
        len(skipped_completed),
    )
    return {
        "survey_id": survey.survey_id,
        "tokens_issued": len(issued),
        "notified": notified,
        "skipped_completed": sorted(skipped_completed),
        "summary": expansion["summary"],
    }
