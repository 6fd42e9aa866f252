"""직원 디렉터리 서비스 레이어입니다. 부서/직원 조회와 인사 데이터 일괄 반영을 담당합니다."""

import logging

from sqlalchemy import func
from sqlalchemy.orm import Session

from survey_core.errors import NotFoundError
from survey_core.models.user import User
from survey_core.schemas.user import EmployeeImportRequest, EmployeeImportResult
from survey_core.services.survey_service import ALL_DEPARTMENTS
from survey_core.utils.db_retry import with_store_retry
from survey_core.utils.permissions import ALL_ROLES, RESPONDENT_ROLES

logger = logging.getLogger(__name__)


def _default_email(emp_id: str) -> str:
    return f"{emp_id}@samsung.com"


@with_store_retry
def list_departments(db: Session) -> list[dict]:
    """부서별 활성 응답자 수. 맨 앞에 전체 부서 항목을 둔다."""
    rows = (
        db.query(User.department, func.count(User.user_id))
        .filter(
            User.is_active == True,  # noqa: E712
            User.role.in_(RESPONDENT_ROLES),
            User.department.isnot(None),
            User.department != "",
        )
        .group_by(User.department)
        .order_by(User.department.asc())
        .all()
    )
    departments = [{"department": str(name), "employee_count": int(count)} for name, count in rows]
    total = sum(item["employee_count"] for item in departments)
    return [{"department": ALL_DEPARTMENTS, "employee_count": total}, *departments]


@with_store_retry
def list_employees(db: Session, *, department: str | None = None, include_inactive: bool = False) -> list[User]:
    q = db.query(User)
    if not include_inactive:
        q = q.filter(User.is_active == True)  # noqa: E712
    if department and department != ALL_DEPARTMENTS:
        q = q.filter(User.department == department)
    return q.order_by(User.department.asc(), User.name.asc(), User.user_id.asc()).all()


def get_employee(db: Session, employee_id: int) -> User:
    row = db.query(User).filter(User.user_id == int(employee_id)).first()
    if not row:
        raise NotFoundError("직원을 찾을 수 없습니다.")
    return row


def import_employees(db: Session, data: EmployeeImportRequest) -> EmployeeImportResult:
    """인사 데이터 행을 사번 기준으로 upsert 한다. 관리자 연결은 모든 행을 반영한 뒤 처리한다."""
    created = 0
    updated = 0
    reactivated = 0
    managers_linked = 0
    errors: list[str] = []
    pending_links: list[tuple[int, str, str]] = []
    seen_rows: dict[str, int] = {}

    for index, item in enumerate(data.rows, start=1):
        emp_id = (item.emp_id or "").strip()
        name = (item.name or "").strip()
        role = (item.role or "").strip().lower() or "employee"
        if not emp_id or not name:
            errors.append(f"{index}행: 사번과 이름은 필수입니다.")
            continue
        if role not in ALL_ROLES:
            errors.append(f"{index}행: 역할 값이 올바르지 않습니다. ({role})")
            continue
        if emp_id in seen_rows:
            errors.append(f"{index}행: 중복된 사번입니다. ({seen_rows[emp_id]}행과 중복)")
            continue
        seen_rows[emp_id] = index
        email = (item.email or "").strip() or _default_email(emp_id)

        existing = db.query(User).filter(User.emp_id == emp_id).first()
        if not existing:
            db.add(
                User(
                    emp_id=emp_id,
                    name=name,
                    email=email,
                    department=(item.department or None),
                    position=(item.position or None),
                    role=role,
                    is_active=True,
                )
            )
            created += 1
        else:
            existing.name = name
            existing.email = email
            existing.department = item.department or None
            existing.position = item.position or None
            existing.role = role
            if not existing.is_active and data.reactivate_inactive:
                existing.is_active = True
                reactivated += 1
            updated += 1

        manager_emp_id = (item.manager_emp_id or "").strip()
        if manager_emp_id:
            pending_links.append((index, emp_id, manager_emp_id))

    db.flush()
    for index, emp_id, manager_emp_id in pending_links:
        if manager_emp_id == emp_id:
            errors.append(f"{index}행: 본인을 관리자로 지정할 수 없습니다.")
            continue
        manager = db.query(User).filter(User.emp_id == manager_emp_id).first()
        if not manager:
            errors.append(f"{index}행: 관리자 사번을 찾을 수 없습니다. ({manager_emp_id})")
            continue
        user = db.query(User).filter(User.emp_id == emp_id).first()
        user.manager_id = manager.user_id
        managers_linked += 1

    db.commit()
    logger.info(
        "[directory] import created=%s updated=%s reactivated=%s failed=%s",
        created,
        updated,
        reactivated,
        len(errors),
    )
    return EmployeeImportResult(
        created=created,
        updated=updated,
        reactivated=reactivated,
        managers_linked=managers_linked,
        failed=len(errors),
        errors=errors,
    )
