"""Permissions 관련 공용 유틸리티 헬퍼입니다."""

from fastapi import HTTPException

from survey_core.models.user import User


ADMIN = "admin"
MANAGER = "manager"
EMPLOYEE = "employee"

RESPONDENT_ROLES = (MANAGER, EMPLOYEE)
ALL_ROLES = (ADMIN, *RESPONDENT_ROLES)


def is_admin(user: User) -> bool:
    return user.role == ADMIN


def is_respondent(user: User) -> bool:
    return user.role in RESPONDENT_ROLES


def ensure_admin(user: User, detail: str = "관리자만 사용할 수 있는 기능입니다."):
    if not is_admin(user):
        raise HTTPException(status_code=403, detail=detail)
