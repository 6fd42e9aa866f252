"""설문 코어 로그인 서비스입니다.

사내 SSO 대신 사번만으로 로그인하는 모의 흐름을 제공한다. 발급한 JWT 는
관리자 화면과 로그인 직원의 세션 응답(``/attempt``)에만 쓰이고, 링크로 들어오는
응답자는 JWT 없이 접근 토큰만으로 참여한다.
"""

import logging
from datetime import timedelta

from fastapi import HTTPException, status
from jose import jwt
from sqlalchemy.orm import Session

from survey_core.config import settings
from survey_core.models.user import User
from survey_core.utils.helpers import utcnow

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"


def create_access_token(user: User) -> str:
    expire = utcnow() + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    # 권한 판단은 항상 DB 의 역할로 한다. role 클레임은 화면 표시용이다.
    payload = {"sub": str(user.user_id), "emp_id": user.emp_id, "role": user.role, "exp": expire}
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=ALGORITHM)


def mock_sso_login(db: Session, emp_id: str) -> User:
    emp_id = (emp_id or "").strip()
    user = db.query(User).filter(User.emp_id == emp_id, User.is_active == True).first()  # noqa: E712
    if not user:
        logger.info("[auth] login rejected emp_id=%s", emp_id)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"사번 '{emp_id}'에 해당하는 재직 중인 직원이 없습니다.",
        )
    logger.info("[auth] login user_id=%s role=%s department=%s", user.user_id, user.role, user.department)
    return user
