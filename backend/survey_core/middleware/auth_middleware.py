"""설문 코어 API 의 Bearer JWT 인증 의존성입니다.

관리자 화면은 ``require_admin`` 을, 로그인 직원의 세션 응답은 ``get_current_user`` 를 쓴다.
링크/공개 토큰으로 들어오는 응답자는 인증 헤더가 없을 수 있으므로 ``get_optional_user`` 로 받는다.
"""

from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from survey_core.config import settings
from survey_core.database import get_db
from survey_core.models.user import User
from survey_core.services.auth_service import ALGORITHM
from survey_core.utils.permissions import ADMIN

security = HTTPBearer()
optional_security = HTTPBearer(auto_error=False)


def decode_token(token: str) -> dict:
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="설문 시스템 로그인 정보가 유효하지 않거나 만료되었습니다.",
        )


def _load_user(db: Session, credentials: HTTPAuthorizationCredentials) -> User:
    payload = decode_token(credentials.credentials)
    user_id = payload.get("sub")
    if user_id is None:
        raise HTTPException(status_code=401, detail="로그인 토큰에 직원 정보가 없습니다.")

    # 퇴사/비활성 직원은 로그인 토큰이 남아 있어도 거부한다.
    user = db.query(User).filter(User.user_id == int(user_id), User.is_active == True).first()  # noqa: E712
    if not user:
        raise HTTPException(status_code=401, detail="재직 중인 직원 정보를 찾을 수 없습니다.")
    return user


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    return _load_user(db, credentials)


def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(optional_security),
    db: Session = Depends(get_db),
) -> Optional[User]:
    if credentials is None:
        return None
    return _load_user(db, credentials)


def require_roles(*roles: str):
    def checker(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"이 설문 관리 기능에 필요한 역할: {', '.join(roles)}",
            )
        return current_user
    return checker


require_admin = require_roles(ADMIN)
