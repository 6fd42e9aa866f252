"""사번 로그인과 내 정보 조회 API 라우터입니다."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from survey_core.database import get_db
from survey_core.middleware.auth_middleware import get_current_user
from survey_core.models.user import User
from survey_core.schemas.user import LoginRequest, TokenResponse, UserOut
from survey_core.services.auth_service import create_access_token, mock_sso_login

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/login", response_model=TokenResponse)
def login(request: LoginRequest, db: Session = Depends(get_db)):
    user = mock_sso_login(db, request.emp_id)
    token = create_access_token(user)
    return TokenResponse(access_token=token, user=UserOut.model_validate(user))


@router.get("/me", response_model=UserOut)
def me(current_user: User = Depends(get_current_user)):
    return current_user
