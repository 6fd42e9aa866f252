"""설문 참여용 일회성 접근 토큰 모델입니다."""

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from survey_core.database import Base


TOKEN_ISSUED = "issued"
TOKEN_REDEEMED = "redeemed"
TOKEN_EXPIRED = "expired"

CHANNEL_LINK = "link"  # 메일/알림으로 배포된 개인 링크
CHANNEL_SESSION = "session"  # 로그인한 사용자가 직접 시작
CHANNEL_PUBLIC = "public"  # 공개 링크로 발급된 익명 토큰


class AccessToken(Base):
    __tablename__ = "access_token"

    token_id = Column(Integer, primary_key=True, autoincrement=True)
    token = Column(String(64), unique=True, nullable=False)
    survey_id = Column(Integer, ForeignKey("survey.survey_id", ondelete="CASCADE"), nullable=False)
    employee_id = Column(Integer, ForeignKey("users.user_id"), nullable=True)
    channel = Column(String(20), nullable=False, default=CHANNEL_LINK)
    status = Column(String(20), nullable=False, default=TOKEN_ISSUED)  # issued/redeemed/expired
    issued_at = Column(DateTime, nullable=False, server_default=func.now())
    redeemed_at = Column(DateTime, nullable=True)
    attempt_key = Column(String(64), unique=True, nullable=True)  # redeem 시 발급되는 제출용 비밀값
    expired_at = Column(DateTime, nullable=True)

    survey = relationship("Survey")
    employee = relationship("User")

    __table_args__ = (
        Index("idx_access_token_survey_employee", "survey_id", "employee_id"),
        Index("idx_access_token_survey_status", "survey_id", "status"),
    )
