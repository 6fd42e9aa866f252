"""설문 제출/응답 SQLAlchemy 모델입니다."""

from sqlalchemy import (
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from survey_core.database import Base


class SurveySubmission(Base):
    __tablename__ = "survey_submission"

    submission_id = Column(Integer, primary_key=True, autoincrement=True)
    survey_id = Column(Integer, ForeignKey("survey.survey_id", ondelete="CASCADE"), nullable=False)
    # 익명 토큰 제출은 NULL. NULL끼리는 유니크 제약에 걸리지 않는다.
    employee_id = Column(Integer, ForeignKey("users.user_id"), nullable=True)
    access_token_id = Column(Integer, ForeignKey("access_token.token_id"), nullable=False)
    total_questions = Column(Integer, nullable=False, default=0)
    answered_questions = Column(Integer, nullable=False, default=0)
    submitted_at = Column(DateTime, nullable=False, server_default=func.now())

    access_token = relationship("AccessToken")

    __table_args__ = (
        UniqueConstraint("survey_id", "employee_id", name="uq_submission_survey_employee"),
        UniqueConstraint("access_token_id", name="uq_submission_access_token"),
        Index("idx_submission_survey_submitted", "survey_id", "submitted_at"),
    )


class SurveyResponse(Base):
    __tablename__ = "survey_response"

    response_id = Column(Integer, primary_key=True, autoincrement=True)
    survey_id = Column(Integer, ForeignKey("survey.survey_id", ondelete="CASCADE"), nullable=False)
    question_id = Column(Integer, ForeignKey("survey_question.question_id", ondelete="CASCADE"), nullable=False)
    attempt_id = Column(Integer, ForeignKey("access_token.token_id"), nullable=False)
    # 동의(granted)한 응답자만 채워진다.
    employee_id = Column(Integer, ForeignKey("users.user_id"), nullable=True)
    selected_option = Column(String(200), nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    question = relationship("SurveyQuestion")

    __table_args__ = (
        UniqueConstraint("attempt_id", "question_id", name="uq_response_attempt_question"),
        Index("idx_response_survey_question", "survey_id", "question_id"),
        Index("idx_response_survey_employee", "survey_id", "employee_id"),
    )
