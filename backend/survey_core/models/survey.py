"""설문/문항 SQLAlchemy 모델입니다."""

from sqlalchemy import (
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from survey_core.database import Base


class Survey(Base):
    __tablename__ = "survey"

    survey_id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(200), nullable=False)
    description = Column(Text)
    publish_date = Column(DateTime, nullable=False)
    duration_days = Column(Integer, nullable=False, default=7)
    # publish_date + duration_days. 쓰기 시점마다 다시 계산한다.
    end_date = Column(DateTime, nullable=False)
    # 부서명 또는 "All Departments". 명시 대상자 목록을 쓰면 NULL.
    target_department = Column(String(100), nullable=True)
    target_employees_json = Column(Text, nullable=False, default="[]")
    # 마지막으로 관측한 단계(캐시). 판단은 항상 현재 시각으로 다시 계산한다.
    status = Column(String(20), nullable=False, default="draft")
    consent_deadline = Column(DateTime, nullable=False)
    public_link_token = Column(String(64), unique=True, nullable=False)
    created_by = Column(Integer, ForeignKey("users.user_id"), nullable=True)
    updated_by = Column(Integer, ForeignKey("users.user_id"), nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, onupdate=func.now())
    archived_at = Column(DateTime, nullable=True)

    questions = relationship(
        "SurveyQuestion",
        back_populates="survey",
        cascade="all, delete-orphan",
        order_by="SurveyQuestion.display_order.asc(), SurveyQuestion.question_id.asc()",
    )

    __table_args__ = (
        Index("idx_survey_status_publish", "status", "publish_date"),
    )


class SurveyQuestion(Base):
    __tablename__ = "survey_question"

    question_id = Column(Integer, primary_key=True, autoincrement=True)
    survey_id = Column(Integer, ForeignKey("survey.survey_id", ondelete="CASCADE"), nullable=False)
    question_text = Column(String(1000), nullable=False)
    options_json = Column(Text, nullable=False, default="[]")
    parameter = Column(String(100), nullable=True)
    display_order = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, onupdate=func.now())

    survey = relationship("Survey", back_populates="questions")

    __table_args__ = (
        Index("idx_survey_question_survey_order", "survey_id", "display_order"),
        Index("idx_survey_question_parameter", "survey_id", "parameter"),
    )
