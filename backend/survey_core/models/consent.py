"""동의 원장(ConsentRecord) SQLAlchemy 모델입니다."""

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from survey_core.database import Base


CONSENT_PENDING = "pending"
CONSENT_GRANTED = "granted"
CONSENT_DECLINED = "declined"


class ConsentRecord(Base):
    __tablename__ = "consent_record"

    consent_id = Column(Integer, primary_key=True, autoincrement=True)
    survey_id = Column(Integer, ForeignKey("survey.survey_id", ondelete="CASCADE"), nullable=False)
    employee_id = Column(Integer, ForeignKey("users.user_id"), nullable=False)
    token = Column(String(128), unique=True, nullable=False)
    decision = Column(String(20), nullable=False, default=CONSENT_PENDING)  # pending/granted/declined
    decided_at = Column(DateTime, nullable=True)
    notified_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    survey = relationship("Survey")
    employee = relationship("User")

    __table_args__ = (
        UniqueConstraint("survey_id", "employee_id", name="uq_consent_survey_employee"),
        Index("idx_consent_survey_decision", "survey_id", "decision"),
    )
