"""User(직원 디렉터리) 도메인의 SQLAlchemy 모델 정의입니다."""

from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, Index
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from survey_core.database import Base


class User(Base):
    __tablename__ = "users"

    user_id = Column(Integer, primary_key=True, autoincrement=True)
    emp_id = Column(String(20), unique=True, nullable=False)
    name = Column(String(50), nullable=False)
    email = Column(String(100))
    department = Column(String(100))
    position = Column(String(100))
    role = Column(String(20), nullable=False, default="employee")  # admin/manager/employee
    manager_id = Column(Integer, ForeignKey("users.user_id"), nullable=True)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, server_default=func.now())

    # Relationships
    manager = relationship("User", remote_side=[user_id], back_populates="direct_reports")
    direct_reports = relationship("User", back_populates="manager", lazy="select")
    notifications = relationship("Notification", back_populates="user")

    __table_args__ = (
        Index("idx_users_department_active", "department", "is_active"),
        Index("idx_users_manager", "manager_id"),
    )
