"""User(직원 디렉터리) 요청/응답 계약을 위한 Pydantic 스키마입니다."""

from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime


class UserBase(BaseModel):
    emp_id: str
    name: str
    email: Optional[str] = None
    department: Optional[str] = None
    position: Optional[str] = None
    role: str


class UserOut(UserBase):
    user_id: int
    manager_id: Optional[int] = None
    is_active: bool
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class LoginRequest(BaseModel):
    emp_id: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserOut


class EmployeeImportItem(BaseModel):
    emp_id: str
    name: str
    email: Optional[str] = None
    department: Optional[str] = None
    position: Optional[str] = None
    role: str = "employee"
    manager_emp_id: Optional[str] = None


class EmployeeImportRequest(BaseModel):
    rows: list[EmployeeImportItem] = Field(default_factory=list)
    reactivate_inactive: bool = True


class EmployeeImportResult(BaseModel):
    created: int
    updated: int
    reactivated: int
    managers_linked: int
    failed: int
    errors: list[str]


class DepartmentOut(BaseModel):
    department: str
    employee_count: int
