"""수신자 확장/배포 API 스키마입니다."""

from typing import List, Literal, Optional

from pydantic import BaseModel, Field


class RecipientExpandRequest(BaseModel):
    department_ids: List[str] = Field(min_length=1)


class RecipientOut(BaseModel):
    employee_id: int
    emp_id: str
    name: str
    email: Optional[str] = None
    department: Optional[str] = None
    role: str


class AdditionalRecipientOut(RecipientOut):
    relation: Literal["manager", "direct_report"]
    related_to: List[int] = Field(default_factory=list)


class DepartmentTargetCount(BaseModel):
    department: str
    target_count: int


class RecipientSummary(BaseModel):
    target_count: int = 0
    additional_count: int = 0
    total_count: int = 0
    manager_count: int = 0
    direct_report_count: int = 0
    departments: List[DepartmentTargetCount] = Field(default_factory=list)


class RecipientExpansionOut(BaseModel):
    target_employees: List[RecipientOut] = Field(default_factory=list)
    additional_employees: List[AdditionalRecipientOut] = Field(default_factory=list)
    summary: RecipientSummary


class DistributionRequest(BaseModel):
    department_ids: List[str] = Field(min_length=1)
    include_additional: bool = True


class DistributionOut(BaseModel):
    survey_id: int
    tokens_issued: int
    notified: int
    skipped_completed: List[int] = Field(default_factory=list)
    summary: RecipientSummary
