"""동의 원장 API 스키마입니다."""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field


ConsentDecision = Literal["pending", "granted", "declined"]


class ConsentGenerateRequest(BaseModel):
    # 비어 있으면 설문 대상 범위(부서/전체/명시 목록)로 생성한다.
    employee_ids: List[int] = Field(default_factory=list)


class ConsentGenerateFailure(BaseModel):
    employee_id: int
    reason: Literal["not_found", "inactive", "already_exists"]


class ConsentGenerateResult(BaseModel):
    survey_id: int
    created: List[int] = Field(default_factory=list)
    skipped: List[ConsentGenerateFailure] = Field(default_factory=list)
    phase: str


class ConsentDecisionRequest(BaseModel):
    granted: bool


class ConsentSurveyContext(BaseModel):
    survey_id: int
    name: str
    publish_date: datetime
    consent_deadline: datetime


class ConsentEmployeeContext(BaseModel):
    employee_id: int
    name: str
    email: Optional[str] = None
    department: Optional[str] = None


class ConsentVerifyOut(BaseModel):
    survey: ConsentSurveyContext
    employee: ConsentEmployeeContext
    decision: ConsentDecision
    deadline_passed: bool


class ConsentRecordOut(BaseModel):
    consent_id: int
    survey_id: int
    employee_id: int
    decision: ConsentDecision
    decided_at: Optional[datetime] = None
    notified_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class ConsentDecisionOut(BaseModel):
    survey_id: int
    employee_id: int
    decision: ConsentDecision
    decided_at: Optional[datetime] = None

    model_config = {"from_attributes": True}
