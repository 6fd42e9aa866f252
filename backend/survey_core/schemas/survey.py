"""설문 API 스키마입니다."""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field


SurveyPhase = Literal["draft", "pending_consent", "active", "completed", "archived"]


class SurveyBase(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    description: Optional[str] = None
    publish_date: datetime
    duration_days: int = Field(default=7, ge=1)
    target_department: Optional[str] = Field(default=None, max_length=100)
    target_employee_ids: List[int] = Field(default_factory=list)
    consent_deadline: Optional[datetime] = None


class SurveyCreate(SurveyBase):
    pass


class SurveyUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = None
    publish_date: Optional[datetime] = None
    duration_days: Optional[int] = Field(default=None, ge=1)
    target_department: Optional[str] = Field(default=None, max_length=100)
    target_employee_ids: Optional[List[int]] = None
    consent_deadline: Optional[datetime] = None


class SurveyStatusUpdate(BaseModel):
    status: SurveyPhase


class SurveyOut(BaseModel):
    survey_id: int
    name: str
    description: Optional[str] = None
    publish_date: datetime
    duration_days: int
    end_date: datetime
    target_department: Optional[str] = None
    target_employee_ids: List[int] = Field(default_factory=list)
    consent_deadline: datetime
    status: str
    phase: SurveyPhase
    public_link_token: str
    created_by: Optional[int] = None
    updated_by: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    archived_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class SurveySweepOut(BaseModel):
    activated: int = 0
    completed: int = 0


class SurveyQuestionBase(BaseModel):
    question_text: str = Field(min_length=1, max_length=1000)
    options: List[str] = Field(min_length=2, max_length=4)
    parameter: Optional[str] = Field(default=None, max_length=100)
    display_order: int = 1


class SurveyQuestionCreate(SurveyQuestionBase):
    pass


class SurveyQuestionUpdate(BaseModel):
    question_text: Optional[str] = Field(default=None, min_length=1, max_length=1000)
    options: Optional[List[str]] = Field(default=None, min_length=2, max_length=4)
    parameter: Optional[str] = Field(default=None, max_length=100)
    display_order: Optional[int] = None


class SurveyQuestionImport(BaseModel):
    rows: List[SurveyQuestionCreate] = Field(default_factory=list)


class SurveyQuestionOut(SurveyQuestionBase):
    question_id: int
    survey_id: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}
