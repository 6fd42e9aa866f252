"""설문 결과 리포트 API 스키마입니다."""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field


class OptionCount(BaseModel):
    option_label: str
    count: int
    percentage: float


class QuestionDistributionOut(BaseModel):
    question_id: int
    question_text: str
    parameter: Optional[str] = None
    total_answers: int
    distribution: List[OptionCount] = Field(default_factory=list)


class ParameterScoreOut(BaseModel):
    parameter: str
    question_count: int
    total_responses: int
    average_score: Optional[float] = None


class ConsentStatisticsOut(BaseModel):
    total: int
    granted: int
    declined: int
    pending: int
    consent_rate: float


class ParticipationStatisticsOut(BaseModel):
    tokens_issued: int
    tokens_redeemed: int
    tokens_expired: int
    submissions: int
    identified_submissions: int
    anonymous_submissions: int
    completion_rate: float


class DetailedAnswerOut(BaseModel):
    question_id: int
    question_text: str
    parameter: Optional[str] = None
    display_order: int
    selected_option: str


class DetailedParticipantOut(BaseModel):
    submission_id: int
    participant_type: Literal["authenticated", "token", "anonymous"]
    employee_id: Optional[int] = None
    employee_name: Optional[str] = None
    department: Optional[str] = None
    submitted_at: datetime
    answers: List[DetailedAnswerOut] = Field(default_factory=list)


class DetailedResponsesOut(BaseModel):
    page: int
    page_size: int
    total: int
    total_pages: int
    has_next: bool
    has_prev: bool
    items: List[DetailedParticipantOut] = Field(default_factory=list)


class SurveyReportHeader(BaseModel):
    survey_id: int
    name: str
    publish_date: datetime
    end_date: datetime
    target_department: Optional[str] = None
    phase: str


class SurveyReportOut(BaseModel):
    survey: SurveyReportHeader
    participation: ParticipationStatisticsOut
    consent: ConsentStatisticsOut
    questions: List[QuestionDistributionOut] = Field(default_factory=list)
    parameters: List[ParameterScoreOut] = Field(default_factory=list)


class EmployeeAnswerOut(BaseModel):
    question_id: int
    question_text: str
    parameter: Optional[str] = None
    options: List[str] = Field(default_factory=list)
    selected_option: Optional[str] = None


class EmployeeReportOut(BaseModel):
    survey_id: int
    employee_id: int
    employee_name: str
    department: Optional[str] = None
    submitted_at: Optional[datetime] = None
    answers: List[EmployeeAnswerOut] = Field(default_factory=list)
