"""설문 접근 토큰/응답 제출 API 스키마입니다."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class EmployeeTokenRequest(BaseModel):
    employee_id: int


class AccessTokenOut(BaseModel):
    token_id: int
    token: str
    survey_id: int
    employee_id: Optional[int] = None
    channel: str
    status: str
    issued_at: datetime
    redeemed_at: Optional[datetime] = None
    expired_at: Optional[datetime] = None
    survey_url: Optional[str] = None

    model_config = {"from_attributes": True}


class AttemptQuestionOut(BaseModel):
    question_id: int
    question_text: str
    options: List[str]
    parameter: Optional[str] = None
    display_order: int


class AttemptOut(BaseModel):
    attempt_id: int
    attempt_key: str
    survey_id: int
    survey_name: str
    end_date: datetime
    identity_linked: bool
    questions: List[AttemptQuestionOut] = Field(default_factory=list)


class AnswerInput(BaseModel):
    question_id: int
    selected_option: str = Field(min_length=1, max_length=200)


class SubmissionRequest(BaseModel):
    answers: List[AnswerInput] = Field(default_factory=list)


class SubmissionOut(BaseModel):
    submission_id: int
    survey_id: int
    total_questions: int
    answered_questions: int
    identity_linked: bool
    submitted_at: datetime

    model_config = {"from_attributes": True}


class TokenStatusCounts(BaseModel):
    issued: int = 0
    redeemed: int = 0
    expired: int = 0


class TokenListOut(BaseModel):
    survey_id: int
    total: int
    counts: TokenStatusCounts
    items: List[AccessTokenOut] = Field(default_factory=list)
