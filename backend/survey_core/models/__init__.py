"""SQLAlchemy 모델 패키지 초기화 모듈입니다."""

from survey_core.models.user import User
from survey_core.models.survey import Survey, SurveyQuestion
from survey_core.models.consent import ConsentRecord
from survey_core.models.access_token import AccessToken
from survey_core.models.submission import SurveySubmission, SurveyResponse
from survey_core.models.notification import Notification

__all__ = [
    "User",
    "Survey", "SurveyQuestion",
    "ConsentRecord",
    "AccessToken",
    "SurveySubmission", "SurveyResponse",
    "Notification",
]
