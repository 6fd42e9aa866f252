"""서비스 레이어 패키지 초기화 모듈입니다."""

from survey_core.services import (
    auth_service,
    survey_state,
    survey_service,
    directory_service,
    notification_service,
    consent_service,
    token_service,
    recipient_service,
    report_service,
)
