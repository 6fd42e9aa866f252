"""설문 코어의 오류 분류입니다.

서비스 레이어는 다른 도메인과 마찬가지로 ``HTTPException`` 계열 예외를 직접 발생시킵니다.
각 예외는 ``code`` 를 함께 실어 보내므로 화면에서 "이미 완료" / "기간 만료" / "잘못된 토큰"
을 구분해 안내할 수 있습니다.
"""

from fastapi import HTTPException, status


class SurveyCoreError(HTTPException):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "error"
    default_detail = "요청을 처리할 수 없습니다."

    def __init__(self, detail: str | None = None, *, code: str | None = None):
        super().__init__(status_code=self.status_code, detail=detail or self.default_detail)
        if code:
            self.code = code


class ValidationError(SurveyCoreError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "validation_error"
    default_detail = "입력값이 올바르지 않습니다."


class NotFoundError(SurveyCoreError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"
    default_detail = "대상을 찾을 수 없습니다."


class StateConflictError(SurveyCoreError):
    status_code = status.HTTP_409_CONFLICT
    code = "state_conflict"
    default_detail = "현재 상태에서는 요청을 처리할 수 없습니다."


class DuplicateError(SurveyCoreError):
    status_code = status.HTTP_409_CONFLICT
    code = "duplicate"
    default_detail = "이미 처리된 요청입니다."


class TokenInvalid(NotFoundError):
    code = "token_invalid"
    default_detail = "유효하지 않은 토큰입니다."


class TokenAlreadyDecided(StateConflictError):
    code = "token_already_decided"
    default_detail = "이미 동의 여부가 기록된 토큰입니다."


class AlreadyDecided(StateConflictError):
    code = "already_decided"
    default_detail = "동의 여부는 한 번만 기록할 수 있습니다."


class ConsentDeadlinePassed(StateConflictError):
    code = "consent_deadline_passed"
    default_detail = "동의 기한이 지났습니다."


class AlreadyCompleted(StateConflictError):
    code = "already_completed"
    default_detail = "이미 설문을 완료했습니다."


class SurveyNotActive(StateConflictError):
    code = "survey_not_active"
    default_detail = "현재 진행중인 설문이 아닙니다."


class TokenAlreadyRedeemed(StateConflictError):
    code = "token_already_redeemed"
    default_detail = "이미 사용된 설문 링크입니다."


class DuplicateSubmission(DuplicateError):
    code = "duplicate_submission"
    default_detail = "이미 제출된 설문입니다."
