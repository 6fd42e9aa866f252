"""환경 변수 기반 애플리케이션 설정을 중앙에서 관리합니다."""

from pydantic_settings import BaseSettings
from typing import List
from pathlib import Path


class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite:///./survey_core.db"
    SECRET_KEY: str = "change-me-to-a-random-secret-key"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"
    ALLOWED_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:8000"]

    # JWT
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 480

    # 동의/설문 링크의 기준 URL
    CLIENT_URL: str = "http://localhost:3000"

    # Token entropy (bytes, hex 인코딩 시 2배 길이)
    CONSENT_TOKEN_BYTES: int = 32
    ACCESS_TOKEN_BYTES: int = 16
    PUBLIC_LINK_TOKEN_BYTES: int = 32

    # Survey rules
    SURVEY_MAX_DURATION_DAYS: int = 365
    SURVEY_REQUIRE_ALL_QUESTIONS: bool = True

    # Reports
    REPORT_DEFAULT_PAGE_SIZE: int = 20
    REPORT_MAX_PAGE_SIZE: int = 100

    # 일시적인 저장소 연결 오류 재시도
    STORE_RETRY_ATTEMPTS: int = 3
    STORE_RETRY_BASE_DELAY: float = 0.05

    class Config:
        # 실행 cwd와 무관하게 backend/.env를 로드한다.
        env_file = str(Path(__file__).resolve().parents[1] / ".env")


settings = Settings()
