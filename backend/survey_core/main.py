"""FastAPI 애플리케이션 진입점. 미들웨어, API 라우터, 오류 응답 형식을 등록합니다."""

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from survey_core.config import settings
from survey_core.database import Base, engine
from survey_core.errors import SurveyCoreError
import survey_core.models  # noqa: F401 - 모델 import로 metadata 등록
from survey_core.routers import (
    auth, surveys, consent, tokens, recipients, employees, reports, notifications,
)

logging.basicConfig(
    level=getattr(logging, str(settings.LOG_LEVEL).upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="설문 응답 라이프사이클 엔진",
    description="동의 기반 식별 연결과 설문 응답 집계를 제공하는 시스템",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(SurveyCoreError)
def survey_core_error_handler(request: Request, exc: SurveyCoreError):
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "code": exc.code},
        headers=getattr(exc, "headers", None),
    )


# Register all routers
app.include_router(auth.router)
app.include_router(surveys.router)
app.include_router(consent.router)
app.include_router(tokens.router)
app.include_router(recipients.router)
app.include_router(employees.router)
app.include_router(reports.router)
app.include_router(notifications.router)


@app.on_event("startup")
def ensure_schema():
    Base.metadata.create_all(bind=engine)
    logger.info("[startup] schema ready database=%s", engine.url.get_backend_name())


@app.get("/api/health")
def health_check():
    return {"status": "ok", "service": "survey-core"}
