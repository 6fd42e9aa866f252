"""일시적인 저장소 연결 오류에 대한 재시도 유틸리티."""

from __future__ import annotations

import functools
import logging
import time

from sqlalchemy.exc import DisconnectionError, OperationalError

from survey_core.config import settings

logger = logging.getLogger(__name__)

RETRYABLE_ERRORS = (OperationalError, DisconnectionError)


def with_store_retry(func):
    """``db`` 세션을 첫 인자로 받는 읽기/멱등 서비스 함수에만 적용한다.

    연결 오류가 나면 세션을 롤백하고 지수 백오프로 다시 시도하며,
    재시도 횟수를 넘기면 원래 예외를 그대로 올린다.
    """

    @functools.wraps(func)
    def wrapper(db, *args, **kwargs):
        attempts = max(1, int(settings.STORE_RETRY_ATTEMPTS))
        for attempt in range(1, attempts + 1):
            try:
                return func(db, *args, **kwargs)
            except RETRYABLE_ERRORS as exc:
                db.rollback()
                if attempt >= attempts:
                    logger.error("[store] %s failed after %d attempts: %s", func.__name__, attempt, exc)
                    raise
                delay = settings.STORE_RETRY_BASE_DELAY * (2 ** (attempt - 1))
                logger.warning(
                    "[store] transient error in %s (attempt %d/%d), retrying in %.2fs: %s",
                    func.__name__,
                    attempt,
                    attempts,
                    delay,
                    exc,
                )
                time.sleep(delay)

    return wrapper
