"""설문 코어 스키마를 만든다. 이미 있는 테이블은 건드리지 않는다.

    python scripts/init_db.py           # 테이블 생성
    python scripts/init_db.py --seed    # 생성 후 예시 조직도/설문 입력
"""
import argparse
import logging
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from survey_core.config import settings
from survey_core.database import Base, engine
import survey_core.models  # noqa: F401

logger = logging.getLogger("survey_core.scripts.init_db")


def init_db() -> list[str]:
    Base.metadata.create_all(bind=engine)
    tables = sorted(Base.metadata.tables)
    logger.info("[startup] schema ready database=%s tables=%s", engine.url.get_backend_name(), ", ".join(tables))
    return tables


def main(argv: list[str] | None = None):
    parser = argparse.ArgumentParser(description="Create survey-core tables.")
    parser.add_argument("--seed", action="store_true", help="insert the sample directory and draft survey")
    args = parser.parse_args(argv)

    logging.basicConfig(level=getattr(logging, str(settings.LOG_LEVEL).upper(), logging.INFO))
    init_db()
    if args.seed:
        from seed_data import seed

        seed()


if __name__ == "__main__":
    main()
