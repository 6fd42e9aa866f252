import json
import math
import secrets
from datetime import datetime, timezone

from survey_core.config import settings


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def generate_token(num_bytes: int) -> str:
    return secrets.token_hex(num_bytes)


def mask_token(token: str | None) -> str:
    text = str(token or "")
    if len(text) <= 8:
        return "****"
    return f"{text[:6]}…"


def parse_json_list(raw: str | None) -> list:
    try:
        parsed = json.loads(raw or "[]")
    except json.JSONDecodeError:
        return []
    if not isinstance(parsed, list):
        return []
    return parsed


def dump_json_list(values) -> str:
    return json.dumps(list(values or []), ensure_ascii=False)


def normalize_page(page: int | None, page_size: int | None) -> tuple[int, int]:
    page = max(1, int(page or 1))
    size = int(page_size or settings.REPORT_DEFAULT_PAGE_SIZE)
    size = max(1, min(size, settings.REPORT_MAX_PAGE_SIZE))
    return page, size


def page_count(total: int, page_size: int) -> int:
    if total <= 0:
        return 0
    return int(math.ceil(total / page_size))


def survey_link(path: str) -> str:
    return f"{settings.CLIENT_URL.rstrip('/')}/{path.lstrip('/')}"
