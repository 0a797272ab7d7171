from __future__ import annotations

import math
import re
from datetime import datetime, timezone

from dateutil import parser as dt_parser

CATEGORIES = ("Project", "Study", "Server", "Tool", "Docs", "Etc")
DEFAULT_CATEGORY = "Project"
VISIBILITY_PUBLIC = "public"
VISIBILITY_PRIVATE = "private"
DEFAULT_ICON = "emoji:🔗"
ORDER_STEP = 10

_SLUG_STRIP = re.compile(r"[^a-z0-9가-힣]+")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def isoformat_utc(value: datetime) -> str:
    value = value.astimezone(timezone.utc)
    return value.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def normalize_timestamp(raw) -> str | None:
    if raw is None:
        return None
    if isinstance(raw, datetime):
        parsed = raw
    else:
        text = str(raw).strip()
        if not text:
            return None
        try:
            parsed = dt_parser.isoparse(text)
        except (ValueError, OverflowError):
            try:
                parsed = dt_parser.parse(text)
            except (ValueError, OverflowError):
                return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return isoformat_utc(parsed)


def normalize_category(raw) -> str:
    if raw in CATEGORIES:
        return raw
    return DEFAULT_CATEGORY


def normalize_visibility(raw) -> str:
    return VISIBILITY_PRIVATE if raw == VISIBILITY_PRIVATE else VISIBILITY_PUBLIC


def parse_order(raw) -> int | float | None:
    if isinstance(raw, bool) or not isinstance(raw, (int, float)):
        return None
    if isinstance(raw, float):
        if math.isnan(raw) or math.isinf(raw):
            return None
        if raw.is_integer():
            return int(raw)
    return raw


def to_bool(value, default=False):
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in {"1", "true", "yes", "on"}


def generate_id(title: str, existing_ids) -> str:
    slug = _SLUG_STRIP.sub("-", str(title or "").lower()).strip("-")[:40]
    base = f"link-{slug}"
    ids = set(existing_ids)
    if base not in ids:
        return base

    suffix = 2
    while f"{base}-{suffix}" in ids:
        suffix += 1
    return f"{base}-{suffix}"


def next_order(links) -> int | float:
    """Default rank for a new entry: ``ORDER_STEP`` past the highest stored order."""
    orders = [link.order if link.order is not None else 0 for link in links]
    return max(orders, default=0) + ORDER_STEP
