"""
날짜 유틸리티

만료 판정은 항상 설정된 타임존에서 시각을 잘라낸 '날짜'로 비교합니다.
(종료일 당일은 하루 종일 유효)
"""
import math
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo

from .config import get_gym_settings


def get_zone(name: Optional[str] = None) -> ZoneInfo:
    return ZoneInfo(name or get_gym_settings().timezone)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_aware(value: datetime, zone: Optional[ZoneInfo] = None) -> datetime:
    """naive datetime은 기준 타임존의 현지 시각으로 간주"""
    if value.tzinfo is None:
        return value.replace(tzinfo=zone or get_zone())
    return value


def local_day(value: datetime, zone: Optional[ZoneInfo] = None) -> date:
    zone = zone or get_zone()
    return ensure_aware(value, zone).astimezone(zone).date()


def start_of_day(value: datetime, zone: Optional[ZoneInfo] = None) -> datetime:
    """기준 타임존에서 value가 속한 날의 00:00"""
    zone = zone or get_zone()
    return datetime.combine(local_day(value, zone), time.min, tzinfo=zone)


def days_remaining(end: datetime, now: datetime) -> int:
    """남은 일수 (올림)"""
    seconds = (ensure_aware(end) - ensure_aware(now)).total_seconds()
    return math.ceil(seconds / 86400)


def add_months(start: datetime, months: int) -> datetime:
    """
    월 단위 덧셈 (말일 보정: 1/31 + 1개월 => 2/28 또는 2/29)
    """
    y = start.year + (start.month - 1 + months) // 12
    m = (start.month - 1 + months) % 12 + 1
    if m == 12:
        next_month = date(y + 1, 1, 1)
    else:
        next_month = date(y, m + 1, 1)
    last_day = (next_month - timedelta(days=1)).day
    return start.replace(year=y, month=m, day=min(start.day, last_day))
