"""
날짜 파싱 / 정규화 (KST 기준)

DB 에서 읽은 인증 날짜는 'YYYY-MM-DD' 문자열, DATE, DATETIME,
ISO 타임스탬프 문자열 중 하나로 들어옵니다.
이 모듈은 모든 값을 고정 시간대(기본 Asia/Seoul)의 날짜로 정규화합니다.

실행 환경의 로컬 시간대에 따라 하루씩 밀리는 문제를 막기 위해
비교/덧셈/포맷 전에 반드시 normalize_date() 를 거쳐야 합니다.
"""

import re
from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo

from flask import current_app, has_app_context

DEFAULT_TIMEZONE = 'Asia/Seoul'

_DATE_ONLY = re.compile(r'^\d{4}-\d{2}-\d{2}$')


def get_timezone(name=None):
    """
    시간대 객체 반환

    Args:
        name (str, optional): IANA 시간대 이름. 없으면 앱 설정(CERT_TIMEZONE) 사용

    Returns:
        ZoneInfo: 시간대 객체
    """
    if name is None:
        if has_app_context():
            name = current_app.config.get('CERT_TIMEZONE', DEFAULT_TIMEZONE)
        else:
            name = DEFAULT_TIMEZONE
    return ZoneInfo(name)


def parse_iso_date(text):
    """
    'YYYY-MM-DD' 문자열을 date 로 변환

    Example:
        >>> parse_iso_date("2025-01-12")
        date(2025, 1, 12)

    Raises:
        ValueError: 형식이 잘못된 경우
    """
    if text is None or not _DATE_ONLY.match(str(text).strip()):
        raise ValueError(f"날짜 형식이 올바르지 않습니다 (YYYY-MM-DD): {text}")
    return date.fromisoformat(str(text).strip())


def normalize_date(value, tz=None):
    """
    임의의 날짜 값을 고정 시간대 기준 날짜로 정규화

    Args:
        value: date, datetime, 'YYYY-MM-DD', ISO 타임스탬프 문자열
        tz (ZoneInfo, optional): 기준 시간대 (기본 KST)

    Returns:
        date: 시간 정보가 제거된 날짜

    Note:
        - 시간대 정보가 있는 datetime 은 기준 시간대로 변환 후 날짜만 사용
        - 시간대 정보가 없는 datetime 은 이미 기준 시간대라고 보고 날짜만 사용

    Example:
        >>> normalize_date("2025-01-12T15:30:00+00:00")
        date(2025, 1, 13)
        >>> normalize_date("2025-01-12 09:00:00")
        date(2025, 1, 12)
    """
    if value is None:
        raise ValueError("날짜 값이 None입니다")

    tz = tz or get_timezone()

    if isinstance(value, datetime):
        if value.tzinfo is not None:
            return value.astimezone(tz).date()
        return value.date()

    if isinstance(value, date):
        return value

    text = str(value).strip()
    if _DATE_ONLY.match(text):
        return date.fromisoformat(text)

    try:
        parsed = datetime.fromisoformat(text.replace('Z', '+00:00'))
    except ValueError:
        raise ValueError(f"날짜를 해석할 수 없습니다: {value}")
    return normalize_date(parsed, tz)


def format_date_korean(value):
    """
    날짜를 한글로 포맷

    Example:
        >>> format_date_korean(date(2025, 1, 12))
        "2025년 01월 12일 (일)"
    """
    weekdays = ['월', '화', '수', '목', '금', '토', '일']
    d = normalize_date(value)
    weekday = weekdays[d.weekday()]
    return d.strftime(f"%Y년 %m월 %d일 ({weekday})")


class SystemClock:
    """실제 현재 시간 (고정 시간대 기준)"""

    def __init__(self, tz=None):
        self.tz = tz or ZoneInfo(DEFAULT_TIMEZONE)

    def now(self):
        return datetime.now(timezone.utc).astimezone(self.tz)

    def today(self):
        return self.now().date()


class FixedClock:
    """
    고정된 날짜를 '오늘'로 반환하는 시계 (테스트용)

    Example:
        >>> FixedClock(date(2025, 1, 15)).today()
        date(2025, 1, 15)
    """

    def __init__(self, today, tz=None):
        self.tz = tz or ZoneInfo(DEFAULT_TIMEZONE)
        self._today = normalize_date(today, self.tz)

    def now(self):
        return datetime(self._today.year, self._today.month, self._today.day, tzinfo=self.tz)

    def today(self):
        return self._today


class OffsetClock:
    """
    데모 모드 시계

    기준 시계에 N일을 더한 날짜를 '오늘'로 사용합니다.
    관리자가 다음날 시나리오를 확인할 때 사용합니다.
    """

    def __init__(self, base, offset_days):
        self.base = base
        self.offset_days = offset_days
        self.tz = base.tz

    def now(self):
        return self.base.now() + timedelta(days=self.offset_days)

    def today(self):
        return self.base.today() + timedelta(days=self.offset_days)


def build_clock(app_config):
    """앱 설정으로 시계 생성 (DEMO_OFFSET_DAYS 가 있으면 OffsetClock)"""
    tz = ZoneInfo(app_config.get('CERT_TIMEZONE', DEFAULT_TIMEZONE))
    clock = SystemClock(tz)
    offset = int(app_config.get('DEMO_OFFSET_DAYS', 0) or 0)
    if offset:
        clock = OffsetClock(clock, offset)
    return clock


def get_clock():
    """현재 앱에 등록된 시계 반환"""
    return current_app.extensions['clock']
