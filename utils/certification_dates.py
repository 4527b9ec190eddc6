"""
인증 날짜 계산 / 인증 상태 판정

트랙 주기별로 인증이 필요한 날짜를 계산하고,
제출된 인증 기록과 비교해 날짜별 상태를 판정합니다.

I/O 가 없는 순수 함수 모음입니다.
'오늘'과 시간대는 항상 인자로 받습니다.

트랙 주기:
    - short-form: 평일(월~금) 매일 인증
    - long-form, builder: 매주 일요일 마감
    - sales: 매주 화요일 마감
"""

import calendar
from datetime import date, timedelta
from zoneinfo import ZoneInfo

from utils.datetime_parser import DEFAULT_TIMEZONE, normalize_date

# 상태 값
CERTIFIED = 'certified'
PENDING = 'pending'
MISSING = 'missing'
NOT_REQUIRED = 'not-required'

# 트랙 타입 -> 인증 요일 (0=월요일, ..., 6=일요일)
TRACK_WEEKDAYS = {
    'short-form': (0, 1, 2, 3, 4),
    'long-form': (6,),
    'builder': (6,),
    'sales': (1,),
}

TRACK_ALIASES = {
    'shortform': 'short-form',
    'longform': 'long-form',
}

DAILY_TRACKS = frozenset(['short-form'])

# 탈락 후보 판정 (최근 N개 인증일 중 미인증 개수 기준)
DROPOUT_WINDOW = {'daily': 5, 'weekly': 1}
DROPOUT_THRESHOLD = {'daily': 5, 'weekly': 1}

# 주간 트랙은 마감일 1주일 전부터 미리 인증 가능
ADVANCE_DAYS = 7

_CERTIFIED_ROW_STATUSES = ('submitted', 'approved')


def normalize_track_type(track_type):
    """
    트랙 타입 문자열 정규화

    Example:
        >>> normalize_track_type("shortform")
        'short-form'

    Raises:
        ValueError: 알 수 없는 트랙 타입
    """
    key = TRACK_ALIASES.get(track_type, track_type)
    if key not in TRACK_WEEKDAYS:
        raise ValueError(f"알 수 없는 트랙 타입: {track_type}")
    return key


def cadence_of(track_type):
    """트랙 주기 ('daily' 또는 'weekly')"""
    return 'daily' if normalize_track_type(track_type) in DAILY_TRACKS else 'weekly'


def is_required_date(day, track_type):
    """해당 날짜가 트랙의 인증 필요일인지 여부"""
    return day.weekday() in TRACK_WEEKDAYS[normalize_track_type(track_type)]


def required_dates(track_type, range_start, range_end, tz=None):
    """
    기간 내 인증 필요 날짜 목록

    Args:
        track_type (str): 트랙 타입
        range_start: 시작일 (포함)
        range_end: 종료일 (포함)
        tz (ZoneInfo, optional): 정규화 기준 시간대

    Returns:
        list[date]: 오름차순 날짜 목록 (시작 > 종료면 빈 목록)
    """
    tz = tz or ZoneInfo(DEFAULT_TIMEZONE)
    weekdays = TRACK_WEEKDAYS[normalize_track_type(track_type)]
    start = normalize_date(range_start, tz)
    end = normalize_date(range_end, tz)

    result = []
    day = start
    while day <= end:
        if day.weekday() in weekdays:
            result.append(day)
        day += timedelta(days=1)
    return result


def month_window(year, month, period_start=None, period_end=None, tz=None):
    """
    달력 월과 기수 기간의 교집합

    Args:
        year (int), month (int): 조회 월
        period_start, period_end: 활성 기수의 시작/종료일 (없으면 월 전체)

    Returns:
        tuple: (start, end) 또는 겹치지 않으면 None
    """
    tz = tz or ZoneInfo(DEFAULT_TIMEZONE)
    start = date(year, month, 1)
    end = date(year, month, calendar.monthrange(year, month)[1])

    if period_start is not None:
        start = max(start, normalize_date(period_start, tz))
    if period_end is not None:
        end = min(end, normalize_date(period_end, tz))

    if start > end:
        return None
    return (start, end)


def required_dates_for_month(track_type, year, month, period_start=None,
                             period_end=None, tz=None):
    """월 단위 인증 필요 날짜 (활성 기수 기간으로 제한)"""
    window = month_window(year, month, period_start, period_end, tz)
    if window is None:
        return []
    return required_dates(track_type, window[0], window[1], tz)


def classify(row_status, day, today):
    """
    날짜 하나의 인증 상태 판정

    Args:
        row_status (str or None): 인증 기록의 status (기록이 없으면 None)
        day (date): 인증 필요일
        today (date): 오늘 (고정 시간대 기준)

    Returns:
        str: certified / pending / missing / not-required
    """
    if row_status is not None:
        if row_status in _CERTIFIED_ROW_STATUSES:
            return CERTIFIED
        if row_status == 'rejected':
            return MISSING
        return PENDING

    if day > today:
        return NOT_REQUIRED
    return MISSING


def derive_status_map(required, rows, today, tz=None):
    """
    인증 필요일별 상태 맵 생성

    Args:
        required (list[date]): 인증 필요 날짜 목록
        rows (list[dict]): 인증 기록 (certification_date, status,
            certification_url, submitted_at, notes)
        today (date): 오늘
        tz (ZoneInfo, optional): 정규화 기준 시간대

    Returns:
        dict: {'YYYY-MM-DD': {'status', 'url', 'submittedAt', 'notes'}}
              날짜 오름차순
    """
    tz = tz or ZoneInfo(DEFAULT_TIMEZONE)
    today = normalize_date(today, tz)

    by_date = {}
    for row in rows:
        raw = row.get('certification_date')
        if raw is None:
            continue
        by_date[normalize_date(raw, tz).isoformat()] = row

    status_map = {}
    for day in sorted(normalize_date(d, tz) for d in required):
        key = day.isoformat()
        row = by_date.get(key)
        submitted_at = row.get('submitted_at') if row else None
        status_map[key] = {
            'status': classify(row.get('status') if row else None, day, today),
            'url': row.get('certification_url') if row else None,
            'submittedAt': _iso(submitted_at),
            'notes': row.get('notes') if row else None,
        }
    return status_map


def summarize(status_map, today):
    """
    상태 맵 집계

    Returns:
        dict: {
            'totalCertified': int,
            'totalRequired': int,   # 오늘 이전(포함) 인증 필요일 수
            'completionRate': float # 0.0 ~ 100.0, 소수점 1자리
        }

    Example:
        >>> summarize({'2025-01-05': {'status': 'missing'},
        ...            '2025-01-12': {'status': 'certified'}}, date(2025, 1, 15))
        {'totalCertified': 1, 'totalRequired': 2, 'completionRate': 50.0}
    """
    today_key = today.isoformat()
    total_certified = sum(1 for v in status_map.values() if v['status'] == CERTIFIED)
    total_required = sum(1 for k in status_map if k <= today_key)

    if total_required == 0:
        rate = 0.0
    else:
        rate = round(total_certified / total_required * 100, 1)
        rate = min(max(rate, 0.0), 100.0)

    return {
        'totalCertified': total_certified,
        'totalRequired': total_required,
        'completionRate': rate,
    }


def current_streak(status_map, today):
    """
    연속 인증 일수

    오늘부터 거꾸로 인증 필요일을 따라가며 연속으로 certified 인 개수.
    오늘이 아직 인증 전이면 streak 를 끊지 않습니다.
    """
    today_key = today.isoformat()
    streak = 0
    for key in sorted((k for k in status_map if k <= today_key), reverse=True):
        status = status_map[key]['status']
        if status == CERTIFIED:
            streak += 1
        elif key == today_key:
            continue
        else:
            break
    return streak


def trailing_required_dates(track_type, today, period_start=None, tz=None):
    """
    탈락 판정용 최근 인증 필요일

    일간 트랙은 최근 5개, 주간 트랙은 최근 1개의 인증 필요일 (어제까지).
    오늘은 아직 제출할 수 있으므로 제외하고,
    기수 시작일 이전 날짜도 제외합니다.

    Example:
        >>> trailing_required_dates('long-form', date(2025, 1, 19))
        [date(2025, 1, 12)]
    """
    tz = tz or ZoneInfo(DEFAULT_TIMEZONE)
    end = normalize_date(today, tz) - timedelta(days=1)
    size = DROPOUT_WINDOW[cadence_of(track_type)]
    lookback_start = end - timedelta(days=7 * size + 7)
    if period_start is not None:
        lookback_start = max(lookback_start, normalize_date(period_start, tz))
    return required_dates(track_type, lookback_start, end, tz)[-size:]


def missing_count(status_map, dates):
    """지정한 날짜들 중 missing 개수"""
    keys = [d if isinstance(d, str) else d.isoformat() for d in dates]
    return sum(1 for k in keys if status_map.get(k, {}).get('status') == MISSING)


def is_drop_candidate(track_type, missed):
    """미인증 개수가 트랙 주기별 기준 이상이면 탈락 후보"""
    return missed >= DROPOUT_THRESHOLD[cadence_of(track_type)]


def _next_weekday_after(day, weekday, inclusive=False):
    delta = (weekday - day.weekday()) % 7
    if delta == 0 and not inclusive:
        delta = 7
    return day + timedelta(days=delta)


def next_certification_date(track_type, today, last_certified=None):
    """
    다음 인증일 계산

    - short-form: 오늘
    - 주간 트랙 + 마지막 인증일 있음: 마지막 인증일 다음의 마감 요일
      (단, 이미 지난 날짜면 오늘 이후 첫 마감 요일)
    - 주간 트랙 첫 인증: 오늘 포함 가장 가까운 마감 요일

    Example:
        >>> next_certification_date('long-form', date(2025, 1, 10))
        date(2025, 1, 12)
    """
    track_type = normalize_track_type(track_type)
    if track_type in DAILY_TRACKS:
        return today

    weekday = TRACK_WEEKDAYS[track_type][0]
    first_upcoming = _next_weekday_after(today, weekday, inclusive=True)
    if last_certified is None:
        return first_upcoming

    candidate = _next_weekday_after(last_certified, weekday)
    return max(candidate, first_upcoming)


def can_certify_for_date(track_type, target, today, last_certified=None):
    """
    해당 날짜로 인증 제출이 가능한지 여부

    - short-form: 오늘 또는 과거 날짜만
    - 주간 트랙: 다음 인증일은 1주일 전부터, 지난 마감 요일은 항상 가능
    """
    track_type = normalize_track_type(track_type)
    if track_type in DAILY_TRACKS:
        return target <= today

    if not is_required_date(target, track_type):
        return False

    next_date = next_certification_date(track_type, today, last_certified)
    if target == next_date:
        return next_date - timedelta(days=ADVANCE_DAYS) <= today
    return target <= today


def default_certification_date(track_type, today, last_certified=None):
    """기본 제안 인증 날짜 (주간 트랙은 1주일 이내면 다음 인증일)"""
    track_type = normalize_track_type(track_type)
    if track_type in DAILY_TRACKS:
        return today

    next_date = next_certification_date(track_type, today, last_certified)
    if next_date - timedelta(days=ADVANCE_DAYS) <= today:
        return next_date
    return today


def guide_message(track_type):
    """트랙 타입별 인증 안내 메시지"""
    messages = {
        'short-form': '매일 꾸준히 인증하여 습관을 만들어보세요! 평일(월~금) 인증이 필요합니다.',
        'long-form': '매주 일요일까지 인증해주세요. 일요일 인증분은 일주일 전부터 미리 제출할 수 있습니다.',
        'builder': '매주 일요일까지 개발 진행 상황을 인증해주세요. 일요일 인증분은 일주일 전부터 미리 제출할 수 있습니다.',
        'sales': '매주 화요일까지 판매/고객 개발 내역을 인증해주세요. 화요일 인증분은 일주일 전부터 미리 제출할 수 있습니다.',
    }
    return messages.get(TRACK_ALIASES.get(track_type, track_type), '오늘의 챌린지를 인증해주세요.')


def _iso(value):
    if value is None:
        return None
    if hasattr(value, 'isoformat'):
        return value.isoformat()
    return str(value)
