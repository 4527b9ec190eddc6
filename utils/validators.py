"""
데이터 검증 로직

요청 본문의 형식(UUID, 날짜, URL)과
기수 기간 같은 비즈니스 규칙을 검증합니다.

check_* 함수는 (is_valid, error_message) 를 반환하고,
require_* / validate_* 함수는 실패 시 ValidationError 를 발생시킵니다.
"""

import uuid
from urllib.parse import urlparse

from utils.datetime_parser import parse_iso_date
from utils.errors import ValidationError

MIN_IDEMPOTENCY_KEY_LENGTH = 8


def check_uuid(value):
    """
    UUID 형식 검증

    Example:
        >>> check_uuid("8c8f5d9e-1b1a-4c1e-9a55-1f0a2b3c4d5e")
        (True, None)
        >>> check_uuid("abc")
        (False, "UUID 형식이 아닙니다: abc")
    """
    try:
        uuid.UUID(str(value))
    except (ValueError, TypeError, AttributeError):
        return (False, f"UUID 형식이 아닙니다: {value}")
    return (True, None)


def check_url(value):
    """http(s) URL 형식 검증"""
    if not isinstance(value, str):
        return (False, "URL은 문자열이어야 합니다.")
    parsed = urlparse(value.strip())
    if parsed.scheme not in ('http', 'https') or not parsed.netloc:
        return (False, f"URL 형식이 올바르지 않습니다: {value}")
    return (True, None)


def check_date_range(start_dt, end_dt, allow_same=False):
    """
    날짜 범위 유효성 검증

    Args:
        start_dt (date): 시작일
        end_dt (date): 종료일
        allow_same (bool): 시작일 == 종료일 허용 여부

    Returns:
        tuple: (is_valid: bool, error_message: str or None)
    """
    if start_dt > end_dt or (start_dt == end_dt and not allow_same):
        return (False, "시작일이 종료일보다 늦습니다.")

    return (True, None)


def require_uuid(data, field, required=True):
    """필드가 UUID 인지 확인하고 문자열로 반환"""
    value = data.get(field)
    if value in (None, ''):
        if required:
            raise ValidationError(f"{field} 값이 필요합니다.", details={'field': field})
        return None
    ok, message = check_uuid(value)
    if not ok:
        raise ValidationError(message, details={'field': field})
    return str(value)


def require_date(data, field, required=True):
    """필드가 'YYYY-MM-DD' 인지 확인하고 date 로 반환"""
    value = data.get(field)
    if value in (None, ''):
        if required:
            raise ValidationError(f"{field} 값이 필요합니다 (YYYY-MM-DD).", details={'field': field})
        return None
    try:
        return parse_iso_date(value)
    except ValueError as e:
        raise ValidationError(str(e), details={'field': field})


def require_int(data, field, default=None, minimum=None, maximum=None):
    """
    정수 필드 (쿼리스트링 문자열 허용, 범위 밖이면 ValidationError)

    Example:
        >>> require_int({'limit': '20'}, 'limit', minimum=1, maximum=500)
        20
    """
    raw = data.get(field)
    if raw in (None, ''):
        return default
    try:
        value = int(raw)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} 값은 정수여야 합니다.", details={'field': field})
    if (minimum is not None and value < minimum) or (maximum is not None and value > maximum):
        raise ValidationError(f"{field} 값이 범위를 벗어났습니다.", details={'field': field})
    return value


def require_year_month(data, today):
    """
    조회 월 (year, month) 확인

    생략하면 today 기준 월, year 는 2000~2100 만 허용

    Returns:
        tuple: (year, month)
    """
    year = require_int(data, 'year', default=today.year, minimum=2000, maximum=2100)
    month = require_int(data, 'month', default=today.month, minimum=1, maximum=12)
    return year, month


def optional_text(data, field):
    """문자열 필드 (공백 제거, 빈 문자열은 None)"""
    value = data.get(field)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{field} 값은 문자열이어야 합니다.", details={'field': field})
    value = value.strip()
    return value or None


def validate_certification_payload(data):
    """
    인증 제출 요청 검증

    Args:
        data (dict): {
            'userId', 'trackId', 'periodId', 'certificationDate',
            'idempotencyKey'?, 'url'?, 'notes'?, 'userTrackId'?
        }

    Returns:
        dict: 정규화된 값 (snake_case 키)

    Raises:
        ValidationError: 형식 오류
    """
    if not isinstance(data, dict):
        raise ValidationError("요청 본문은 JSON 객체여야 합니다.")

    cleaned = {
        'user_id': require_uuid(data, 'userId'),
        'track_id': require_uuid(data, 'trackId'),
        'period_id': require_uuid(data, 'periodId'),
        'user_track_id': require_uuid(data, 'userTrackId', required=False),
        'certification_date': require_date(data, 'certificationDate'),
        'notes': optional_text(data, 'notes'),
    }

    # 이전 클라이언트는 certificationUrl 필드 사용
    url = optional_text(data, 'url') or optional_text(data, 'certificationUrl')
    if url is not None:
        ok, message = check_url(url)
        if not ok:
            raise ValidationError(message, details={'field': 'url'})
    cleaned['certification_url'] = url

    key = optional_text(data, 'idempotencyKey')
    if key is not None and len(key) < MIN_IDEMPOTENCY_KEY_LENGTH:
        raise ValidationError(
            f"idempotencyKey는 {MIN_IDEMPOTENCY_KEY_LENGTH}자 이상이어야 합니다.",
            details={'field': 'idempotencyKey'}
        )
    cleaned['idempotency_key'] = key

    return cleaned


def validate_period_range(start, end):
    """기수 기간 검증 (시작일 < 종료일)"""
    ok, message = check_date_range(start, end)
    if not ok:
        raise ValidationError(message)
