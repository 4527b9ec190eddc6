"""
인증 현황 집계 서비스

관리자 현황표, 인증 피드, 사용자 달력, 대시보드, 리더보드, 탈락 후보 목록에서
쓰는 데이터를 만듭니다.

날짜 계산과 상태 판정은 모두 utils.certification_dates 를 사용하고,
여기서는 DB 조회와 결과 조립만 합니다.
"""

from datetime import timedelta

from services.certification_service import get_active_period, get_last_certification_date
from utils import cache
from utils.certification_dates import (
    DROPOUT_THRESHOLD,
    cadence_of,
    current_streak,
    derive_status_map,
    is_drop_candidate,
    missing_count,
    month_window,
    next_certification_date,
    required_dates,
    required_dates_for_month,
    summarize,
    trailing_required_dates,
)
from utils.datetime_parser import normalize_date
from utils.db import fetch_all, fetch_one
from utils.errors import ValidationError

FEED_TRACK_TYPES = ('builder', 'sales')


def _active_tracks(conn):
    return fetch_all(conn, "SELECT id, name, type FROM tracks WHERE is_active = 1 ORDER BY name")


def _participants(conn, track_id):
    return fetch_all(conn, """
        SELECT ut.id AS user_track_id, ut.dropout_warnings,
               u.id AS user_id, u.discord_username, u.discord_avatar_url
        FROM user_tracks ut
        JOIN users u ON u.id = ut.user_id
        WHERE ut.track_id = %s AND ut.is_active = 1
        ORDER BY u.discord_username
    """, (track_id,))


def _certifications(conn, track_id, start, end, user_id=None):
    sql = """
        SELECT user_id, certification_date, certification_url,
               submitted_at, status, notes
        FROM certifications
        WHERE track_id = %s AND certification_date BETWEEN %s AND %s
    """
    params = [track_id, start, end]
    if user_id:
        sql += " AND user_id = %s"
        params.append(user_id)
    return fetch_all(conn, sql, tuple(params))


def _period_bounds(period):
    if period is None:
        return (None, None)
    return (period.start_date, period.end_date)


def _participant_entry(participant, track_type, required, trailing, rows, today, tz):
    status_map = derive_status_map(required, rows, today, tz)
    summary = summarize(status_map, today)
    trailing_map = derive_status_map(trailing, rows, today, tz)
    missed = missing_count(trailing_map, trailing)

    return {
        'userId': participant['user_id'],
        'userTrackId': participant['user_track_id'],
        'discordUsername': participant.get('discord_username') or 'Unknown User',
        'discordAvatarUrl': participant.get('discord_avatar_url'),
        'certifications': status_map,
        'totalCertified': summary['totalCertified'],
        'totalRequired': summary['totalRequired'],
        'completionRate': summary['completionRate'],
        'streak': current_streak(status_map, today),
        'missingCount': missed,
        'isDropCandidate': bool(trailing) and is_drop_candidate(track_type, missed),
        'dropoutWarnings': participant.get('dropout_warnings') or 0,
    }


def build_tracking(conn, year, month, clock):
    """
    트랙별 인증 현황 (관리자 현황표)

    Args:
        year (int), month (int): 조회 월
        clock: 서버 시계

    Returns:
        list[dict]: [{
            'trackId', 'trackName', 'trackType',
            'dates': ['YYYY-MM-DD', ...],   # 월 ∩ 활성 기수의 인증 필요일
            'participants': [...]
        }]
    """
    today = clock.today()
    key = cache.cache_key('tracking', f"{year}-{month:02d}", today=today.isoformat())
    cached = cache.get_cache(key)
    if cached is not None:
        return cached

    tz = clock.tz
    period = get_active_period(conn)
    period_start, period_end = _period_bounds(period)
    window = month_window(year, month, period_start, period_end, tz)

    summaries = []
    for track in _active_tracks(conn):
        required = required_dates_for_month(track['type'], year, month,
                                            period_start, period_end, tz)
        entry = {
            'trackId': track['id'],
            'trackName': track['name'],
            'trackType': track['type'],
            'dates': [d.isoformat() for d in required],
            'participants': [],
        }

        participants = _participants(conn, track['id'])
        if not participants:
            summaries.append(entry)
            continue

        trailing = trailing_required_dates(track['type'], today, period_start, tz)
        starts = [d for d in ([window[0]] if window else []) + trailing[:1]]
        ends = [d for d in ([window[1]] if window else []) + [today]]
        rows = _certifications(conn, track['id'], min(starts), max(ends)) if starts else []

        by_user = {}
        for row in rows:
            by_user.setdefault(row['user_id'], []).append(row)

        for participant in participants:
            entry['participants'].append(_participant_entry(
                participant, track['type'], required, trailing,
                by_user.get(participant['user_id'], []), today, tz
            ))
        summaries.append(entry)

    cache.set_cache(key, summaries)
    return summaries


def find_dropout_candidates(conn, clock):
    """
    탈락 후보 목록

    어제까지의 최근 인증 필요일(일간 5개, 주간 1개) 중 미인증 개수가
    트랙 주기별 기준(일간 5, 주간 1) 이상인 참여자.
    마감일 당일에는 아직 제출 전이어도 후보가 되지 않습니다.
    """
    today = clock.today()
    tz = clock.tz
    period = get_active_period(conn)
    period_start = period.start_date if period else None

    candidates = []
    for track in _active_tracks(conn):
        trailing = trailing_required_dates(track['type'], today, period_start, tz)
        if not trailing:
            continue

        participants = _participants(conn, track['id'])
        if not participants:
            continue

        rows = _certifications(conn, track['id'], trailing[0], trailing[-1])
        by_user = {}
        for row in rows:
            by_user.setdefault(row['user_id'], []).append(row)

        for participant in participants:
            status_map = derive_status_map(trailing, by_user.get(participant['user_id'], []), today, tz)
            missed = missing_count(status_map, trailing)
            if is_drop_candidate(track['type'], missed):
                candidates.append({
                    'userTrackId': participant['user_track_id'],
                    'userId': participant['user_id'],
                    'discordUsername': participant.get('discord_username') or 'Unknown User',
                    'trackId': track['id'],
                    'trackName': track['name'],
                    'trackType': track['type'],
                    'missingCount': missed,
                    'threshold': DROPOUT_THRESHOLD[cadence_of(track['type'])],
                    'dropoutWarnings': participant.get('dropout_warnings') or 0,
                })
    return candidates


def build_calendar(conn, user_id, track, year, month, clock):
    """
    사용자 달력 데이터 (한 트랙, 한 달)

    Returns:
        dict: {
            'year', 'month', 'trackId', 'trackType',
            'days': [{'date', 'required', 'certified'}],  # 월 전체 날짜
            'certifications': {...},                       # 인증 필요일별 상태
            'summary': {...}, 'nextDate': 'YYYY-MM-DD'
        }
    """
    today = clock.today()
    key = cache.cache_key('calendar', user_id, track.id, f"{year}-{month:02d}", today=today.isoformat())
    cached = cache.get_cache(key)
    if cached is not None:
        return cached

    tz = clock.tz
    period = get_active_period(conn)
    period_start, period_end = _period_bounds(period)
    required = required_dates_for_month(track.type, year, month, period_start, period_end, tz)

    month_start, month_end = month_window(year, month, tz=tz)
    rows = _certifications(conn, track.id, month_start, month_end, user_id=user_id)
    status_map = derive_status_map(required, rows, today, tz)

    required_keys = set(status_map)
    days = []
    day = month_start
    while day <= month_end:
        key_str = day.isoformat()
        days.append({
            'date': key_str,
            'required': key_str in required_keys,
            'certified': status_map.get(key_str, {}).get('status') == 'certified',
        })
        day += timedelta(days=1)

    # 조회 월과 상관없이 마지막 인증일 기준 (next-date API 와 같은 값)
    last = get_last_certification_date(conn, user_id, track.id)

    result = {
        'year': year,
        'month': month,
        'trackId': track.id,
        'trackType': track.type,
        'days': days,
        'certifications': status_map,
        'summary': summarize(status_map, today),
        'nextDate': next_certification_date(track.type, today, last).isoformat(),
    }
    cache.set_cache(key, result)
    return result


def user_stats(conn, user_id, track, clock):
    """
    사용자 트랙 통계 (활성 기수 기준 streak / 달성률 + 전체 인증 수)
    """
    today = clock.today()
    tz = clock.tz
    period = get_active_period(conn)

    if period is not None:
        start = period.start_date
        end = min(today, period.end_date) if period.end_date else today
    else:
        start = today - timedelta(days=90)
        end = today

    required = required_dates(track.type, start, end, tz) if start <= end else []
    rows = _certifications(conn, track.id, start, end, user_id=user_id) if required else []
    status_map = derive_status_map(required, rows, today, tz)

    total_row = fetch_one(conn, """
        SELECT COUNT(*) AS total FROM certifications
        WHERE user_id = %s AND track_id = %s AND status IN ('submitted', 'approved')
    """, (user_id, track.id))

    summary = summarize(status_map, today)
    return {
        'userId': user_id,
        'trackId': track.id,
        'streak': current_streak(status_map, today),
        'totalCertifications': total_row['total'] if total_row else 0,
        'totalCertified': summary['totalCertified'],
        'totalRequired': summary['totalRequired'],
        'completionRate': summary['completionRate'],
    }


def build_dashboard(conn):
    """트랙별 인증 통계 (대시보드)"""
    cached = cache.get_cache('dashboard')
    if cached is not None:
        return cached

    rows = fetch_all(conn, """
        SELECT t.id AS track_id, t.name AS track_name, t.type AS track_type,
               COUNT(c.id) AS total_certifications,
               COALESCE(SUM(c.status IN ('submitted', 'approved')), 0) AS certified_count,
               COUNT(DISTINCT c.user_id) AS participant_count
        FROM tracks t
        LEFT JOIN certifications c ON c.track_id = t.id
        WHERE t.is_active = 1
        GROUP BY t.id, t.name, t.type
        ORDER BY t.name
    """)
    data = [{
        'trackId': r['track_id'],
        'trackName': r['track_name'],
        'trackType': r['track_type'],
        'totalCertifications': int(r['total_certifications'] or 0),
        'certifiedCount': int(r['certified_count'] or 0),
        'participantCount': int(r['participant_count'] or 0),
    } for r in rows]

    cache.set_cache('dashboard', data)
    return data


def leaderboard(conn, track_id=None, limit=100):
    """인증 수 기준 순위"""
    key = cache.cache_key('leaderboard', track_id or 'all', limit=limit)
    cached = cache.get_cache(key)
    if cached is not None:
        return cached

    sql = """
        SELECT u.id AS user_id, u.discord_username, u.discord_avatar_url,
               COUNT(c.id) AS total_certifications
        FROM certifications c
        JOIN users u ON u.id = c.user_id
        WHERE c.status IN ('submitted', 'approved')
    """
    params = []
    if track_id:
        sql += " AND c.track_id = %s"
        params.append(track_id)
    sql += """
        GROUP BY u.id, u.discord_username, u.discord_avatar_url
        ORDER BY total_certifications DESC, u.discord_username
        LIMIT %s
    """
    params.append(int(limit))

    rows = fetch_all(conn, sql, tuple(params))
    data = [{
        'rank': index,
        'userId': r['user_id'],
        'discordUsername': r['discord_username'],
        'discordAvatarUrl': r['discord_avatar_url'],
        'totalCertifications': int(r['total_certifications']),
    } for index, r in enumerate(rows, start=1)]

    cache.set_cache(key, data)
    return data


def certification_feed(conn, track_type, period_id=None):
    """
    빌더/세일즈 트랙 인증 피드 (관리자용, 최신 제출순)

    날짜 표 대신 제출 내역을 시간순으로 보여줄 때 사용합니다.

    Args:
        track_type (str): 'builder' | 'sales'
        period_id (str, optional): 해당 기수의 인증만

    Returns:
        list[dict]: [{id, userId, userName, userAvatar, trackId, trackName,
                      trackType, certificationDate, submittedAt, notes, url, status}]

    Raises:
        ValidationError: 피드를 지원하지 않는 트랙 타입
    """
    if track_type not in FEED_TRACK_TYPES:
        raise ValidationError("trackType 은 builder 또는 sales 여야 합니다.", details={'field': 'trackType'})

    track = fetch_one(conn, """
        SELECT id, name, type FROM tracks
        WHERE type = %s AND is_active = 1
        ORDER BY name LIMIT 1
    """, (track_type,))
    if not track:
        return []

    sql = """
        SELECT c.id, c.user_id, c.certification_date, c.certification_url,
               c.submitted_at, c.notes, c.status,
               u.discord_username, u.discord_avatar_url
        FROM certifications c
        JOIN users u ON u.id = c.user_id
        WHERE c.track_id = %s AND c.status IN ('submitted', 'approved')
    """
    params = [track['id']]
    if period_id:
        sql += " AND c.period_id = %s"
        params.append(period_id)
    sql += " ORDER BY c.submitted_at DESC"

    return [{
        'id': r['id'],
        'userId': r['user_id'],
        'userName': r.get('discord_username') or 'Unknown User',
        'userAvatar': r.get('discord_avatar_url'),
        'trackId': track['id'],
        'trackName': track['name'],
        'trackType': track['type'],
        'certificationDate': normalize_date(r['certification_date']).isoformat(),
        'submittedAt': r['submitted_at'].isoformat() if r.get('submitted_at') else None,
        'notes': r.get('notes'),
        'url': r.get('certification_url'),
        'status': r['status'],
    } for r in fetch_all(conn, sql, tuple(params))]
