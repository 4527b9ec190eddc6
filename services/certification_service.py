"""
인증 제출 / 조회 서비스

- 단일 쓰기 경로: submit_certification (멱등성 키 + upsert)
- 인증 목록 조회 (필터 + 페이지네이션)
- 활성 기수 조회
"""

import logging
import uuid
from datetime import timezone

import mysql.connector

from models import Certification, Period
from utils import cache
from utils.certification_dates import (
    can_certify_for_date,
    default_certification_date,
    guide_message,
    next_certification_date,
)
from utils.datetime_parser import format_date_korean, normalize_date
from utils.db import fetch_all, fetch_one
from utils.errors import AppError, BackendError, NotFoundError, ValidationError
from utils.validators import validate_certification_payload

logger = logging.getLogger(__name__)

LIST_FILTERS = ('user_id', 'period_id', 'track_id', 'status')
STATUSES = ('pending', 'submitted', 'approved', 'rejected')


def get_active_period(conn):
    """
    활성 기수 조회

    Returns:
        Period: 활성 기수
        None: 활성 기수가 없는 경우
    """
    row = fetch_one(
        conn,
        "SELECT * FROM periods WHERE is_active = 1 ORDER BY term_number DESC LIMIT 1"
    )
    return Period.from_row(row) if row else None


def find_by_idempotency_key(conn, key):
    """멱등성 키로 기존 인증 조회"""
    return fetch_one(conn, "SELECT * FROM certifications WHERE idempotency_key = %s", (key,))


def submit_certification(conn, payload, clock):
    """
    인증 제출 (단일 쓰기 경로)

    Args:
        conn: DB 연결
        payload (dict): {userId, trackId, periodId, certificationDate,
                         idempotencyKey?, url?, notes?, userTrackId?}
        clock: 서버 시계 (submitted_at 기록용)

    Returns:
        tuple: (Certification, already_applied: bool)

    Raises:
        ValidationError: 입력 형식 오류 (쓰기 전)
        NotFoundError: 기수 또는 트랙 등록이 없는 경우
        BackendError: DB 쓰기 실패 (롤백 후)

    Note:
        - 같은 idempotencyKey 로 이미 처리된 요청은 다시 쓰지 않고 기존 기록 반환
        - (user_id, track_id, certification_date) 유니크 키로 upsert
          동시 중복 제출은 DB 유니크 제약으로 마지막 쓰기가 남음
    """
    data = validate_certification_payload(payload)

    try:
        # 1. 멱등성 체크
        if data['idempotency_key']:
            existing = find_by_idempotency_key(conn, data['idempotency_key'])
            if existing:
                logger.info(f"Idempotency key already used: {data['idempotency_key']}")
                return Certification.from_row(existing), True

        # 2. 기수 확인
        period = fetch_one(conn, "SELECT id FROM periods WHERE id = %s", (data['period_id'],))
        if not period:
            raise NotFoundError("해당 기수를 찾을 수 없습니다.", code='PERIOD_NOT_FOUND')

        # 3. 트랙 등록 확인
        user_track_id = data['user_track_id']
        if user_track_id is None:
            enrollment = fetch_one(conn, """
                SELECT id FROM user_tracks
                WHERE user_id = %s AND track_id = %s AND is_active = 1
            """, (data['user_id'], data['track_id']))
            if not enrollment:
                raise NotFoundError("참여 중인 트랙이 아닙니다.", code='ENROLLMENT_NOT_FOUND')
            user_track_id = enrollment['id']

        # 4. upsert
        submitted_at = clock.now().astimezone(timezone.utc).replace(tzinfo=None)
        cursor = conn.cursor()
        try:
            cursor.execute("""
                INSERT INTO certifications
                    (id, user_id, track_id, period_id, user_track_id,
                     certification_url, certification_date, notes,
                     status, submitted_at, idempotency_key)
                VALUES (%s, %s, %s, %s, %s, %s, %s, %s, 'submitted', %s, %s)
                ON DUPLICATE KEY UPDATE
                    period_id = VALUES(period_id),
                    user_track_id = VALUES(user_track_id),
                    certification_url = COALESCE(VALUES(certification_url), certification_url),
                    notes = COALESCE(VALUES(notes), notes),
                    status = 'submitted',
                    submitted_at = VALUES(submitted_at),
                    idempotency_key = COALESCE(VALUES(idempotency_key), idempotency_key),
                    updated_at = VALUES(submitted_at)
            """, (
                str(uuid.uuid4()),
                data['user_id'],
                data['track_id'],
                data['period_id'],
                user_track_id,
                data['certification_url'],
                data['certification_date'],
                data['notes'],
                submitted_at,
                data['idempotency_key'],
            ))
        finally:
            cursor.close()

        conn.commit()

        row = fetch_one(conn, """
            SELECT * FROM certifications
            WHERE user_id = %s AND track_id = %s AND certification_date = %s
        """, (data['user_id'], data['track_id'], data['certification_date']))

    except AppError:
        raise
    except mysql.connector.Error as e:
        conn.rollback()
        logger.error(f"Certification upsert failed: {e}", exc_info=True)
        raise BackendError(f"인증 저장에 실패했습니다: {e}", code='UPSERT_FAILED')

    if row is None:
        raise BackendError("저장된 인증을 다시 조회할 수 없습니다.", code='UPSERT_FAILED')

    # 5. 캐시 무효화
    cache.invalidate_certifications(data['user_id'], data['track_id'], data['period_id'])

    return Certification.from_row(row), False


def list_certifications(conn, filters, limit=None, offset=0):
    """
    인증 목록 조회 (최신순)

    Args:
        filters (dict): user_id, period_id, track_id, status 중 일부
        limit (int, optional): 최대 개수
        offset (int): 시작 위치

    Returns:
        tuple: (list[Certification], total_count)
    """
    status = filters.get('status')
    if status and status not in STATUSES:
        raise ValidationError(f"알 수 없는 상태: {status}")

    clauses = []
    params = []
    for name in LIST_FILTERS:
        value = filters.get(name)
        if value:
            clauses.append(f"{name} = %s")
            params.append(value)
    where = f"WHERE {' AND '.join(clauses)}" if clauses else ""

    count_row = fetch_one(conn, f"SELECT COUNT(*) AS total FROM certifications {where}", tuple(params))
    total = count_row['total'] if count_row else 0

    sql = f"""
        SELECT * FROM certifications {where}
        ORDER BY certification_date DESC, created_at DESC
    """
    if limit is not None:
        sql += " LIMIT %s OFFSET %s"
        params.extend([int(limit), int(offset or 0)])

    rows = fetch_all(conn, sql, tuple(params))
    return [Certification.from_row(r) for r in rows], total


def get_last_certification_date(conn, user_id, track_id):
    """사용자의 트랙별 마지막 인증 날짜 (없으면 None)"""
    row = fetch_one(conn, """
        SELECT certification_date FROM certifications
        WHERE user_id = %s AND track_id = %s
        ORDER BY certification_date DESC
        LIMIT 1
    """, (user_id, track_id))
    return normalize_date(row['certification_date']) if row else None


def next_certification_info(conn, user_id, track, clock):
    """
    다음 인증일 안내

    Returns:
        dict: {nextDate, defaultDate, canCertifyToday, lastCertifiedDate, guide}
    """
    today = clock.today()
    last = get_last_certification_date(conn, user_id, track.id)
    next_date = next_certification_date(track.type, today, last)

    return {
        'trackId': track.id,
        'trackType': track.type,
        'nextDate': next_date.isoformat(),
        'nextDateLabel': format_date_korean(next_date),
        'defaultDate': default_certification_date(track.type, today, last).isoformat(),
        'canCertifyToday': can_certify_for_date(track.type, today, today, last),
        'lastCertifiedDate': last.isoformat() if last else None,
        'guide': guide_message(track.type),
    }
