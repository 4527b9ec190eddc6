"""
관리자 서비스

- 인증 리셋 (백업 -> 삭제 -> 트랙 등록 비활성화 -> 다음 기수 생성)
- 인증 일괄/개별 삭제 (백업 후 삭제)
- 기수 기간 수정, 사용자 트랙 배정
- 관리자 통계, 사용자 목록, 탈락 후보 경고
- 페이지 편집 콘텐츠

여러 단계로 이루어진 쓰기는 모두 한 트랜잭션 안에서 실행하고,
실패하면 롤백 후 BackendError 를 발생시킵니다.
"""

import logging
import uuid
from datetime import timezone

import mysql.connector

from models import PageContent, Period
from services.tracking_service import find_dropout_candidates
from utils import cache
from utils.db import fetch_all, fetch_one
from utils.errors import BackendError, NotFoundError, ValidationError
from utils.validators import check_uuid, validate_period_range

logger = logging.getLogger(__name__)

# certifications -> certifications_backup 으로 복사하는 컬럼
BACKUP_COLUMNS = (
    'user_id', 'track_id', 'period_id', 'user_track_id',
    'certification_url', 'certification_date', 'notes', 'status',
    'submitted_at', 'idempotency_key', 'created_at', 'updated_at',
)

_SELECT_COLUMNS = ', '.join(('id',) + BACKUP_COLUMNS)


def _utc_naive(clock):
    return clock.now().astimezone(timezone.utc).replace(tzinfo=None)


def _archive_and_delete(cursor, rows, admin_id, reason, now):
    """
    인증 행을 백업 테이블에 복사한 뒤 원본 삭제

    호출하는 쪽에서 commit / rollback 을 책임집니다.

    Returns:
        int: 백업(=삭제)한 행 수
    """
    if not rows:
        return 0

    columns = ('id', 'source_id') + BACKUP_COLUMNS + (
        'backed_up_at', 'backed_up_by', 'backup_reason', 'original_deleted_at'
    )
    placeholders = ', '.join(['%s'] * len(columns))
    cursor.executemany(
        f"INSERT INTO certifications_backup ({', '.join(columns)}) VALUES ({placeholders})",
        [
            (str(uuid.uuid4()), row['id'])
            + tuple(row.get(name) for name in BACKUP_COLUMNS)
            + (now, admin_id, reason, now)
            for row in rows
        ]
    )

    # 백업한 행만 정확히 삭제
    cursor.executemany(
        "DELETE FROM certifications WHERE id = %s",
        [(row['id'],) for row in rows]
    )
    return len(rows)


def reset_certifications(conn, admin_id, before_date, next_period_start,
                         next_period_end, clock, reason=None, track_id=None):
    """
    인증 리셋 (기수 전환)

    한 트랜잭션에서 다음 순서로 실행합니다.
        1. certification_date < before_date 인 인증 조회 (track_id 로 제한 가능)
        2. certifications_backup 으로 복사
        3. 원본 삭제
        4. 활성 트랙 등록 전부 비활성화
        5. 활성 기수 종료 + 새 활성 기수 생성 (term_number = 최대값 + 1)

    Args:
        conn: DB 연결
        admin_id (str): 실행한 관리자
        before_date (date): 이 날짜 이전 인증을 정리
        next_period_start, next_period_end (date): 새 기수 기간
        clock: 서버 시계
        reason (str, optional): 백업 사유
        track_id (str, optional): 특정 트랙만 정리

    Returns:
        dict: {backedUp, deleted, enrollmentsDeactivated, previousPeriod, newPeriod}

    Raises:
        ValidationError: 날짜 검증 실패 (쓰기 전)
        BackendError: 어느 단계든 실패하면 전체 롤백 후 발생
    """
    if before_date is None or next_period_start is None or next_period_end is None:
        raise ValidationError("beforeDate, nextPeriodStart, nextPeriodEnd 값이 필요합니다.")
    validate_period_range(next_period_start, next_period_end)
    if track_id is not None:
        ok, message = check_uuid(track_id)
        if not ok:
            raise ValidationError(message, details={'field': 'trackId'})

    reason = reason or f"reset_before_{before_date.isoformat()}"
    now = _utc_naive(clock)
    step = 'select'
    cursor = conn.cursor(dictionary=True)

    try:
        # 1. 정리 대상 조회
        sql = f"SELECT {_SELECT_COLUMNS} FROM certifications WHERE certification_date < %s"
        params = [before_date]
        if track_id:
            sql += " AND track_id = %s"
            params.append(track_id)
        cursor.execute(sql + " FOR UPDATE", tuple(params))
        rows = cursor.fetchall()

        # 2~3. 백업 후 삭제
        step = 'backup'
        archived = _archive_and_delete(cursor, rows, admin_id, reason, now)

        # 4. 트랙 등록 비활성화 (트랙 지정 여부와 관계없이 전체)
        step = 'deactivate_enrollments'
        cursor.execute("UPDATE user_tracks SET is_active = 0 WHERE is_active = 1")
        deactivated = cursor.rowcount

        # 5. 기수 전환
        step = 'rotate_period'
        cursor.execute("SELECT * FROM periods WHERE is_active = 1 FOR UPDATE")
        active_periods = cursor.fetchall()
        cursor.execute("UPDATE periods SET is_active = 0 WHERE is_active = 1")

        cursor.execute("SELECT COALESCE(MAX(term_number), 0) AS max_term FROM periods")
        max_row = cursor.fetchone()
        term_number = int(max_row['max_term'] if max_row else 0) + 1

        new_period = Period(
            id=str(uuid.uuid4()),
            term_number=term_number,
            start_date=next_period_start,
            end_date=next_period_end,
            description=f"{term_number}기",
            is_active=True,
        )
        cursor.execute("""
            INSERT INTO periods (id, term_number, start_date, end_date, description, is_active)
            VALUES (%s, %s, %s, %s, %s, 1)
        """, (new_period.id, new_period.term_number, new_period.start_date,
              new_period.end_date, new_period.description))

        conn.commit()

    except mysql.connector.Error as e:
        conn.rollback()
        logger.error(f"Reset failed at step '{step}': {e}", exc_info=True)
        raise BackendError(f"리셋에 실패했습니다: {e}", code='RESET_FAILED', details={'step': step})
    finally:
        cursor.close()

    cache.invalidate_certifications(track_id=track_id)

    previous = Period.from_row(active_periods[0]).to_dict() if active_periods else None
    logger.info(
        f"Reset complete: archived={archived}, deactivated={deactivated}, "
        f"new_term={term_number}, admin={admin_id}"
    )
    return {
        'backedUp': archived,
        'deleted': archived,
        'enrollmentsDeactivated': deactivated,
        'previousPeriod': previous,
        'newPeriod': new_period.to_dict(),
    }


def _delete_where(conn, admin_id, where, params, reason, clock):
    cursor = conn.cursor(dictionary=True)
    try:
        cursor.execute(
            f"SELECT {_SELECT_COLUMNS} FROM certifications WHERE {where} FOR UPDATE",
            params
        )
        rows = cursor.fetchall()
        archived = _archive_and_delete(cursor, rows, admin_id, reason, _utc_naive(clock))
        conn.commit()
    except mysql.connector.Error as e:
        conn.rollback()
        logger.error(f"Certification delete failed: {e}", exc_info=True)
        raise BackendError(f"인증 삭제에 실패했습니다: {e}", code='DELETE_FAILED')
    finally:
        cursor.close()

    cache.invalidate_certifications()
    return archived


def bulk_delete_before(conn, admin_id, before_date, clock, reason=None):
    """
    특정 날짜 이전 인증 일괄 삭제 (백업 후 삭제)

    Returns:
        dict: {backedUp, deleted}
    """
    if before_date is None:
        raise ValidationError("beforeDate 값이 필요합니다 (YYYY-MM-DD).")

    reason = reason or f"bulk_delete_before_{before_date.isoformat()}"
    count = _delete_where(conn, admin_id, "certification_date < %s", (before_date,), reason, clock)
    return {'backedUp': count, 'deleted': count}


def delete_certifications(conn, admin_id, clock, certification_id=None,
                          user_id=None, track_id=None, on_date=None, reason=None):
    """
    인증 개별 삭제 (백업 후 삭제)

    certification_id 로 한 건을 지우거나,
    on_date (+ user_id, track_id) 조건으로 지웁니다.

    Returns:
        dict: {backedUp, deleted}
    """
    if certification_id:
        where, params = "id = %s", (certification_id,)
    elif on_date is not None:
        clauses = ["certification_date = %s"]
        values = [on_date]
        if user_id:
            clauses.append("user_id = %s")
            values.append(user_id)
        if track_id:
            clauses.append("track_id = %s")
            values.append(track_id)
        where, params = ' AND '.join(clauses), tuple(values)
    else:
        raise ValidationError("certificationId 또는 date 값이 필요합니다.")

    count = _delete_where(conn, admin_id, where, params, reason or 'admin_delete', clock)
    if certification_id and count == 0:
        raise NotFoundError("인증을 찾을 수 없습니다.", code='CERTIFICATION_NOT_FOUND')
    return {'backedUp': count, 'deleted': count}


def update_period(conn, period_id, start_date, end_date, description=None):
    """
    기수 기간 수정

    Raises:
        ValidationError: 시작일이 종료일보다 늦거나 같은 경우
        NotFoundError: 기수가 없는 경우
    """
    validate_period_range(start_date, end_date)

    row = fetch_one(conn, "SELECT * FROM periods WHERE id = %s", (period_id,))
    if not row:
        raise NotFoundError("해당 기수를 찾을 수 없습니다.", code='PERIOD_NOT_FOUND')

    cursor = conn.cursor()
    try:
        cursor.execute("""
            UPDATE periods
            SET start_date = %s, end_date = %s, description = COALESCE(%s, description)
            WHERE id = %s
        """, (start_date, end_date, description, period_id))
        conn.commit()
    except mysql.connector.Error as e:
        conn.rollback()
        raise BackendError(f"기수 수정에 실패했습니다: {e}", code='PERIOD_UPDATE_FAILED')
    finally:
        cursor.close()

    row.update({'start_date': start_date, 'end_date': end_date})
    if description is not None:
        row['description'] = description
    cache.invalidate_certifications(period_id=period_id)
    return Period.from_row(row)


def assign_user_tracks(conn, user_id, track_ids):
    """
    사용자 트랙 배정

    기존 등록은 모두 비활성화하고, 지정한 트랙만 활성화합니다.
    (등록 행은 삭제하지 않음)

    Args:
        user_id (str): 대상 사용자
        track_ids (list[str]): 배정할 트랙 ID 목록

    Returns:
        list[str]: 활성화된 트랙 ID
    """
    if not isinstance(track_ids, list):
        raise ValidationError("trackIds 는 배열이어야 합니다.", details={'field': 'trackIds'})
    for track_id in track_ids:
        ok, message = check_uuid(track_id)
        if not ok:
            raise ValidationError(message, details={'field': 'trackIds'})

    if not fetch_one(conn, "SELECT id FROM users WHERE id = %s", (user_id,)):
        raise NotFoundError("사용자를 찾을 수 없습니다.", code='USER_NOT_FOUND')

    unique_ids = list(dict.fromkeys(track_ids))
    cursor = conn.cursor()
    try:
        cursor.execute("UPDATE user_tracks SET is_active = 0 WHERE user_id = %s", (user_id,))
        if unique_ids:
            cursor.executemany("""
                INSERT INTO user_tracks (id, user_id, track_id, is_active, dropout_warnings)
                VALUES (%s, %s, %s, 1, 0)
                ON DUPLICATE KEY UPDATE is_active = 1
            """, [(str(uuid.uuid4()), user_id, track_id) for track_id in unique_ids])
        conn.commit()
    except mysql.connector.Error as e:
        conn.rollback()
        logger.error(f"Track assignment failed for {user_id}: {e}", exc_info=True)
        raise BackendError(f"트랙 배정에 실패했습니다: {e}", code='ASSIGN_FAILED')
    finally:
        cursor.close()

    cache.invalidate_certifications(user_id=user_id)
    return unique_ids


def admin_stats(conn, clock):
    """관리자 대시보드 통계"""
    users = fetch_one(conn, "SELECT COUNT(*) AS total FROM users WHERE is_active = 1")
    today = fetch_one(
        conn,
        "SELECT COUNT(*) AS total FROM certifications WHERE certification_date = %s",
        (clock.today(),)
    )
    return {
        'totalUsers': users['total'] if users else 0,
        'todayCertifications': today['total'] if today else 0,
        'dropoutCandidates': len(find_dropout_candidates(conn, clock)),
    }


def list_users_with_tracks(conn):
    """활성 사용자 목록 + 사용자별 활성 트랙"""
    users = fetch_all(conn, """
        SELECT id, discord_id, discord_username, discord_avatar_url, email, created_at
        FROM users
        WHERE is_active = 1
        ORDER BY discord_username
    """)
    enrollments = fetch_all(conn, """
        SELECT ut.user_id, ut.dropout_warnings, t.id AS track_id, t.name, t.type
        FROM user_tracks ut
        JOIN tracks t ON t.id = ut.track_id
        WHERE ut.is_active = 1
    """)

    by_user = {}
    for row in enrollments:
        by_user.setdefault(row['user_id'], []).append({
            'trackId': row['track_id'],
            'name': row['name'],
            'type': row['type'],
            'dropoutWarnings': row.get('dropout_warnings') or 0,
        })

    result = []
    for user in users:
        created = user.get('created_at')
        result.append({
            'id': user['id'],
            'discordId': user.get('discord_id'),
            'discordUsername': user.get('discord_username'),
            'discordAvatarUrl': user.get('discord_avatar_url'),
            'email': user.get('email'),
            'createdAt': created.isoformat() if created is not None else None,
            'tracks': by_user.get(user['id'], []),
        })
    return result


def warn_dropout_candidates(conn, clock):
    """
    탈락 후보 경고

    현재 탈락 후보의 dropout_warnings 를 1 늘리고 last_warning_at 을 기록합니다.

    Returns:
        list[dict]: 경고한 후보 목록
    """
    candidates = find_dropout_candidates(conn, clock)
    if not candidates:
        return []

    now = _utc_naive(clock)
    cursor = conn.cursor()
    try:
        cursor.executemany("""
            UPDATE user_tracks
            SET dropout_warnings = dropout_warnings + 1, last_warning_at = %s
            WHERE id = %s
        """, [(now, c['userTrackId']) for c in candidates])
        conn.commit()
    except mysql.connector.Error as e:
        conn.rollback()
        raise BackendError(f"탈락 경고 기록에 실패했습니다: {e}", code='WARN_FAILED')
    finally:
        cursor.close()

    for candidate in candidates:
        candidate['dropoutWarnings'] += 1
    cache.invalidate_pattern('tracking:*')
    return candidates


def get_page_contents(conn, page_path):
    """페이지 콘텐츠 조회"""
    if not page_path:
        raise ValidationError("pagePath 값이 필요합니다.", details={'field': 'pagePath'})
    rows = fetch_all(
        conn,
        "SELECT * FROM page_contents WHERE page_path = %s ORDER BY content_key",
        (page_path,)
    )
    return [PageContent.from_row(r) for r in rows]


def update_page_contents(conn, admin_id, contents, clock):
    """
    페이지 콘텐츠 수정 (여러 건을 한 트랜잭션으로)

    Args:
        contents (list[dict]): [{'id': ..., 'content_value': ...}, ...]

    Returns:
        int: 수정한 항목 수
    """
    if not isinstance(contents, list) or not contents:
        raise ValidationError("contents 는 비어있지 않은 배열이어야 합니다.", details={'field': 'contents'})

    values = []
    for item in contents:
        if not isinstance(item, dict) or not item.get('id') or 'content_value' not in item:
            raise ValidationError("각 항목에 id 와 content_value 가 필요합니다.", details={'field': 'contents'})
        values.append((item['content_value'], admin_id, _utc_naive(clock), item['id']))

    cursor = conn.cursor()
    try:
        cursor.executemany("""
            UPDATE page_contents
            SET content_value = %s, updated_by = %s, updated_at = %s
            WHERE id = %s
        """, values)
        conn.commit()
    except mysql.connector.Error as e:
        conn.rollback()
        raise BackendError(f"페이지 콘텐츠 수정에 실패했습니다: {e}", code='CONTENT_UPDATE_FAILED')
    finally:
        cursor.close()

    return len(values)
