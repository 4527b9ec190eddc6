"""
트랙 조회 / 참여 등록 서비스
"""

import uuid

from models import Track, UserTrack
from utils.db import fetch_all, fetch_one
from utils.errors import NotFoundError


def list_tracks(conn, with_participants=False):
    """
    활성 트랙 목록

    Args:
        with_participants (bool): 트랙별 활성 참여자 수 포함 여부

    Returns:
        list[dict]
    """
    if not with_participants:
        rows = fetch_all(conn, "SELECT * FROM tracks WHERE is_active = 1 ORDER BY name")
        return [Track.from_row(r).to_dict() for r in rows]

    rows = fetch_all(conn, """
        SELECT t.*, COUNT(ut.id) AS participant_count
        FROM tracks t
        LEFT JOIN user_tracks ut ON ut.track_id = t.id AND ut.is_active = 1
        WHERE t.is_active = 1
        GROUP BY t.id
        ORDER BY t.name
    """)
    result = []
    for row in rows:
        item = Track.from_row(row).to_dict()
        item['participant_count'] = row.get('participant_count') or 0
        result.append(item)
    return result


def get_track(conn, track_id):
    """
    트랙 조회

    Raises:
        NotFoundError: 트랙이 없는 경우
    """
    row = fetch_one(conn, "SELECT * FROM tracks WHERE id = %s", (track_id,))
    if not row:
        raise NotFoundError("트랙을 찾을 수 없습니다.", code='TRACK_NOT_FOUND')
    return Track.from_row(row)


def enroll_user(conn, user_id, track_id):
    """
    트랙 참여 등록

    이미 등록되어 있으면 그대로 반환하고,
    비활성 상태면 다시 활성화합니다.

    Returns:
        tuple: (UserTrack, created: bool)
    """
    get_track(conn, track_id)

    existing = fetch_one(conn, """
        SELECT * FROM user_tracks WHERE user_id = %s AND track_id = %s
    """, (user_id, track_id))

    cursor = conn.cursor()
    try:
        if existing:
            if existing.get('is_active'):
                return UserTrack.from_row(existing), False

            cursor.execute(
                "UPDATE user_tracks SET is_active = 1 WHERE id = %s",
                (existing['id'],)
            )
            conn.commit()
            existing['is_active'] = 1
            return UserTrack.from_row(existing), False

        enrollment_id = str(uuid.uuid4())
        cursor.execute("""
            INSERT INTO user_tracks (id, user_id, track_id, is_active, dropout_warnings)
            VALUES (%s, %s, %s, 1, 0)
        """, (enrollment_id, user_id, track_id))
        conn.commit()
    finally:
        cursor.close()

    return UserTrack(enrollment_id, user_id, track_id), True


def list_user_tracks(conn, user_id):
    """
    사용자의 활성 트랙 등록 목록 (트랙 정보 포함)

    Returns:
        list[dict]: UserTrack.to_dict() + {'track': Track.to_dict()}
    """
    rows = fetch_all(conn, """
        SELECT ut.id, ut.user_id, ut.track_id, ut.is_active,
               ut.dropout_warnings, ut.last_warning_at,
               t.name AS track_name, t.type AS track_type,
               t.description AS track_description, t.is_active AS track_is_active
        FROM user_tracks ut
        JOIN tracks t ON t.id = ut.track_id
        WHERE ut.user_id = %s AND ut.is_active = 1
        ORDER BY t.name
    """, (user_id,))

    result = []
    for row in rows:
        item = UserTrack.from_row(row).to_dict()
        item['track'] = Track(
            row['track_id'],
            row['track_name'],
            row['track_type'],
            row.get('track_description'),
            bool(row.get('track_is_active', True)),
        ).to_dict()
        result.append(item)
    return result
