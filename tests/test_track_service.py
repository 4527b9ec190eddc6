"""트랙 조회 / 참여 등록 테스트"""
import pytest

from conftest import TRACK_ID, USER_ID, USER_TRACK_ID, make_conn
from services import track_service
from utils.errors import NotFoundError

TRACK_ROW = {'id': TRACK_ID, 'name': '숏폼', 'type': 'short-form', 'description': None, 'is_active': 1}


def test_list_tracks_with_participants():
    conn, _ = make_conn(fetchall=[[dict(TRACK_ROW, participant_count=3)]])

    tracks = track_service.list_tracks(conn, with_participants=True)

    assert tracks == [{
        'id': TRACK_ID, 'name': '숏폼', 'type': 'short-form',
        'description': None, 'is_active': True, 'participant_count': 3,
    }]


def test_get_track_missing():
    conn, _ = make_conn(fetchone=[None])
    with pytest.raises(NotFoundError) as exc_info:
        track_service.get_track(conn, TRACK_ID)
    assert exc_info.value.code == 'TRACK_NOT_FOUND'


class TestEnrollUser:

    def test_new_enrollment(self):
        conn, cursor = make_conn(fetchone=[TRACK_ROW, None])

        enrollment, created = track_service.enroll_user(conn, USER_ID, TRACK_ID)

        assert created is True
        assert enrollment.user_id == USER_ID
        sql, params = cursor.execute.call_args_list[-1].args
        assert sql.strip().startswith('INSERT INTO user_tracks')
        assert params[1:] == (USER_ID, TRACK_ID)
        conn.commit.assert_called_once()

    def test_already_active(self):
        existing = {'id': USER_TRACK_ID, 'user_id': USER_ID, 'track_id': TRACK_ID, 'is_active': 1}
        conn, _ = make_conn(fetchone=[TRACK_ROW, existing])

        enrollment, created = track_service.enroll_user(conn, USER_ID, TRACK_ID)

        assert created is False
        assert enrollment.id == USER_TRACK_ID
        conn.commit.assert_not_called()

    def test_reactivates_inactive_row(self):
        existing = {'id': USER_TRACK_ID, 'user_id': USER_ID, 'track_id': TRACK_ID, 'is_active': 0}
        conn, cursor = make_conn(fetchone=[TRACK_ROW, existing])

        enrollment, created = track_service.enroll_user(conn, USER_ID, TRACK_ID)

        assert created is False
        assert enrollment.is_active
        cursor.execute.assert_called_with(
            "UPDATE user_tracks SET is_active = 1 WHERE id = %s", (USER_TRACK_ID,)
        )
        conn.commit.assert_called_once()


def test_list_user_tracks_includes_track():
    conn, cursor = make_conn(fetchall=[[{
        'id': USER_TRACK_ID, 'user_id': USER_ID, 'track_id': TRACK_ID, 'is_active': 1,
        'dropout_warnings': 2, 'last_warning_at': None,
        'track_name': '숏폼', 'track_type': 'short-form',
        'track_description': '평일 매일 인증', 'track_is_active': 1,
    }]])

    enrollments = track_service.list_user_tracks(conn, USER_ID)

    assert enrollments == [{
        'id': USER_TRACK_ID, 'user_id': USER_ID, 'track_id': TRACK_ID, 'is_active': True,
        'dropout_warnings': 2, 'last_warning_at': None,
        'track': {'id': TRACK_ID, 'name': '숏폼', 'type': 'short-form',
                  'description': '평일 매일 인증', 'is_active': True},
    }]
    sql, params = cursor.execute.call_args.args
    assert 'ut.is_active = 1' in sql
    assert params == (USER_ID,)
