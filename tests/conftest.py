"""
Pytest configuration and fixtures

DB 는 MagicMock 연결로 대신합니다.
fetch_one / fetch_all 은 호출마다 새 cursor 를 열기 때문에
cursor 의 fetchone / fetchall 결과를 호출 순서대로 지정하면 됩니다.
"""
from datetime import date
from unittest.mock import MagicMock

import pytest

from app import create_app
from utils import cache
from utils.datetime_parser import FixedClock

TODAY = date(2025, 1, 15)  # 수요일

USER_ID = '11111111-1111-4111-8111-111111111111'
OTHER_USER_ID = '22222222-2222-4222-8222-222222222222'
TRACK_ID = '33333333-3333-4333-8333-333333333333'
PERIOD_ID = '44444444-4444-4444-8444-444444444444'
USER_TRACK_ID = '55555555-5555-4555-8555-555555555555'


@pytest.fixture
def clock():
    return FixedClock(TODAY)


@pytest.fixture
def app(clock):
    cache.reset_client()
    app = create_app('testing')
    app.extensions['clock'] = clock
    yield app
    cache.reset_client()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def login(client):
    """세션에 user_id 저장"""
    def _login(user_id=USER_ID):
        with client.session_transaction() as sess:
            sess['user_id'] = user_id
        return user_id
    return _login


def make_conn(fetchone=None, fetchall=None):
    """
    MagicMock DB 연결 생성

    Args:
        fetchone (list): cursor.fetchone() 이 순서대로 반환할 값
        fetchall (list): cursor.fetchall() 이 순서대로 반환할 값

    Returns:
        tuple: (conn, cursor)
    """
    cursor = MagicMock()
    cursor.fetchone.side_effect = list(fetchone or [])
    cursor.fetchall.side_effect = list(fetchall or [])
    cursor.rowcount = 0

    conn = MagicMock()
    conn.cursor.return_value = cursor
    return conn, cursor


@pytest.fixture
def db(monkeypatch):
    """
    라우트 모듈의 get_db_connection 을 MagicMock 연결로 교체

    Returns:
        MagicMock: 라우트가 받게 될 연결
    """
    conn, _ = make_conn()
    for module in ('routes.certification_routes', 'routes.admin_routes', 'routes.auth_routes'):
        monkeypatch.setattr(f"{module}.get_db_connection", lambda: conn)
    return conn


@pytest.fixture
def as_admin(monkeypatch):
    """관리자 여부 조회 결과 고정"""
    def _set(value=True):
        monkeypatch.setattr('utils.auth.is_admin', lambda user_id: value)
    return _set
