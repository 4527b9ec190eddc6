"""
사용자 / 관리자 인증 로직

로그인(OAuth)은 외부에서 처리하고, 이 서버는 프로필 동기화 시
세션에 저장된 user_id 만 사용합니다.
관리자 여부는 admin_users 테이블로 확인합니다.
"""

from functools import wraps

from flask import session

from utils.db import get_db_connection
from utils.errors import AuthError


def is_admin(user_id):
    """
    관리자 여부 확인

    Args:
        user_id (str): users.id (UUID)

    Returns:
        bool: 활성 관리자면 True, 아니면 False

    Example:
        >>> is_admin("8c8f5d9e-1b1a-4c1e-9a55-1f0a2b3c4d5e")
        True
    """
    if not user_id:
        return False

    conn = get_db_connection()
    cursor = conn.cursor()

    try:
        cursor.execute(
            "SELECT 1 FROM admin_users WHERE user_id = %s AND is_active = 1",
            (user_id,)
        )
        result = cursor.fetchone()
        return bool(result)
    finally:
        cursor.close()
        conn.close()


def get_admin_info(user_id):
    """
    관리자 정보 조회

    Returns:
        dict: {'user_id', 'role', 'discord_username'}
        None: 관리자가 아닌 경우
    """
    conn = get_db_connection()
    cursor = conn.cursor(dictionary=True)

    try:
        cursor.execute("""
            SELECT a.user_id, a.role, u.discord_username
            FROM admin_users a
            JOIN users u ON a.user_id = u.id
            WHERE a.user_id = %s AND a.is_active = 1
        """, (user_id,))
        return cursor.fetchone()
    finally:
        cursor.close()
        conn.close()


def current_user_id():
    """세션에 저장된 로그인 사용자 ID (없으면 None)"""
    return session.get('user_id')


def require_user():
    """로그인 사용자 ID 반환, 없으면 AuthError(401)"""
    user_id = current_user_id()
    if not user_id:
        raise AuthError("인증이 필요합니다. 로그인 후 다시 시도해주세요.")
    return user_id


def login_required(view):
    """로그인 사용자만 접근 가능한 라우트 데코레이터"""
    @wraps(view)
    def wrapped(*args, **kwargs):
        require_user()
        return view(*args, **kwargs)
    return wrapped


def admin_required(view):
    """관리자만 접근 가능한 라우트 데코레이터 (401 -> 403 순서로 확인)"""
    @wraps(view)
    def wrapped(*args, **kwargs):
        user_id = require_user()
        if not is_admin(user_id):
            raise AuthError.forbidden()
        return view(*args, **kwargs)
    return wrapped
