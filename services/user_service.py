"""
사용자 프로필 조회 서비스
"""

from models import User
from utils.db import fetch_one
from utils.errors import NotFoundError


def get_user_profile(conn, user_id):
    """
    사용자 프로필 조회

    Raises:
        NotFoundError: 프로필이 없는 경우 (USER_NOT_FOUND)
    """
    row = fetch_one(conn, "SELECT * FROM users WHERE id = %s", (user_id,))
    if not row:
        raise NotFoundError("사용자 프로필을 찾을 수 없습니다.", code='USER_NOT_FOUND')
    return User.from_row(row)
