"""
로그인 세션 라우트

OAuth 로그인은 외부 게이트웨이에서 처리합니다.
게이트웨이는 로그인 성공 후 AUTH_SYNC_TOKEN 으로 /auth/callback 을 호출해
Discord 프로필을 동기화하고, 서버는 세션에 user_id 를 저장합니다.

- /auth/callback: 프로필 동기화 + 세션 시작
- /auth/logout: 세션 종료
- /api/admin/check: 관리자 여부 확인
"""

import hmac
import uuid

import mysql.connector
from flask import Blueprint, current_app, request, session

from utils import auth
from utils.api_response import success
from utils.auth import login_required, require_user
from utils.db import fetch_one, get_db_connection
from utils.errors import AuthError, BackendError, ValidationError
from utils.logging_setup import log_api_call

bp = Blueprint('auth', __name__)


def _check_sync_token():
    expected = current_app.config.get('AUTH_SYNC_TOKEN')
    header = request.headers.get('Authorization', '')
    token = header[7:] if header.startswith('Bearer ') else ''
    if not expected or not token or not hmac.compare_digest(token, expected):
        raise AuthError("유효하지 않은 동기화 토큰입니다.")


def _profile_from_body(data):
    """
    게이트웨이 요청 본문에서 프로필 추출

    Returns:
        dict: discord_id, discord_username, discord_avatar_url,
              discord_global_name, email
    """
    discord_id = str(data.get('discordId') or '').strip()
    if not discord_id:
        raise ValidationError("discordId 값이 필요합니다.", details={'field': 'discordId'})

    username = (data.get('discordUsername') or '').strip() or 'Unknown User'
    return {
        'discord_id': discord_id,
        'discord_username': username,
        'discord_avatar_url': data.get('discordAvatarUrl'),
        'discord_global_name': data.get('discordGlobalName'),
        'email': data.get('email'),
    }


def sync_user_profile(conn, profile):
    """
    Discord 프로필 upsert (discord_id 유니크)

    Returns:
        dict: 저장된 users 행
    """
    cursor = conn.cursor()
    try:
        cursor.execute("""
            INSERT INTO users
                (id, discord_id, discord_username, discord_avatar_url,
                 discord_global_name, email, is_active)
            VALUES (%s, %s, %s, %s, %s, %s, 1)
            ON DUPLICATE KEY UPDATE
                discord_username = VALUES(discord_username),
                discord_avatar_url = VALUES(discord_avatar_url),
                discord_global_name = VALUES(discord_global_name),
                email = COALESCE(VALUES(email), email)
        """, (
            str(uuid.uuid4()),
            profile['discord_id'],
            profile['discord_username'],
            profile['discord_avatar_url'],
            profile['discord_global_name'],
            profile['email'],
        ))
        conn.commit()
    except mysql.connector.Error as e:
        conn.rollback()
        raise BackendError(f"프로필 동기화에 실패했습니다: {e}", code='PROFILE_SYNC_FAILED')
    finally:
        cursor.close()

    return fetch_one(conn, "SELECT * FROM users WHERE discord_id = %s", (profile['discord_id'],))


@bp.route('/auth/callback', methods=['POST'])
def callback():
    """
    프로필 동기화 + 세션 시작

    Headers:
        Authorization: Bearer <AUTH_SYNC_TOKEN>

    Body:
        {discordId, discordUsername, discordAvatarUrl?, discordGlobalName?, email?}
    """
    _check_sync_token()
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("요청 본문은 JSON 객체여야 합니다.")
    profile = _profile_from_body(data)

    conn = None
    try:
        conn = get_db_connection()
        user = sync_user_profile(conn, profile)
    finally:
        if conn:
            conn.close()

    if not user:
        raise BackendError("동기화된 사용자를 조회할 수 없습니다.", code='PROFILE_SYNC_FAILED')

    session.clear()
    session['user_id'] = user['id']
    log_api_call(current_app, "/auth/callback", user['id'], {'discordId': profile['discord_id']})

    return success({
        'userId': user['id'],
        'discordUsername': user.get('discord_username'),
        'isAdmin': auth.is_admin(user['id']),
    })


@bp.route('/auth/logout', methods=['POST'])
def logout():
    """세션 종료"""
    session.clear()
    return success(None)


@bp.route('/api/admin/check', methods=['GET'])
@login_required
def admin_check():
    """로그인 사용자의 관리자 여부"""
    user_id = require_user()
    info = auth.get_admin_info(user_id) if auth.is_admin(user_id) else None
    return success({
        'userId': user_id,
        'isAdmin': info is not None,
        'role': info.get('role') if info else None,
    })
