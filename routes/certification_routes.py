"""
사용자 라우트

로그인 사용자가 사용하는 API 엔드포인트
- /api/active-period: 활성 기수 조회
- /api/me, /api/me/tracks: 내 프로필 / 내 트랙
- /api/tracks: 트랙 목록 / 참여 등록
- /api/certifications: 인증 목록 / 인증 제출
- /api/certifications/next-date: 다음 인증일 안내
- /api/calendar-certifications: 달력 데이터
- /api/certifications/dashboard: 트랙별 통계
- /api/leaderboard: 인증 수 순위
- /api/users/<user_id>/stats: 사용자 통계
"""

from flask import Blueprint, current_app, request

from services import certification_service, track_service, tracking_service, user_service
from services.track_service import enroll_user, get_track, list_tracks
from utils import auth
from utils.api_response import success
from utils.auth import login_required, require_user
from utils.datetime_parser import get_clock
from utils.db import get_db_connection
from utils.errors import AuthError, ValidationError
from utils.logging_setup import log_api_call
from utils.validators import check_uuid, require_int, require_year_month

bp = Blueprint('certification', __name__, url_prefix='/api')


def _uuid_arg(name, required=False):
    value = request.args.get(name)
    if not value:
        if required:
            raise ValidationError(f"{name} 값이 필요합니다.", details={'field': name})
        return None
    ok, message = check_uuid(value)
    if not ok:
        raise ValidationError(message, details={'field': name})
    return value


def _target_user(requested, session_user):
    """
    조회/제출 대상 사용자 결정

    다른 사용자의 데이터는 관리자만 다룰 수 있습니다.
    """
    if not requested or requested == session_user:
        return session_user
    if not auth.is_admin(session_user):
        raise AuthError.forbidden("다른 사용자의 인증은 관리자만 다룰 수 있습니다.")
    return requested


def _list_target(requested, session_user):
    """
    목록 조회 대상 사용자

    관리자가 userId 를 생략하면 전체 사용자 (None), 그 외에는 _target_user 와 같습니다.
    """
    if not requested and auth.is_admin(session_user):
        return None
    return _target_user(requested, session_user)


@bp.route('/active-period', methods=['GET'])
def active_period():
    """활성 기수 조회 (없으면 data = null)"""
    conn = None
    try:
        conn = get_db_connection()
        period = certification_service.get_active_period(conn)
        return success(period.to_dict() if period else None)
    finally:
        if conn:
            conn.close()


@bp.route('/tracks', methods=['GET'])
def tracks():
    """활성 트랙 목록 (?withParticipants=true 면 참여자 수 포함)"""
    with_participants = request.args.get('withParticipants', '').lower() in ('1', 'true', 'yes')

    conn = None
    try:
        conn = get_db_connection()
        return success(list_tracks(conn, with_participants=with_participants))
    finally:
        if conn:
            conn.close()


@bp.route('/me', methods=['GET'])
@login_required
def me():
    """내 프로필 (관리자 여부 포함)"""
    user_id = require_user()

    conn = None
    try:
        conn = get_db_connection()
        profile = user_service.get_user_profile(conn, user_id)
    finally:
        if conn:
            conn.close()

    return success(profile.to_dict(), isAdmin=auth.is_admin(user_id))


@bp.route('/me/tracks', methods=['GET'])
@login_required
def my_tracks():
    """내 활성 트랙 등록 목록 (트랙 정보 포함)"""
    user_id = require_user()

    conn = None
    try:
        conn = get_db_connection()
        enrollments = track_service.list_user_tracks(conn, user_id)
        return success(enrollments, count=len(enrollments))
    finally:
        if conn:
            conn.close()


@bp.route('/tracks/<track_id>/enroll', methods=['POST'])
@login_required
def enroll(track_id):
    """트랙 참여 등록 (신규 201, 기존 200)"""
    user_id = require_user()
    ok, message = check_uuid(track_id)
    if not ok:
        raise ValidationError(message, details={'field': 'trackId'})

    log_api_call(current_app, f"/api/tracks/{track_id}/enroll", user_id)

    conn = None
    try:
        conn = get_db_connection()
        enrollment, created = enroll_user(conn, user_id, track_id)
        return success(enrollment.to_dict(), status=201 if created else 200, created=created)
    finally:
        if conn:
            conn.close()


@bp.route('/certifications', methods=['GET'])
@login_required
def list_certifications():
    """
    인증 목록 조회

    Query:
        userId (기본: 본인, 관리자는 전체), periodId, trackId, status, limit, offset
    """
    session_user = require_user()
    filters = {
        'user_id': _list_target(_uuid_arg('userId'), session_user),
        'period_id': _uuid_arg('periodId'),
        'track_id': _uuid_arg('trackId'),
        'status': request.args.get('status') or None,
    }
    limit = require_int(request.args, 'limit', minimum=1, maximum=500)
    offset = require_int(request.args, 'offset', default=0, minimum=0)

    conn = None
    try:
        conn = get_db_connection()
        records, total = certification_service.list_certifications(conn, filters, limit, offset)
        return success([r.to_dict() for r in records], count=total)
    finally:
        if conn:
            conn.close()


@bp.route('/certifications', methods=['POST'])
@login_required
def submit_certification():
    """
    인증 제출

    Body:
        {userId?, trackId, periodId, certificationDate, url?, notes?,
         idempotencyKey?, userTrackId?}

    Returns:
        201: 새로 저장 / 수정
        200: 같은 idempotencyKey 로 이미 처리됨 (alreadyApplied: true)
    """
    session_user = require_user()
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        raise ValidationError("요청 본문은 JSON 객체여야 합니다.")

    payload = dict(payload)
    payload['userId'] = _target_user(payload.get('userId'), session_user)

    log_api_call(current_app, "/api/certifications", session_user, {
        'trackId': payload.get('trackId'),
        'certificationDate': payload.get('certificationDate'),
        'idempotencyKey': payload.get('idempotencyKey'),
    })

    conn = None
    try:
        conn = get_db_connection()
        record, already_applied = certification_service.submit_certification(
            conn, payload, get_clock()
        )
    finally:
        if conn:
            conn.close()

    if already_applied:
        return success(record.to_dict(), status=200, alreadyApplied=True)
    return success(record.to_dict(), status=201, alreadyApplied=False)


@bp.route('/certifications/next-date', methods=['GET'])
@login_required
def next_date():
    """다음 인증일 안내 (?trackId=)"""
    user_id = require_user()
    track_id = _uuid_arg('trackId', required=True)

    conn = None
    try:
        conn = get_db_connection()
        track = get_track(conn, track_id)
        return success(certification_service.next_certification_info(conn, user_id, track, get_clock()))
    finally:
        if conn:
            conn.close()


@bp.route('/calendar-certifications', methods=['GET'])
@login_required
def calendar_certifications():
    """
    달력 데이터 (?trackId=&year=&month=&userId=)

    year/month 를 생략하면 오늘 기준 월
    """
    session_user = require_user()
    user_id = _target_user(_uuid_arg('userId'), session_user)
    track_id = _uuid_arg('trackId', required=True)

    clock = get_clock()
    year, month = require_year_month(request.args, clock.today())

    conn = None
    try:
        conn = get_db_connection()
        track = get_track(conn, track_id)
        return success(tracking_service.build_calendar(conn, user_id, track, year, month, clock))
    finally:
        if conn:
            conn.close()


@bp.route('/certifications/dashboard', methods=['GET'])
def dashboard():
    """트랙별 인증 통계"""
    conn = None
    try:
        conn = get_db_connection()
        return success(tracking_service.build_dashboard(conn))
    finally:
        if conn:
            conn.close()


@bp.route('/leaderboard', methods=['GET'])
def leaderboard():
    """인증 수 순위 (?trackId=&limit=)"""
    track_id = _uuid_arg('trackId')
    limit = require_int(request.args, 'limit', default=100, minimum=1, maximum=500)

    conn = None
    try:
        conn = get_db_connection()
        return success(tracking_service.leaderboard(conn, track_id, limit))
    finally:
        if conn:
            conn.close()


@bp.route('/users/<user_id>/stats', methods=['GET'])
@login_required
def user_stats(user_id):
    """사용자 트랙 통계 (?trackId=)"""
    session_user = require_user()
    ok, message = check_uuid(user_id)
    if not ok:
        raise ValidationError(message, details={'field': 'userId'})
    user_id = _target_user(user_id, session_user)
    track_id = _uuid_arg('trackId', required=True)

    conn = None
    try:
        conn = get_db_connection()
        track = get_track(conn, track_id)
        return success(tracking_service.user_stats(conn, user_id, track, get_clock()))
    finally:
        if conn:
            conn.close()
