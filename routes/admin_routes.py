"""
관리자 라우트

관리자 전용 API 엔드포인트 (/api/admin)
- /stats: 관리자 통계
- /users: 사용자 목록 + 트랙
- /users/<user_id>/tracks: 트랙 배정
- /certification-tracking: 트랙별 인증 현황표
- /certification-feed: 빌더/세일즈 트랙 인증 피드
- /dropout-candidates: 탈락 후보 조회 / 경고
- /certifications/delete: 인증 개별 삭제 (백업 후)
- /certifications/bulk-delete: 날짜 이전 인증 일괄 삭제 (백업 후)
- /certifications/reset: 인증 리셋 + 다음 기수 생성
- /periods/update: 기수 기간 수정
- /page-contents: 페이지 편집 콘텐츠 (조회는 공개)
"""

from flask import Blueprint, current_app, request

from services import admin_service, tracking_service
from services.tracking_service import build_tracking, find_dropout_candidates
from utils.api_response import success
from utils.auth import admin_required, require_user
from utils.datetime_parser import get_clock
from utils.db import get_db_connection
from utils.errors import ValidationError
from utils.logging_setup import log_admin_action
from utils.validators import optional_text, require_date, require_uuid, require_year_month

bp = Blueprint('admin', __name__, url_prefix='/api/admin')


def _json_body():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("요청 본문은 JSON 객체여야 합니다.")
    return data


@bp.route('/stats', methods=['GET'])
@admin_required
def stats():
    """관리자 통계 (활성 사용자 수, 오늘 인증 수, 탈락 후보 수)"""
    conn = None
    try:
        conn = get_db_connection()
        return success(admin_service.admin_stats(conn, get_clock()))
    finally:
        if conn:
            conn.close()


@bp.route('/users', methods=['GET'])
@admin_required
def users():
    """사용자 목록 + 사용자별 활성 트랙"""
    conn = None
    try:
        conn = get_db_connection()
        return success(admin_service.list_users_with_tracks(conn))
    finally:
        if conn:
            conn.close()


@bp.route('/users/<user_id>/tracks', methods=['POST'])
@admin_required
def assign_tracks(user_id):
    """
    사용자 트랙 배정

    Body:
        {"trackIds": ["uuid", ...]}
    """
    admin_id = require_user()
    require_uuid({'userId': user_id}, 'userId')
    data = _json_body()

    conn = None
    try:
        conn = get_db_connection()
        track_ids = admin_service.assign_user_tracks(conn, user_id, data.get('trackIds'))
    finally:
        if conn:
            conn.close()

    log_admin_action(current_app, "ASSIGN_TRACKS", admin_id, {'userId': user_id, 'trackIds': track_ids})
    return success({'userId': user_id, 'trackIds': track_ids})


@bp.route('/certification-tracking', methods=['GET'])
@admin_required
def certification_tracking():
    """
    트랙별 인증 현황표 (?year=&month=)

    생략하면 오늘 기준 월
    """
    clock = get_clock()
    year, month = require_year_month(request.args, clock.today())

    conn = None
    try:
        conn = get_db_connection()
        return success(build_tracking(conn, year, month, clock), year=year, month=month)
    finally:
        if conn:
            conn.close()


@bp.route('/certification-feed', methods=['GET'])
@admin_required
def certification_feed():
    """
    빌더/세일즈 트랙 인증 피드 (?trackType=builder|sales&periodId=)
    """
    track_type = request.args.get('trackType', '')
    period_id = require_uuid(request.args, 'periodId', required=False)

    conn = None
    try:
        conn = get_db_connection()
        items = tracking_service.certification_feed(conn, track_type, period_id)
        return success(items, count=len(items))
    finally:
        if conn:
            conn.close()


@bp.route('/dropout-candidates', methods=['GET'])
@admin_required
def dropout_candidates():
    """탈락 후보 목록"""
    conn = None
    try:
        conn = get_db_connection()
        candidates = find_dropout_candidates(conn, get_clock())
        return success(candidates, count=len(candidates))
    finally:
        if conn:
            conn.close()


@bp.route('/dropout-candidates/warn', methods=['POST'])
@admin_required
def warn_dropout_candidates():
    """탈락 후보 경고 횟수 증가"""
    admin_id = require_user()

    conn = None
    try:
        conn = get_db_connection()
        warned = admin_service.warn_dropout_candidates(conn, get_clock())
    finally:
        if conn:
            conn.close()

    log_admin_action(current_app, "WARN_DROPOUT", admin_id, {'count': len(warned)})
    return success(warned, count=len(warned))


@bp.route('/certifications/delete', methods=['POST'])
@admin_required
def delete_certifications():
    """
    인증 개별 삭제 (백업 후 삭제)

    Body:
        {"certificationId": "uuid"}
        또는 {"date": "YYYY-MM-DD", "userId"?: "uuid", "trackId"?: "uuid"}
    """
    admin_id = require_user()
    data = _json_body()
    certification_id = require_uuid(data, 'certificationId', required=False)
    user_id = require_uuid(data, 'userId', required=False)
    track_id = require_uuid(data, 'trackId', required=False)
    on_date = require_date(data, 'date', required=False)
    reason = optional_text(data, 'reason')

    conn = None
    try:
        conn = get_db_connection()
        result = admin_service.delete_certifications(
            conn, admin_id, get_clock(),
            certification_id=certification_id,
            user_id=user_id,
            track_id=track_id,
            on_date=on_date,
            reason=reason,
        )
    finally:
        if conn:
            conn.close()

    log_admin_action(current_app, "DELETE_CERTIFICATIONS", admin_id, {
        'certificationId': certification_id, 'date': data.get('date'), 'deleted': result['deleted']
    })
    return success(result)


@bp.route('/certifications/bulk-delete', methods=['POST'])
@admin_required
def bulk_delete():
    """
    날짜 이전 인증 일괄 삭제 (백업 후 삭제)

    Body:
        {"beforeDate": "YYYY-MM-DD", "reason"?: "..."}
    """
    admin_id = require_user()
    data = _json_body()
    before_date = require_date(data, 'beforeDate')
    reason = optional_text(data, 'reason')

    conn = None
    try:
        conn = get_db_connection()
        result = admin_service.bulk_delete_before(conn, admin_id, before_date, get_clock(), reason)
    finally:
        if conn:
            conn.close()

    log_admin_action(current_app, "BULK_DELETE", admin_id, {
        'beforeDate': before_date.isoformat(), 'deleted': result['deleted']
    })
    return success(result)


@bp.route('/certifications/reset', methods=['POST'])
@admin_required
def reset():
    """
    인증 리셋 + 다음 기수 생성

    Body:
        {"beforeDate", "nextPeriodStart", "nextPeriodEnd" (YYYY-MM-DD),
         "reason"?, "trackId"?}
    """
    admin_id = require_user()
    data = _json_body()
    before_date = require_date(data, 'beforeDate')
    next_start = require_date(data, 'nextPeriodStart')
    next_end = require_date(data, 'nextPeriodEnd')
    track_id = require_uuid(data, 'trackId', required=False)
    reason = optional_text(data, 'reason')

    conn = None
    try:
        conn = get_db_connection()
        result = admin_service.reset_certifications(
            conn, admin_id, before_date, next_start, next_end, get_clock(),
            reason=reason, track_id=track_id,
        )
    finally:
        if conn:
            conn.close()

    log_admin_action(current_app, "RESET_CERTIFICATIONS", admin_id, {
        'beforeDate': before_date.isoformat(),
        'trackId': track_id,
        'backedUp': result['backedUp'],
        'newTerm': result['newPeriod']['term_number'],
    })
    return success(result)


@bp.route('/periods/update', methods=['PUT'])
@admin_required
def update_period():
    """
    기수 기간 수정

    Body:
        {"periodId", "startDate", "endDate", "description"?}
    """
    admin_id = require_user()
    data = _json_body()
    period_id = require_uuid(data, 'periodId')
    start_date = require_date(data, 'startDate')
    end_date = require_date(data, 'endDate')
    description = optional_text(data, 'description')

    conn = None
    try:
        conn = get_db_connection()
        period = admin_service.update_period(conn, period_id, start_date, end_date, description)
    finally:
        if conn:
            conn.close()

    log_admin_action(current_app, "UPDATE_PERIOD", admin_id, {
        'periodId': period_id, 'startDate': start_date.isoformat(), 'endDate': end_date.isoformat()
    })
    return success(period.to_dict())


@bp.route('/page-contents', methods=['GET'])
def page_contents():
    """페이지 콘텐츠 조회 (?pagePath=)"""
    conn = None
    try:
        conn = get_db_connection()
        contents = admin_service.get_page_contents(conn, request.args.get('pagePath'))
        return success([c.to_dict() for c in contents])
    finally:
        if conn:
            conn.close()


@bp.route('/page-contents', methods=['POST'])
@admin_required
def update_page_contents():
    """
    페이지 콘텐츠 수정

    Body:
        {"contents": [{"id": "...", "content_value": "..."}, ...]}
    """
    admin_id = require_user()
    data = _json_body()

    conn = None
    try:
        conn = get_db_connection()
        updated = admin_service.update_page_contents(conn, admin_id, data.get('contents'), get_clock())
    finally:
        if conn:
            conn.close()

    log_admin_action(current_app, "UPDATE_PAGE_CONTENTS", admin_id, {'count': updated})
    return success({'updated': updated})
