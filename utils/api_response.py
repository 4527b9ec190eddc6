"""
JSON 응답 템플릿 함수

모든 API 가 같은 응답 구조를 쓰도록
반복되는 JSON 구조를 템플릿 함수로 묶었습니다.

성공: {"ok": true, "data": ...}
실패: {"ok": false, "code": "...", "error": "..."}
"""

from flask import jsonify


def success(data=None, status=200, **extra):
    """
    성공 응답 생성

    Args:
        data: 응답 데이터 (dict, list, None)
        status (int): HTTP 상태 코드
        **extra: 최상위에 함께 담을 추가 필드 (예: count, alreadyApplied)

    Returns:
        tuple: (Response, status)

    Example:
        >>> success({"id": "..."}, alreadyApplied=True)
        ({"ok": true, "data": {"id": "..."}, "alreadyApplied": true}, 200)
    """
    body = {"ok": True, "data": data}
    body.update(extra)
    return jsonify(body), status


def error(message, code='INTERNAL_ERROR', status=500, details=None):
    """
    실패 응답 생성

    Args:
        message (str): 에러 메시지
        code (str): 고정 에러 코드 (VALIDATION_ERROR, FORBIDDEN ...)
        status (int): HTTP 상태 코드
        details (dict, optional): 추가 정보

    Returns:
        tuple: (Response, status)
    """
    body = {"ok": False, "code": code, "error": message}
    if details:
        body["details"] = details
    return jsonify(body), status


def from_exception(exc):
    """AppError 를 실패 응답으로 변환"""
    return error(exc.message, code=exc.code, status=exc.status, details=exc.details)
