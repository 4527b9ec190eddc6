"""
로그 로테이션 및 레벨 설정

이 모듈은 Flask 앱의 로깅을 설정하며,
개발/프로덕션 환경에 따라 자동으로 로그 레벨을 전환합니다.
"""

import os
import logging
from logging.handlers import RotatingFileHandler


def setup_logging(app):
    """
    Flask 앱 로깅 설정

    Args:
        app (Flask): Flask 앱 객체

    Note:
        - 개발 환경 (DEBUG=True): DEBUG 레벨
        - 프로덕션 환경 (그 외): INFO 레벨
        - 로그 로테이션: 10MB × 5개 백업 (LOG_DIR/app.log)
        - 테스트 환경: 파일 핸들러 없음
        - 감사 로그: INFO 레벨 (인증 제출, 관리자 리셋/삭제 기록)

    Example:
        >>> from flask import Flask
        >>> app = Flask(__name__)
        >>> setup_logging(app)
        >>> app.logger.info("Certification submitted")  # INFO 레벨 기록
    """
    # 환경 설정으로 로그 레벨 자동 전환
    if app.config.get('DEBUG'):
        log_level = logging.DEBUG
        app.logger.info("🔧 Development mode: DEBUG logging enabled")
    else:
        log_level = logging.INFO
        app.logger.info("🚀 Production mode: INFO logging enabled")

    app.logger.setLevel(log_level)

    if app.config.get('TESTING'):
        return

    log_dir = app.config.get('LOG_DIR', 'logs')
    if not os.path.exists(log_dir):
        os.makedirs(log_dir)
    log_file = os.path.join(log_dir, 'app.log')

    # 10MB 초과 시 자동으로 app.log.1, app.log.2... 생성
    file_handler = RotatingFileHandler(
        log_file,
        maxBytes=10 * 1024 * 1024,  # 10MB
        backupCount=5,              # 최대 5개 백업 파일
        encoding='utf-8'
    )

    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    file_handler.setFormatter(formatter)
    file_handler.setLevel(log_level)

    app.logger.addHandler(file_handler)

    # 시작 메시지
    app.logger.info('=' * 50)
    app.logger.info('Certification Server Starting')
    app.logger.info(f'Log level: {logging.getLevelName(log_level)}')
    app.logger.info(f'Log file: {log_file}')
    app.logger.info('=' * 50)


def log_api_call(app, endpoint, user_id, params=None):
    """
    API 호출 로그 기록 (감사 로그)

    Args:
        app (Flask): Flask 앱 객체
        endpoint (str): API 엔드포인트 (예: "/api/certifications")
        user_id (str): 사용자 ID
        params (dict, optional): 추가 파라미터

    Example:
        >>> log_api_call(app, "/api/certifications", "user123", {"trackId": "..."})
        # 로그: INFO - API Call: /api/certifications | User: user123 | Params: {...}
    """
    log_msg = f"API Call: {endpoint} | User: {user_id}"
    if params:
        log_msg += f" | Params: {params}"
    app.logger.info(log_msg)


def log_admin_action(app, action, admin_id, details=None):
    """
    관리자 액션 로그 기록

    Args:
        app (Flask): Flask 앱 객체
        action (str): 액션 종류 (예: "RESET_CERTIFICATIONS")
        admin_id (str): 관리자 ID
        details (dict, optional): 상세 정보

    Example:
        >>> log_admin_action(app, "BULK_DELETE", "admin123", {"beforeDate": "2025-01-01"})
        # 로그: INFO - Admin Action: BULK_DELETE | Admin: admin123 | Details: {...}
    """
    log_msg = f"Admin Action: {action} | Admin: {admin_id}"
    if details:
        log_msg += f" | Details: {details}"
    app.logger.info(log_msg)
