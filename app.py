"""
Flask 메인 애플리케이션

챌린지 인증 관리 서버의 메인 서버입니다.
"""

from flask import Flask
import mysql.connector
from werkzeug.exceptions import HTTPException
from config import config
from utils.api_response import error, from_exception
from utils.datetime_parser import build_clock
from utils.db import create_connection_pool
from utils.errors import AppError
from utils.logging_setup import setup_logging
import utils.db as db_module
import os


def create_app(config_name=None):
    """
    Flask 앱 팩토리

    Args:
        config_name (str): 설정 이름 ('development', 'production', 'testing')

    Returns:
        Flask: 설정된 Flask 앱 객체
    """
    app = Flask(__name__)

    # 환경 설정 로드
    if config_name is None:
        config_name = os.environ.get('FLASK_ENV', 'development')

    # 설정 적용
    app.config.from_object(config[config_name])
    config[config_name].init_app(app)

    # 로깅 설정
    setup_logging(app)

    # Connection Pool 초기화 (테스트에서는 생략)
    if app.config.get('INIT_DB_POOL'):
        try:
            db_module.connection_pool = create_connection_pool(app.config)
            app.logger.info("✅ MySQL Connection Pool initialized")
        except mysql.connector.Error as e:
            app.logger.error(f"❌ Failed to initialize Connection Pool: {e}")
            raise

    # 서버 시계 (데모 모드면 날짜 이동)
    app.extensions['clock'] = build_clock(app.config)
    if app.config.get('DEMO_OFFSET_DAYS'):
        app.logger.warning(f"⚠️ Demo mode: today shifted by {app.config['DEMO_OFFSET_DAYS']} days")

    # 라우트 등록
    from routes import admin_routes, auth_routes, certification_routes

    app.register_blueprint(auth_routes.bp)
    app.register_blueprint(certification_routes.bp)
    app.register_blueprint(admin_routes.bp)

    app.logger.info("✅ All routes registered")

    # 헬스 체크 엔드포인트
    @app.route('/health')
    def health_check():
        """서버 상태 확인"""
        return {
            "status": "healthy",
            "service": "challenge-certification-server",
            "version": "1.0.0"
        }, 200

    # 에러 핸들러
    @app.errorhandler(AppError)
    def handle_app_error(e):
        """검증/권한/조회 실패 등 예상된 에러"""
        if e.status >= 500:
            app.logger.error(f"{e.code}: {e.message}")
        else:
            app.logger.warning(f"{e.code}: {e.message}")
        return from_exception(e)

    @app.errorhandler(mysql.connector.Error)
    def handle_db_error(e):
        """서비스에서 처리되지 않은 DB 에러"""
        app.logger.error(f"Database error: {str(e)}", exc_info=True)
        return error(f"데이터베이스 오류: {e}", code='BACKEND_ERROR', status=500)

    @app.errorhandler(HTTPException)
    def handle_http_error(e):
        """404, 405 등 Flask/Werkzeug HTTP 에러"""
        code = e.name.upper().replace(' ', '_')
        return error(e.description, code=code, status=e.code)

    @app.errorhandler(Exception)
    def handle_error(e):
        """
        전역 에러 핸들러

        모든 예외를 로그에 기록하고
        사용자에게는 통일된 에러 메시지를 반환합니다.
        """
        app.logger.error(f"Unhandled exception: {str(e)}", exc_info=True)
        return error("서버 에러가 발생했습니다. 잠시 후 다시 시도해주세요.",
                     code='INTERNAL_ERROR', status=500)

    return app


if __name__ == '__main__':
    # 로컬 개발 서버 실행 (개발 전용)
    # 프로덕션에서는 WSGI 서버 사용
    app = create_app()
    app.run(host='0.0.0.0', port=5000, debug=True)
