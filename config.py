"""Flask 앱 설정"""
import os
from dotenv import load_dotenv

# .env 파일 로드
load_dotenv()


class Config:
    """기본 설정 클래스"""
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'dev-secret-key'
    DB_HOST = os.environ.get('DB_HOST', 'localhost')
    DB_PORT = int(os.environ.get('DB_PORT', 3306))
    DB_USER = os.environ.get('DB_USER', 'root')
    DB_PASSWORD = os.environ.get('DB_PASSWORD', '')
    DB_NAME = os.environ.get('DB_NAME', 'certdb')
    DB_POOL_SIZE = int(os.environ.get('DB_POOL_SIZE', 5))
    INIT_DB_POOL = True
    FLASK_ENV = os.environ.get('FLASK_ENV', 'production')
    DEBUG = (FLASK_ENV == 'development')
    TESTING = False

    # 인증 날짜 비교 기준 시간대 (KST)
    CERT_TIMEZONE = os.environ.get('CERT_TIMEZONE', 'Asia/Seoul')
    # 데모 모드: 오늘 날짜를 N일 이동 (0 = 실제 시간)
    DEMO_OFFSET_DAYS = int(os.environ.get('DEMO_OFFSET_DAYS', 0))

    # Redis 캐시 (비어 있으면 캐시 비활성화)
    REDIS_URL = os.environ.get('REDIS_URL', '')
    CACHE_TTL_DEFAULT = int(os.environ.get('CACHE_TTL_DEFAULT', 300))

    # OAuth 게이트웨이가 프로필 동기화 시 사용하는 토큰
    AUTH_SYNC_TOKEN = os.environ.get('AUTH_SYNC_TOKEN', '')

    LOG_DIR = os.environ.get('LOG_DIR', 'logs')

    @staticmethod
    def init_app(app):
        """앱 초기화 시 실행되는 설정"""
        pass


class DevelopmentConfig(Config):
    """개발 환경 설정"""
    DEBUG = True


class ProductionConfig(Config):
    """프로덕션 환경 설정"""
    DEBUG = False


class TestingConfig(Config):
    """테스트 환경 설정 (DB 풀/캐시/파일 로그 없음)"""
    TESTING = True
    INIT_DB_POOL = False
    REDIS_URL = ''
    DEMO_OFFSET_DAYS = 0
    AUTH_SYNC_TOKEN = 'test-sync-token'
    SECRET_KEY = 'test-secret-key'


# 환경별 설정 매핑
config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': ProductionConfig
}
