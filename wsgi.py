"""
WSGI 진입점

gunicorn / PythonAnywhere 등 WSGI 서버에서 참조합니다.
로컬 개발에서는 app.py 를 직접 실행합니다.

환경 변수는 .env 또는 서버 설정에서 지정합니다.
    DB_HOST, DB_PORT, DB_USER, DB_PASSWORD, DB_NAME,
    SECRET_KEY, AUTH_SYNC_TOKEN, REDIS_URL, FLASK_ENV
"""

import os

from app import create_app

# WSGI 서버는 'application' 이름을 찾습니다
application = create_app(os.environ.get('FLASK_ENV', 'production'))
