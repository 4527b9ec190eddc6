"""
MySQL Connection Pool 관리

이 모듈은 MySQL 연결 풀을 생성하고,
연결 풀 부족 시 대기+재시도 로직을 제공합니다.
"""

import logging
import time

import mysql.connector
from mysql.connector import pooling
from mysql.connector.errors import PoolError

logger = logging.getLogger(__name__)


def create_connection_pool(app_config):
    """
    MySQL Connection Pool 생성

    Args:
        app_config (dict): Flask app.config (DB_HOST, DB_PORT, DB_USER ...)

    Returns:
        MySQLConnectionPool: mysql-connector-python 연결 풀 객체

    Raises:
        mysql.connector.Error: DB 연결 실패 시

    Note:
        - pool_reset_session=True: 연결 재사용 시 세션 초기화
        - autocommit=False: 트랜잭션 명시적 제어 (리셋/삭제는 한 트랜잭션)
    """
    try:
        pool = pooling.MySQLConnectionPool(
            pool_name="certification_pool",
            pool_size=app_config.get('DB_POOL_SIZE', 5),
            pool_reset_session=True,
            host=app_config.get('DB_HOST', 'localhost'),
            port=int(app_config.get('DB_PORT', 3306)),
            user=app_config.get('DB_USER', 'root'),
            password=app_config.get('DB_PASSWORD', ''),
            database=app_config.get('DB_NAME', 'certdb'),
            autocommit=False,  # 트랜잭션 수동 제어
            get_warnings=True,
            charset='utf8mb4',
            collation='utf8mb4_unicode_ci'
        )
        return pool
    except mysql.connector.Error as err:
        logger.error(f"❌ MySQL Connection Pool 생성 실패: {err}")
        raise


# 글로벌 연결 풀 객체 (app.py에서 초기화)
connection_pool = None


def get_db_connection(max_retries=3, retry_delay=0.1):
    """
    Connection Pool에서 연결 가져오기 (대기+재시도 로직)

    Args:
        max_retries (int): 최대 재시도 횟수 (기본 3회)
        retry_delay (float): 재시도 대기 시간(초) (기본 0.1초)

    Returns:
        mysql.connector.connection.MySQLConnection: DB 연결 객체

    Raises:
        PoolError: 재시도 후에도 연결 풀 부족 시

    Example:
        >>> conn = get_db_connection()
        >>> cursor = conn.cursor(dictionary=True)
        >>> cursor.execute("SELECT * FROM periods WHERE is_active = 1")
        >>> conn.close()
    """
    if connection_pool is None:
        raise RuntimeError("Connection pool not initialized. Call create_connection_pool() first.")

    for attempt in range(max_retries):
        try:
            return connection_pool.get_connection()
        except PoolError as e:
            if attempt < max_retries - 1:
                # 연결 풀 부족, 대기 후 재시도
                time.sleep(retry_delay)
            else:
                raise PoolError(
                    f"Connection pool exhausted after {max_retries} retries. "
                    f"Error: {str(e)}"
                )


def fetch_one(conn, sql, params=()):
    """단일 행 조회 (dict 또는 None)"""
    cursor = conn.cursor(dictionary=True)
    try:
        cursor.execute(sql, params)
        return cursor.fetchone()
    finally:
        cursor.close()


def fetch_all(conn, sql, params=()):
    """여러 행 조회 (list[dict])"""
    cursor = conn.cursor(dictionary=True)
    try:
        cursor.execute(sql, params)
        return cursor.fetchall()
    finally:
        cursor.close()
