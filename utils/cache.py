"""
Redis 캐시

달력/인증 현황/대시보드 조회 결과를 캐시하고,
인증 제출이나 관리자 삭제 후 관련 키를 무효화합니다.

REDIS_URL 이 없거나 Redis 에 연결할 수 없으면 캐시 없이 동작합니다.
"""

import json
import logging

import redis
from flask import current_app, has_app_context
from redis.exceptions import ConnectionError, RedisError, TimeoutError

logger = logging.getLogger(__name__)

# Redis 클라이언트 (싱글톤)
_redis_client = None


def _setting(name, default=None):
    if has_app_context():
        return current_app.config.get(name, default)
    return default


def get_redis_client():
    """Redis 클라이언트 반환. 설정이 없거나 연결 실패 시 None"""
    global _redis_client

    if _redis_client is not None:
        return _redis_client

    url = _setting('REDIS_URL')
    if not url:
        return None

    try:
        client = redis.from_url(
            url,
            decode_responses=True,
            socket_connect_timeout=2,
            socket_timeout=2,
            retry_on_timeout=True,
            health_check_interval=30
        )
        client.ping()
        logger.info("Redis connection established")
        _redis_client = client
        return _redis_client
    except (ConnectionError, TimeoutError, RedisError) as e:
        logger.warning(f"Redis unavailable: {e}. Caching disabled.")
        return None


def reset_client():
    """캐시 클라이언트 초기화 (설정 변경/테스트용)"""
    global _redis_client
    _redis_client = None


def cache_key(prefix, *args, **kwargs):
    """
    캐시 키 생성

    Example:
        >>> cache_key("calendar", "user-1", "track-1", month="2025-01")
        'calendar:user-1:track-1:month:2025-01'
    """
    key_parts = [prefix]

    for arg in args:
        if arg is not None:
            key_parts.append(str(arg))

    for k, v in sorted(kwargs.items()):
        if v is not None:
            key_parts.append(f"{k}:{v}")

    return ":".join(key_parts)


def get_cache(key):
    """캐시 조회. 없거나 Redis 사용 불가면 None"""
    client = get_redis_client()
    if not client:
        return None

    try:
        value = client.get(key)
        if value:
            return json.loads(value)
        return None
    except (ConnectionError, TimeoutError, RedisError) as e:
        logger.warning(f"Cache get error for key {key}: {e}")
        return None


def set_cache(key, value, ttl=None):
    """캐시 저장. 성공 시 True"""
    client = get_redis_client()
    if not client:
        return False

    try:
        if ttl is None:
            ttl = _setting('CACHE_TTL_DEFAULT', 300)
        client.setex(key, ttl, json.dumps(value, default=str))
        return True
    except (ConnectionError, TimeoutError, RedisError) as e:
        logger.warning(f"Cache set error for key {key}: {e}")
        return False


def invalidate_pattern(pattern):
    """패턴에 맞는 키 모두 삭제. 삭제된 개수 반환"""
    client = get_redis_client()
    if not client:
        return 0

    try:
        keys = list(client.scan_iter(match=pattern))
        if keys:
            return client.delete(*keys)
        return 0
    except (ConnectionError, TimeoutError, RedisError) as e:
        logger.warning(f"Cache invalidation error for pattern {pattern}: {e}")
        return 0


def certification_patterns(user_id=None, track_id=None, period_id=None):
    """
    인증 데이터 변경 시 무효화할 키 패턴 목록

    사용자/트랙/기수별 캐시 + 대시보드/달력/현황 전체 캐시
    """
    patterns = ['certifications:*', 'dashboard*', 'calendar:*', 'tracking:*', 'leaderboard*']
    if user_id:
        patterns.append(f"certifications:user:{user_id}*")
        patterns.append(f"stats:{user_id}:*")
    if track_id:
        patterns.append(f"certifications:track:{track_id}*")
    if period_id:
        patterns.append(f"certifications:period:{period_id}*")
    return patterns


def invalidate_certifications(user_id=None, track_id=None, period_id=None):
    """인증 데이터 관련 캐시 무효화. 삭제된 키 개수 반환"""
    return sum(
        invalidate_pattern(pattern)
        for pattern in certification_patterns(user_id, track_id, period_id)
    )
