"""Redis 캐시 테스트 (클라이언트는 MagicMock)"""
import json
from unittest.mock import MagicMock

import pytest
from redis.exceptions import ConnectionError

from utils import cache


@pytest.fixture
def redis_client(monkeypatch):
    client = MagicMock()
    monkeypatch.setattr(cache, '_redis_client', client)
    return client


def test_no_redis_url_means_no_cache(app):
    with app.app_context():
        assert cache.get_redis_client() is None
        assert cache.get_cache('dashboard') is None
        assert cache.set_cache('dashboard', [1]) is False
        assert cache.invalidate_certifications() == 0


def test_cache_key():
    assert cache.cache_key('calendar', 'u1', None, 't1', month='2025-01') == 'calendar:u1:t1:month:2025-01'


def test_get_and_set(redis_client):
    redis_client.get.return_value = json.dumps({'a': 1})

    assert cache.get_cache('k') == {'a': 1}
    assert cache.set_cache('k', {'a': 1}, ttl=60) is True
    redis_client.setex.assert_called_once_with('k', 60, json.dumps({'a': 1}))


def test_redis_errors_are_cache_misses(redis_client):
    redis_client.get.side_effect = ConnectionError('down')
    assert cache.get_cache('k') is None


def test_invalidate_certifications_patterns(redis_client):
    redis_client.scan_iter.return_value = iter([])

    cache.invalidate_certifications(user_id='u1', track_id='t1')

    patterns = [c.kwargs['match'] for c in redis_client.scan_iter.call_args_list]
    assert 'tracking:*' in patterns
    assert 'calendar:*' in patterns
    assert 'certifications:user:u1*' in patterns
    assert 'certifications:track:t1*' in patterns
