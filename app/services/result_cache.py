"""
Generation-stamped cache for rankings and per-player score lists.

Entries are stored as ``{"generation": tag, "value": ...}``. Readers compute
the current tag from the shard while holding the tenant lock and treat any
entry with a different tag as a miss, so an entry written before a score
import can never be served after it.
"""
import abc
import json
import logging
import threading

import redis
from flask import current_app

logger = logging.getLogger(__name__)


def ranking_key(tenant_id, competition_id):
    return f"ranking:{tenant_id}:{competition_id}"


def player_score_key(tenant_id, player_id):
    return f"player_score:{tenant_id}:{player_id}"


class ResultCache(abc.ABC):
    """Backend-agnostic cache of JSON-serializable results."""

    @abc.abstractmethod
    def _get_raw(self, key):
        raise NotImplementedError

    @abc.abstractmethod
    def _set_raw(self, key, data):
        raise NotImplementedError

    @abc.abstractmethod
    def delete(self, key):
        raise NotImplementedError

    @abc.abstractmethod
    def clear(self):
        raise NotImplementedError

    def get(self, key, generation):
        """Cached value for ``key`` if it was stored for ``generation``, else None."""
        raw = self._get_raw(key)
        if raw is None:
            return None
        entry = json.loads(raw)
        if entry.get("generation") != _normalize(generation):
            logger.debug("cache stale key=%s cached=%s current=%s", key, entry.get("generation"), generation)
            return None
        return entry["value"]

    def set(self, key, generation, value):
        data = json.dumps({"generation": _normalize(generation), "value": value}, sort_keys=True)
        self._set_raw(key, data)

    def fetch(self, key, generation, compute):
        """Serve a current entry verbatim, otherwise compute, store and return."""
        cached = self.get(key, generation)
        if cached is not None:
            return cached
        value = compute()
        self.set(key, generation, value)
        return value


def _normalize(generation):
    # Round-trip through JSON so tags compare equal to what the backend returns
    return json.loads(json.dumps(generation, sort_keys=True))


class InMemoryResultCache(ResultCache):
    """Process-local backend for development and tests."""

    def __init__(self):
        self._data = {}
        self._lock = threading.Lock()

    def _get_raw(self, key):
        with self._lock:
            return self._data.get(key)

    def _set_raw(self, key, data):
        with self._lock:
            self._data[key] = data

    def delete(self, key):
        with self._lock:
            self._data.pop(key, None)

    def clear(self):
        with self._lock:
            self._data.clear()


class RedisResultCache(ResultCache):
    """Shared backend; every worker process sees the same entries."""

    def __init__(self, redis_url):
        self._redis = redis.Redis.from_url(redis_url, socket_connect_timeout=3)

    def _get_raw(self, key):
        return self._redis.get(key)

    def _set_raw(self, key, data):
        self._redis.set(key, data)

    def delete(self, key):
        self._redis.delete(key)

    def clear(self):
        for key in self._redis.scan_iter(match="ranking:*"):
            self._redis.delete(key)
        for key in self._redis.scan_iter(match="player_score:*"):
            self._redis.delete(key)


def create_result_cache(config):
    if not config.get("RESULT_CACHE_ENABLED", True):
        return None
    backend = config.get("RESULT_CACHE_BACKEND", "memory")
    if backend == "redis":
        logger.info("Result cache: redis at %s", config["REDIS_URL"])
        return RedisResultCache(config["REDIS_URL"])
    if backend == "memory":
        return InMemoryResultCache()
    raise ValueError(f"unknown RESULT_CACHE_BACKEND: {backend}")


def init_result_cache(app):
    app.extensions["result_cache"] = create_result_cache(app.config)


def get_result_cache():
    """The app's cache, or None when caching is disabled."""
    return current_app.extensions.get("result_cache")
