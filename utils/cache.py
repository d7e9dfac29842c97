"""Response cache for derived, data-independent assets (marker images, style)"""
import os
import logging
from functools import wraps
from typing import Any, Dict, Optional
from flask import Flask
from flask_caching import Cache as FlaskCache

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 86400
KEY_PREFIX = 'mcf_directory_'


def _redis_config(redis_url: str) -> Optional[Dict]:
    """RedisCache settings when the server answers a ping, otherwise None"""
    try:
        import redis
    except ImportError:
        logger.info("Redis library not installed. Using SimpleCache")
        return None
    try:
        redis.from_url(redis_url, socket_connect_timeout=0.5, socket_timeout=0.5).ping()
    except redis.exceptions.RedisError as e:
        logger.warning(f"Redis configured but connection failed: {e}. Falling back to SimpleCache.")
        return None
    return {'CACHE_TYPE': 'RedisCache', 'CACHE_REDIS_URL': redis_url}


class Cache:
    """
    Flask-Caching backed store. Redis when REDIS_URL is set and reachable,
    an in-process SimpleCache otherwise.
    """
    def __init__(self, app: Optional[Flask] = None):
        self._cache = FlaskCache()
        self.backend = None
        if app:
            self.init_app(app)

    def init_app(self, app: Flask):
        settings = {
            'CACHE_TYPE': 'SimpleCache',
            'CACHE_DEFAULT_TIMEOUT': DEFAULT_TIMEOUT,
            'CACHE_THRESHOLD': 100,
            'CACHE_KEY_PREFIX': KEY_PREFIX,
        }
        redis_url = os.getenv('REDIS_URL')
        force_simple = os.getenv('USE_SIMPLE_CACHE', 'false').lower() == 'true'
        if redis_url and not force_simple:
            settings.update(_redis_config(redis_url) or {})

        self._cache.init_app(app, config=settings)
        self.backend = settings['CACHE_TYPE']
        logger.info(f"Cache initialized with {self.backend}")

    def memoize(self, key: str, timeout: int = DEFAULT_TIMEOUT):
        """Cache the result of a zero-argument builder under a fixed key"""
        def decorator(func):
            @wraps(func)
            def wrapper():
                cached = self._cache.get(key)
                if cached is not None:
                    logger.debug(f"Cache hit for {key}")
                    return cached
                logger.debug(f"Cache miss for {key}")
                value = func()
                self._cache.set(key, value, timeout=timeout)
                return value
            return wrapper
        return decorator

    def get(self, key: str) -> Optional[Any]:
        return self._cache.get(key)

    def set(self, key: str, value: Any, timeout: int = DEFAULT_TIMEOUT):
        self._cache.set(key, value, timeout=timeout)


# A default instance to be initialized by the app factory
cache = Cache()
