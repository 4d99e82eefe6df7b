"""
Admin login brute-force guard: Redis counter per client IP over a fixed window.
Redis being down never locks the admin out.
"""
import logging

import redis
from starlette.requests import Request

from app.core.config import settings

logger = logging.getLogger("auth")

KEY_PREFIX = "admin_login_attempts"


def get_client_ip(request: Request) -> str:
    """X-Forwarded-For is honoured only behind a trusted proxy in production."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded and settings.app_env == "production":
        trusted = settings.trusted_proxy_ips_set
        if trusted and request.client and request.client.host in trusted:
            return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "127.0.0.1"


def _key(client_ip: str) -> str:
    return f"{KEY_PREFIX}:{client_ip}"


def _client() -> redis.Redis:
    return redis.Redis.from_url(settings.redis_url, decode_responses=True)


def check_login_rate_limit(client_ip: str) -> bool:
    """Count this attempt; False once the window's budget is spent."""
    key = _key(client_ip)
    try:
        client = _client()
        attempts = client.incr(key)
        if attempts == 1:
            client.expire(key, settings.login_rate_limit_window_seconds)
    except redis.RedisError as e:
        logger.warning("login_rate_limit_redis_error", extra={"ip": client_ip, "error": str(e)})
        return True
    if attempts > settings.login_rate_limit_attempts:
        logger.warning("login_rate_limited", extra={"ip": client_ip, "attempts": attempts})
        return False
    return True


def retry_after_seconds(client_ip: str) -> int:
    """Seconds until the window resets; the full window if unknown."""
    try:
        ttl = _client().ttl(_key(client_ip))
    except redis.RedisError:
        return settings.login_rate_limit_window_seconds
    return ttl if ttl and ttl > 0 else settings.login_rate_limit_window_seconds


def reset_login_attempts(client_ip: str) -> None:
    try:
        _client().delete(_key(client_ip))
    except redis.RedisError as e:
        logger.warning("login_rate_limit_reset_failed", extra={"ip": client_ip, "error": str(e)})
