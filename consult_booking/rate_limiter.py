"""
Sliding-window rate limiting
Redis-backed (sorted sets) when configured so limits hold across workers,
in-memory otherwise or whenever Redis is unreachable
"""

import hashlib
import logging
import math
import os
import time
import uuid
from collections import deque
from threading import Lock
from typing import NamedTuple, Optional

import redis
from fastapi import Request

from .exceptions import RateLimitError

logger = logging.getLogger(__name__)

# Named policies: maximum requests per window, per caller
RATE_LIMITS: dict[str, dict[str, int]] = {
    "contact": {"limit": 5, "window_seconds": 60},
    "booking": {"limit": 10, "window_seconds": 60},
    "availability": {"limit": 60, "window_seconds": 60},
    "general": {"limit": 100, "window_seconds": 60},
}

REDIS_KEY_PREFIX = "hbl-ratelimit"

# Redis connection (None when not configured or unreachable)
redis_client: Optional[redis.Redis] = None
_redis_initialized = False

# In-memory request log: {key: deque[timestamp]}
memory_cache: dict[str, deque] = {}
# Window length each key was last checked with: {key: seconds}
memory_windows: dict[str, int] = {}
cache_lock = Lock()

MEMORY_CACHE_CLEANUP_INTERVAL = 60  # Clean up idle entries every 60 seconds
last_cleanup_time = 0.0


class RateLimitResult(NamedTuple):
    allowed: bool
    remaining: int
    reset_in: float  # seconds until the oldest counted request leaves the window


def get_redis_client() -> Optional[redis.Redis]:
    """
    Get or create the Redis client.
    Returns None when Redis is not configured or the connection test fails,
    in which case limits are enforced per process in memory.
    """
    global redis_client, _redis_initialized

    if _redis_initialized:
        return redis_client
    _redis_initialized = True

    redis_url = os.getenv("REDIS_URL")
    redis_host = os.getenv("REDIS_HOST")

    if not redis_url and not redis_host:
        logger.info("ℹ️ Redis not configured - rate limiting will use in-memory store")
        return None

    try:
        if redis_url:
            client = redis.from_url(
                redis_url,
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5,
                retry_on_timeout=True,
                health_check_interval=30,
            )
        else:
            client = redis.Redis(
                host=redis_host,
                port=int(os.getenv("REDIS_PORT", "6379")),
                password=os.getenv("REDIS_PASSWORD"),
                db=int(os.getenv("REDIS_DB", "0")),
                ssl=os.getenv("REDIS_SSL", "false").lower() == "true",
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5,
                retry_on_timeout=True,
                health_check_interval=30,
            )
        client.ping()
        redis_client = client
        logger.info("✅ Redis connected for rate limiting")
    except Exception as e:
        logger.error(f"❌ Failed to connect to Redis: {str(e)}")
        logger.warning("⚠️ Rate limiting will fall back to the in-memory store")
        redis_client = None

    return redis_client


def reset_rate_limits() -> None:
    """Forget all in-memory counters (and drop the cached Redis connection state)"""
    global redis_client, _redis_initialized
    with cache_lock:
        memory_cache.clear()
        memory_windows.clear()
    redis_client = None
    _redis_initialized = False


def cleanup_expired_cache() -> None:
    """Remove keys whose newest request is older than that key's own window"""
    global last_cleanup_time
    now = time.time()

    if now - last_cleanup_time < MEMORY_CACHE_CLEANUP_INTERVAL:
        return

    with cache_lock:
        idle_keys = [
            k
            for k, log in memory_cache.items()
            if not log or log[-1] <= now - memory_windows.get(k, 0)
        ]
        for k in idle_keys:
            del memory_cache[k]
            memory_windows.pop(k, None)

        if idle_keys:
            logger.debug(f"🧹 Cleaned up {len(idle_keys)} idle rate limit entries")

    last_cleanup_time = now


def _check_memory(key: str, limit: int, window_seconds: int, now: float) -> RateLimitResult:
    with cache_lock:
        log = memory_cache.setdefault(key, deque())
        memory_windows[key] = window_seconds
        while log and log[0] <= now - window_seconds:
            log.popleft()

        if len(log) >= limit:
            return RateLimitResult(False, 0, log[0] + window_seconds - now)

        log.append(now)
        return RateLimitResult(True, limit - len(log), log[0] + window_seconds - now)


def _check_redis(
    client: redis.Redis, key: str, limit: int, window_seconds: int, now: float
) -> RateLimitResult:
    redis_key = f"{REDIS_KEY_PREFIX}:{key}"

    member = f"{now}-{uuid.uuid4().hex[:8]}"

    # Record first, count second, in one MULTI/EXEC so concurrent workers always
    # see each other's requests
    pipe = client.pipeline(transaction=True)
    pipe.zremrangebyscore(redis_key, 0, now - window_seconds)
    pipe.zadd(redis_key, {member: now})
    pipe.zcard(redis_key)
    pipe.zrange(redis_key, 0, 0, withscores=True)
    pipe.expire(redis_key, window_seconds)
    _, _, count, oldest, _ = pipe.execute()

    oldest_ts = oldest[0][1] if oldest else now
    if count > limit:
        # Rejected requests do not count against the window
        client.zrem(redis_key, member)
        return RateLimitResult(False, 0, oldest_ts + window_seconds - now)

    return RateLimitResult(True, limit - count, oldest_ts + window_seconds - now)


def check_rate_limit(key: str, limit: int, window_seconds: int) -> RateLimitResult:
    """Check and record one request against a sliding window

    Args:
        key: Identifier for this caller + policy
        limit: Maximum number of requests allowed in the window
        window_seconds: Window length in seconds

    Returns:
        RateLimitResult(allowed, remaining, reset_in)
    """
    now = time.time()
    client = get_redis_client()

    if client is not None:
        try:
            return _check_redis(client, key, limit, window_seconds, now)
        except Exception as e:
            logger.warning(f"⚠️ Redis rate limit check failed, using in-memory store: {e}")

    cleanup_expired_cache()
    return _check_memory(key, limit, window_seconds, now)


def get_client_identifier(request: Request) -> str:
    """Derive a per-caller identifier from proxy headers, the peer address, or the user agent"""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip.strip()

    if request.client and request.client.host:
        return request.client.host

    user_agent = request.headers.get("User-Agent", "unknown")
    return f"ua-{hashlib.sha256(user_agent.encode()).hexdigest()[:12]}"


def create_rate_limiter(policy: str, message: Optional[str] = None):
    """
    Create a rate limiter dependency for a named policy

    Example usage:
        @router.post("/booking")
        async def create_booking(
            request: Request,
            _: None = Depends(create_rate_limiter("booking")),
        ):
            ...
    """

    async def rate_limiter(request: Request):
        config = RATE_LIMITS[policy]
        limit, window_seconds = config["limit"], config["window_seconds"]
        key = f"{policy}-{get_client_identifier(request)}"

        result = check_rate_limit(key, limit, window_seconds)

        if not result.allowed:
            retry_after = max(1, math.ceil(result.reset_in))
            logger.warning(f"🚫 Rate limit EXCEEDED for {key} - {limit}/{window_seconds}s")
            raise RateLimitError(retry_after=retry_after, message=message)

        request.state.rate_limit_remaining = result.remaining
        request.state.rate_limit_limit = limit
        request.state.rate_limit_reset = math.ceil(result.reset_in)

    return rate_limiter
