"""Per-user quotas for image uploads and magic fill calls (throttled-py)."""
import os
import logging
from datetime import timedelta
from throttled import Throttled, RateLimiterType, store, rate_limiter

logger = logging.getLogger("feria")

# Redis when configured so limits hold across workers, in-process memory otherwise
try:
    redis_url = os.getenv("REDIS_URL", "").strip()
    if redis_url:
        storage = store.RedisStore(server=redis_url)
        logger.info("[rate_limit] Using Redis for rate limiting")
    else:
        storage = store.MemoryStore()
except Exception as ex:
    storage = store.MemoryStore()
    logger.warning(f"[rate_limit] Redis unavailable, limits are per process: {ex}")

UPLOADS_PER_HOUR = int(os.getenv("UPLOADS_PER_HOUR", "200"))
ANALYSES_PER_HOUR = int(os.getenv("ANALYSES_PER_HOUR", "30"))


def _hourly(limit: int) -> Throttled:
    return Throttled(
        using=RateLimiterType.FIXED_WINDOW.value,
        quota=rate_limiter.per_duration(timedelta(hours=1), limit=limit),
        store=storage,
    )


# Product photos per owner
upload_throttle = _hourly(UPLOADS_PER_HOUR)
# Vision model calls per user (or client address when anonymous)
processing_throttle = _hourly(ANALYSES_PER_HOUR)


def _consume(throttle: Throttled, key: str, cost: int, message: str) -> tuple[bool, str]:
    try:
        if throttle.limit(key, cost=cost).limited:
            return False, message
    except Exception as ex:
        # Fail open: a broken limiter store must not block sellers
        logger.warning(f"[rate_limit] check failed for {key}: {ex}")
    return True, ""


def check_upload_rate_limit(user_id: str, file_count: int = 1) -> tuple[bool, str]:
    """
    Charge `file_count` uploads to the user's hourly quota.

    Returns:
        Tuple of (allowed: bool, error_message: str)
    """
    return _consume(
        upload_throttle,
        f"upload_count:{user_id}",
        max(1, file_count),
        f"Límite de subidas alcanzado: hasta {UPLOADS_PER_HOUR} imágenes por hora. Intenta más tarde.",
    )


def check_processing_rate_limit(client_id: str) -> tuple[bool, str]:
    return _consume(
        processing_throttle,
        f"magic_fill:{client_id}",
        1,
        f"Límite de análisis alcanzado: hasta {ANALYSES_PER_HOUR} imágenes por hora. Intenta más tarde.",
    )
