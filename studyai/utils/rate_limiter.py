"""
Fixed-window rate limiting for the webhook handlers
"""
import time
import uuid
from datetime import timedelta
from typing import Optional
import logging

import redis
from sqlalchemy.orm import Session

from studyai.config import settings
from studyai.models import RateLimitWindow
from studyai.models.types import utcnow

logger = logging.getLogger(__name__)


def check_rate_limit(
    db: Session,
    user_id: str,
    endpoint: str,
    max_requests: int = 60,
    window_minutes: int = 1,
    fail_open: bool = True,
) -> bool:
    """
    Count a request against the (user, endpoint) window stored in the database

    The most recent window starting within the trailing `window_minutes` is
    used. A missing window is created with count 1; a window below the ceiling
    is incremented; a full window is reported as exceeded and left untouched.

    The read and the increment are separate statements, so concurrent requests
    can both pass on the same stored count. The ceiling is approximate.

    Args:
        db: Database session
        user_id: Caller UUID
        endpoint: Logical endpoint name, e.g. "chat-webhook"
        max_requests: Requests allowed per window
        window_minutes: Window length
        fail_open: Report "not exceeded" when the store errors

    Returns:
        True if the rate limit is exceeded
    """
    try:
        user_uuid = uuid.UUID(str(user_id))
        window_cutoff = utcnow() - timedelta(minutes=window_minutes)

        window = (
            db.query(RateLimitWindow)
            .filter(
                RateLimitWindow.user_id == user_uuid,
                RateLimitWindow.endpoint == endpoint,
                RateLimitWindow.window_start >= window_cutoff,
            )
            .order_by(RateLimitWindow.window_start.desc())
            .first()
        )

        if window is None:
            db.add(
                RateLimitWindow(
                    user_id=user_uuid,
                    endpoint=endpoint,
                    request_count=1,
                    window_start=utcnow(),
                )
            )
            db.commit()
            return False

        if window.request_count >= max_requests:
            logger.warning(f"Rate limit exceeded: user={user_id} endpoint={endpoint}")
            return True

        window.request_count = window.request_count + 1
        db.commit()

        logger.debug(
            f"Rate limit check passed: user={user_id} endpoint={endpoint} "
            f"(count: {window.request_count}/{max_requests})"
        )
        return False

    except Exception as e:
        logger.error(f"Rate limit check error: {str(e)}")
        try:
            db.rollback()
        except Exception as rollback_error:
            logger.error(f"Rate limit rollback failed: {str(rollback_error)}")
        return not fail_open


class RateLimiter:
    """
    Rate limiter used by the webhook handlers

    Counts in the database by default. With a Redis client it uses an atomic
    INCR with expiry per window bucket, which has no read-then-write race.
    """

    def __init__(
        self,
        window_minutes: int = 1,
        fail_open: bool = True,
        redis_client: Optional[redis.Redis] = None,
    ):
        self.window_minutes = window_minutes
        self.fail_open = fail_open
        self.redis_client = redis_client

    def is_rate_limited(
        self,
        db: Session,
        user_id: str,
        endpoint: str,
        max_requests: int,
    ) -> bool:
        if self.redis_client is not None:
            return self._check_redis(user_id, endpoint, max_requests)

        return check_rate_limit(
            db,
            user_id,
            endpoint,
            max_requests=max_requests,
            window_minutes=self.window_minutes,
            fail_open=self.fail_open,
        )

    def _check_redis(self, user_id: str, endpoint: str, max_requests: int) -> bool:
        window_seconds = self.window_minutes * 60
        bucket = int(time.time() // window_seconds)
        key = f"ratelimit:{endpoint}:{user_id}:{bucket}"

        try:
            pipe = self.redis_client.pipeline()
            pipe.incr(key)
            pipe.expire(key, window_seconds)
            count, _ = pipe.execute()
        except Exception as e:
            logger.error(f"Redis rate limit error: {str(e)}")
            return not self.fail_open

        if count > max_requests:
            logger.warning(f"Rate limit exceeded (redis): user={user_id} endpoint={endpoint}")
            return True
        return False


def build_rate_limiter(settings) -> RateLimiter:
    """Create the limiter for the configured backend"""
    redis_client = None

    if settings.RATE_LIMIT_BACKEND == "redis":
        try:
            redis_client = redis.from_url(
                settings.REDIS_URL,
                decode_responses=True,
                socket_connect_timeout=5
            )
            # Test connection
            redis_client.ping()
            logger.info("Redis rate limiting enabled")
        except Exception as e:
            logger.warning(f"Redis connection failed: {str(e)}. Using database rate limiting.")
            redis_client = None

    return RateLimiter(
        window_minutes=settings.RATE_LIMIT_WINDOW_MINUTES,
        fail_open=settings.RATE_LIMIT_FAIL_OPEN,
        redis_client=redis_client,
    )


# Global instance
rate_limiter = build_rate_limiter(settings)


def get_rate_limiter() -> RateLimiter:
    return rate_limiter
