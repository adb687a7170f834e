"""Per-IP request limits, split by endpoint group"""

from dataclasses import dataclass

import redis.asyncio as aioredis

from sso_broker.core.config import logger, settings

# Server-to-server credential endpoints get a tighter budget
TOKEN_PATHS = ("/oauth/token", "/oauth/revoke", "/oauth/introspect")

WINDOW_SECONDS = 60


@dataclass
class RateLimitVerdict:
    allowed: bool
    limit: int
    remaining: int
    retry_after: int = 0


def bucket_for_path(path: str) -> str:
    return "token" if path in TOKEN_PATHS else "default"


class RateLimiter:
    """Fixed-window counters in Redis, one per (bucket, IP)"""

    def __init__(self):
        self._redis: aioredis.Redis | None = None

    async def get_redis(self) -> aioredis.Redis:
        if self._redis is None:
            self._redis = aioredis.from_url(
                settings.redis_url,
                encoding="utf-8",
                decode_responses=True,
            )
        return self._redis

    def limit_for(self, bucket: str) -> int:
        if bucket == "token":
            return settings.rate_limit_token_per_ip
        return settings.rate_limit_per_ip

    async def hit(self, ip_address: str, bucket: str = "default") -> RateLimitVerdict:
        """
        Count one request from ``ip_address`` against ``bucket``

        Fails open: when Redis is unreachable the request is allowed.
        """
        limit = self.limit_for(bucket)
        key = f"sso_broker:rate_limit:{bucket}:{ip_address}"

        try:
            redis = await self.get_redis()
            current = await redis.incr(key)
            if current == 1:
                await redis.expire(key, WINDOW_SECONDS)

            if current <= limit:
                return RateLimitVerdict(True, limit, limit - current)

            ttl = await redis.ttl(key)
            logger.warning(
                f"Rate limit exceeded: ip={ip_address}, bucket={bucket}, {current}/{limit}",
                extra={"ip_address": ip_address, "bucket": bucket},
            )
            return RateLimitVerdict(
                False, limit, 0, retry_after=ttl if ttl > 0 else WINDOW_SECONDS
            )

        except Exception as e:
            logger.error(f"Rate limiter unavailable, allowing request: {e}")
            return RateLimitVerdict(True, limit, limit)

    async def close(self) -> None:
        if self._redis:
            await self._redis.aclose()
            self._redis = None


# Global instance
rate_limiter = RateLimiter()
