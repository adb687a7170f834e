"""Brute-force protection for client secret checks"""

import redis.asyncio as aioredis

from sso_broker.core.config import logger, settings


class BruteForceProtection:
    """Locks out a client id or IP after repeated client-secret failures"""

    def __init__(self):
        self._redis: aioredis.Redis | None = None

    async def get_redis(self) -> aioredis.Redis:
        """Get Redis connection"""
        if self._redis is None:
            self._redis = aioredis.from_url(
                settings.redis_url,
                encoding="utf-8",
                decode_responses=True,
            )
        return self._redis

    @staticmethod
    def _keys(client_id: str, ip_address: str) -> tuple[str, str]:
        return (
            f"sso_broker:failed_attempts:client:{client_id}",
            f"sso_broker:failed_attempts:ip:{ip_address}",
        )

    async def record_failed_attempt(self, client_id: str, ip_address: str) -> None:
        """
        Record a failed client authentication

        Args:
            client_id: Client id presented with the wrong secret
            ip_address: IP address of the request
        """
        client_key, ip_key = self._keys(client_id, ip_address)

        try:
            redis = await self.get_redis()
            client_count = await redis.incr(client_key)
            ip_count = await redis.incr(ip_key)

            # Counters reset after the lockout duration
            if client_count == 1:
                await redis.expire(client_key, settings.brute_force_lockout_duration)
            if ip_count == 1:
                await redis.expire(ip_key, settings.brute_force_lockout_duration)

            logger.warning(
                f"Failed client authentication: client_id={client_id}, ip={ip_address}, "
                f"client_count={client_count}, ip_count={ip_count}"
            )

        except Exception as e:
            logger.error(f"Failed to record failed attempt: {e}")

    async def is_locked_out(self, client_id: str, ip_address: str) -> tuple[bool, str | None]:
        """
        Check if a client id or IP is locked out

        Returns:
            Tuple of (is_locked, reason)
        """
        client_key, ip_key = self._keys(client_id, ip_address)

        try:
            redis = await self.get_redis()

            client_count = await redis.get(client_key)
            if client_count and int(client_count) >= settings.brute_force_threshold:
                ttl = await redis.ttl(client_key)
                logger.warning(
                    f"Client locked out: {client_id} ({client_count} attempts, {ttl}s remaining)"
                )
                return True, f"Too many failed attempts. Try again in {ttl} seconds."

            # IPs may front several clients, so they get a higher threshold
            ip_count = await redis.get(ip_key)
            if ip_count and int(ip_count) >= settings.brute_force_threshold * 2:
                ttl = await redis.ttl(ip_key)
                logger.warning(
                    f"IP locked out: {ip_address} ({ip_count} attempts, {ttl}s remaining)"
                )
                return True, f"Too many failed attempts from this IP. Try again in {ttl} seconds."

            return False, None

        except Exception as e:
            logger.error(f"Failed to check lockout: {e}")
            # Fail open - allow request if Redis is down
            return False, None

    async def reset_failed_attempts(self, client_id: str, ip_address: str) -> None:
        """Reset counters after a successful client authentication"""
        try:
            redis = await self.get_redis()
            await redis.delete(*self._keys(client_id, ip_address))
            logger.debug(f"Failed attempts reset: client_id={client_id}, ip={ip_address}")

        except Exception as e:
            logger.error(f"Failed to reset failed attempts: {e}")

    async def close(self) -> None:
        """Close Redis connection"""
        if self._redis:
            await self._redis.aclose()
            self._redis = None


# Global instance
brute_force_protection = BruteForceProtection()
