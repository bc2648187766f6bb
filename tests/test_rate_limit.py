import os
import unittest
from unittest.mock import Mock, patch

import redis
from fastapi import HTTPException

os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/0")
os.environ.setdefault("S3_ENDPOINT", "http://localhost:9000")
os.environ.setdefault("S3_ACCESS_KEY", "test")
os.environ.setdefault("S3_SECRET_KEY", "test")
os.environ.setdefault("S3_BUCKET", "test")

from app.core.config import settings
from app.services.rate_limit import (
    InMemoryRateLimiter,
    RedisRateLimiter,
    enforce_ai_rate_limit,
    get_rate_limiter,
    reset_rate_limiter_for_tests,
)


class RateLimitTests(unittest.TestCase):
    def tearDown(self):
        reset_rate_limiter_for_tests(None)

    def test_in_memory_limiter_counts_within_window(self):
        limiter = InMemoryRateLimiter()
        results = [limiter.hit("k", limit=2, window_seconds=60) for _ in range(3)]
        self.assertEqual([r.allowed for r in results], [True, True, False])
        self.assertEqual(results[-1].current_value, 3)
        self.assertGreater(results[-1].retry_after_seconds, 0)
        self.assertTrue(limiter.hit("other", limit=2, window_seconds=60).allowed)

    def test_redis_limiter_sets_expiry_on_first_hit(self):
        pipe = Mock()
        pipe.execute.return_value = [1, -1]
        client = Mock()
        client.pipeline.return_value = pipe

        result = RedisRateLimiter(client).hit("rl:ai:u1", limit=5, window_seconds=60)
        self.assertTrue(result.allowed)
        self.assertEqual(result.retry_after_seconds, 60)
        client.expire.assert_called_once_with("rl:ai:u1", 60)

    def test_unreachable_redis_falls_back_to_memory(self):
        reset_rate_limiter_for_tests(None)
        client = Mock()
        client.ping.side_effect = redis.ConnectionError("refused")
        with patch("app.services.rate_limit.redis.Redis.from_url", return_value=client):
            limiter = get_rate_limiter()
        self.assertIsInstance(limiter, InMemoryRateLimiter)

    def test_enforce_raises_429_with_retry_after(self):
        reset_rate_limiter_for_tests(InMemoryRateLimiter())
        previous = settings.AI_RATE_LIMIT
        settings.AI_RATE_LIMIT = 1
        try:
            enforce_ai_rate_limit({"sub": "user-1"})
            with self.assertRaises(HTTPException) as ctx:
                enforce_ai_rate_limit({"sub": "user-1"})
            enforce_ai_rate_limit({"sub": "user-2"})
        finally:
            settings.AI_RATE_LIMIT = previous
        self.assertEqual(ctx.exception.status_code, 429)
        self.assertIn("Retry-After", ctx.exception.headers)


if __name__ == "__main__":
    unittest.main()
