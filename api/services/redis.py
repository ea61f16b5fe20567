# SPDX-License-Identifier: Apache-2.0

"""
Redis service for the JWT token blocklist.

This module uses the Upstash HTTP client for serverless compatibility. When
no Redis is configured the blocklist is disabled and logout becomes a no-op
on the server side.
"""

import os
import time
from typing import Optional, Dict, Any
from upstash_redis import Redis
from opentelemetry import trace
import logging

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)

BLOCKLIST_PREFIX = "reliefgrid:jwt:blocked:"


class RedisConnectionError(Exception):
    """Raised when Redis connection fails."""
    pass


class RedisService:
    """
    Redis service with Upstash HTTP client for serverless compatibility.

    Provides the JWT token blocklist used by logout and the auth middleware.
    """

    def __init__(self, redis_url: Optional[str] = None, redis_token: Optional[str] = None):
        """
        Initialize the Redis service.

        Args:
            redis_url: Upstash Redis HTTP URL
            redis_token: Upstash Redis authentication token
        """
        self.redis_url = redis_url or os.getenv("REDIS_URL")
        self.redis_token = redis_token or os.getenv("REDIS_TOKEN")
        self.client: Optional[Redis] = None

        if not self.redis_url:
            logger.warning("No REDIS_URL configured, token blocklist will be disabled")
            return

        try:
            self.client = Redis(url=self.redis_url, token=self.redis_token or "")
            self._test_connection()
            logger.info("Redis service initialized successfully")
        except Exception as e:
            logger.error(f"Failed to initialize Redis service: {str(e)}")
            self.client = None

    def _test_connection(self) -> None:
        """Test Redis connection."""
        try:
            result = self.client.ping()
        except Exception as e:
            raise RedisConnectionError(f"Redis connection failed: {str(e)}")
        if result != "PONG":
            raise RedisConnectionError("Redis ping failed")

    def is_available(self) -> bool:
        """Check if Redis service is available."""
        return self.client is not None

    def _handle_redis_error(self, operation: str, error: Exception) -> None:
        """Log Redis operation errors; blocklist operations degrade instead of failing requests."""
        logger.error(f"Redis {operation} failed: {str(error)}")

    # JWT Token Blocklist Methods

    def is_token_blocked(self, token_id: str) -> bool:
        """
        Check if a JWT token is in the blocklist.

        Args:
            token_id: Unique token identifier

        Returns:
            True if token is blocked, False otherwise
        """
        if not self.is_available():
            return False

        with tracer.start_as_current_span("redis.is_token_blocked") as span:
            span.set_attribute("redis.operation", "is_token_blocked")

            try:
                result = self.client.exists(f"{BLOCKLIST_PREFIX}{token_id}") > 0
            except Exception as e:
                self._handle_redis_error("EXISTS", e)
                return False

            span.set_attribute("auth.token_blocked", result)
            return result

    def block_token(self, token_id: str, ttl_seconds: int) -> bool:
        """
        Add a JWT token to the blocklist.

        Args:
            token_id: Unique token identifier
            ttl_seconds: Time to live (should match token expiration)

        Returns:
            True if token was blocked, False otherwise
        """
        if not self.is_available():
            logger.warning("Redis unavailable - cannot block token")
            return False

        with tracer.start_as_current_span("redis.block_token") as span:
            span.set_attributes({
                "redis.operation": "block_token",
                "redis.ttl": ttl_seconds
            })

            try:
                result = self.client.setex(f"{BLOCKLIST_PREFIX}{token_id}", ttl_seconds, "1") == "OK"
            except Exception as e:
                self._handle_redis_error("SETEX", e)
                return False

            span.set_attribute("auth.token_block_result", "success" if result else "failed")
            if result:
                logger.info(f"Token blocked (TTL: {ttl_seconds}s)")
            return result

    # Health Check Methods

    def ping(self) -> bool:
        """Ping Redis server."""
        if not self.is_available():
            return False

        try:
            return self.client.ping() == "PONG"
        except Exception as e:
            logger.error(f"Redis ping failed: {str(e)}")
            return False

    def health_check(self) -> Dict[str, Any]:
        """
        Perform Redis health check.

        Returns:
            Health check results
        """
        if not self.is_available():
            return {
                "status": "not_configured",
                "message": "Redis client not initialized",
                "timestamp": time.time()
            }

        start_time = time.time()
        healthy = self.ping()
        response_time = round((time.time() - start_time) * 1000, 2)

        return {
            "status": "healthy" if healthy else "unhealthy",
            "response_time_ms": response_time,
            "timestamp": time.time()
        }
