"""
Health Check Service

Provides health monitoring for system dependencies (MongoDB, Redis) and
basic system metrics.
"""

import os
import time
import psutil
from datetime import datetime, timezone
from typing import Dict, Any, List, Optional
from opentelemetry import trace

from services.mongodb import MongoDBService
from services.redis import RedisService

tracer = trace.get_tracer(__name__)

SERVICE_NAME = "reliefgrid-api"
SERVICE_VERSION = "1.0.0"


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


class HealthCheckService:
    """Service for system health monitoring."""

    def __init__(self, mongodb_service: Optional[MongoDBService], redis_service: Optional[RedisService]):
        self.mongodb_service = mongodb_service
        self.redis_service = redis_service
        self.service_version = SERVICE_VERSION

    def get_comprehensive_health(self, include_metrics: bool = True) -> Dict[str, Any]:
        """Get health status including all dependencies and metrics."""
        with tracer.start_as_current_span("health.comprehensive_check") as span:
            start_time = time.time()

            mongodb_health = self._check_mongodb_health()
            redis_health = self._check_redis_health()

            # Redis is optional; an unconfigured blocklist does not degrade the service
            overall_status = self._determine_overall_status([
                status for status in (mongodb_health["status"], redis_health["status"])
                if status != "not_configured"
            ])

            response_time_ms = round((time.time() - start_time) * 1000, 2)

            health_data = {
                "status": overall_status,
                "service": SERVICE_NAME,
                "version": self.service_version,
                "environment": os.getenv('ENVIRONMENT', 'development'),
                "timestamp": _now_iso(),
                "response_time_ms": response_time_ms,
                "dependencies": {
                    "mongodb": mongodb_health,
                    "redis": redis_health
                },
                "feature_flags": self._get_feature_flags(),
                "configuration": self._get_configuration_status()
            }
            if include_metrics:
                health_data["system_metrics"] = self._get_system_metrics()

            span.set_attributes({
                "health.overall_status": overall_status,
                "health.response_time_ms": response_time_ms,
                "health.mongodb_status": mongodb_health["status"],
                "health.redis_status": redis_health["status"]
            })

            return health_data

    def _check_mongodb_health(self) -> Dict[str, Any]:
        """Check MongoDB connectivity."""
        if self.mongodb_service is None:
            return {"status": "not_configured", "last_check": _now_iso()}

        with tracer.start_as_current_span("health.mongodb_check") as span:
            start_time = time.time()
            health_info = self.mongodb_service.health_check()
            health_info["response_time_ms"] = round((time.time() - start_time) * 1000, 2)
            health_info["last_check"] = _now_iso()

            span.set_attributes({
                "mongodb.status": health_info.get("status", "unknown"),
                "mongodb.response_time_ms": health_info["response_time_ms"]
            })
            return health_info

    def _check_redis_health(self) -> Dict[str, Any]:
        """Check Redis connectivity."""
        if self.redis_service is None:
            return {"status": "not_configured", "last_check": _now_iso()}

        with tracer.start_as_current_span("health.redis_check") as span:
            try:
                health_info = self.redis_service.health_check()
            except Exception as e:
                span.record_exception(e)
                health_info = {"status": "unhealthy", "error": str(e)}

            health_info["last_check"] = _now_iso()
            span.set_attribute("redis.status", health_info.get("status", "unknown"))
            return health_info

    def _get_system_metrics(self) -> Dict[str, Any]:
        """Get basic system performance metrics."""
        try:
            cpu_percent = psutil.cpu_percent(interval=0.1)

            memory = psutil.virtual_memory()
            disk = psutil.disk_usage('/')

            return {
                "cpu_percent": cpu_percent,
                "memory": {
                    "used_mb": round(memory.used / 1024 / 1024, 2),
                    "total_mb": round(memory.total / 1024 / 1024, 2),
                    "percent": memory.percent
                },
                "disk": {
                    "used_gb": round(disk.used / 1024 / 1024 / 1024, 2),
                    "total_gb": round(disk.total / 1024 / 1024 / 1024, 2),
                    "percent": round((disk.used / disk.total) * 100, 2)
                },
                "load_average": list(os.getloadavg()) if hasattr(os, 'getloadavg') else None
            }
        except Exception as e:
            return {
                "error": f"Failed to collect system metrics: {str(e)}"
            }

    def _get_feature_flags(self) -> Dict[str, bool]:
        """Get current feature flag status."""
        return {
            "docs_enabled": os.getenv('DOCS_ENABLED', 'true').lower() == 'true',
            "otel_enabled": os.getenv('OTEL_ENABLED', 'false').lower() == 'true',
            "allow_negative_wallet_balance": os.getenv('ALLOW_NEGATIVE_WALLET_BALANCE', 'true').lower() == 'true',
            "notify_station_residents": os.getenv('NOTIFY_STATION_RESIDENTS', 'true').lower() == 'true'
        }

    def _get_configuration_status(self) -> Dict[str, Any]:
        """Get configuration validation status."""
        config_status = {
            "mongodb_uri_configured": bool(os.getenv('MONGODB_URI')),
            "redis_configured": bool(os.getenv('REDIS_URL')),
            "jwt_keys_configured": bool(os.getenv('JWT_PRIVATE_KEY') and os.getenv('JWT_PUBLIC_KEY')),
            "solana_rpc_configured": bool(os.getenv('SOLANA_RPC_URL')),
            "environment": os.getenv('ENVIRONMENT', 'development')
        }

        critical_configs = ['mongodb_uri_configured', 'jwt_keys_configured']
        config_status["all_critical_configured"] = all(
            config_status[config] for config in critical_configs
        )

        return config_status

    def _determine_overall_status(self, dependency_statuses: List[str]) -> str:
        """Determine overall system status based on dependency health."""
        if all(status == "healthy" for status in dependency_statuses):
            return "healthy"
        elif any(status == "healthy" for status in dependency_statuses):
            return "degraded"
        else:
            return "unhealthy"
