# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Health check endpoint.
"""

from datetime import datetime, timezone
from flask import jsonify, current_app, request
from flask_openapi3 import APIBlueprint, Tag
import logging

from services.health import SERVICE_NAME, SERVICE_VERSION

logger = logging.getLogger(__name__)

health_tag = Tag(name="Health", description="System health and status")
health_bp = APIBlueprint(
    'health',
    __name__,
    url_prefix='/api',
    abp_tags=[health_tag]
)


@health_bp.get('/healthz')
def health_check():
    """Dependency health. Pass metrics=false to skip system metrics."""
    builder = current_app.hal_formatter.builder
    include_metrics = request.args.get('metrics', 'true').lower() != 'false'

    try:
        health_data = current_app.health_service.get_comprehensive_health(include_metrics)
    except Exception as e:
        logger.error(f"Health check failed: {str(e)}", exc_info=True)
        health_data = {
            "status": "unhealthy",
            "service": SERVICE_NAME,
            "version": SERVICE_VERSION,
            "environment": current_app.config.get('ENVIRONMENT'),
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "error": f"Health check service failed: {str(e)}"
        }

    # Degraded is still operational
    status_code = 503 if health_data["status"] == "unhealthy" else 200

    return jsonify(builder.build_resource_response(health_data, "health", self_path="/api/healthz")), status_code
