# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Emergency endpoints. Fire stations report emergencies, every other station
is alerted, and the reporter resolves them.
"""

from flask import jsonify, current_app
from flask_openapi3 import APIBlueprint, Tag
from pydantic import BaseModel, Field
import logging

from middleware.auth import require_jwt, current_user_context
from middleware.validation import get_json_body
from utils.request import RequestParser, ResponseBuilder

logger = logging.getLogger(__name__)

emergencies_tag = Tag(name="Emergencies", description="Emergency reports and alerts")
emergencies_bp = APIBlueprint(
    'emergencies',
    __name__,
    url_prefix='/api/emergencies',
    abp_tags=[emergencies_tag]
)


class EmergencyPath(BaseModel):
    emergency_id: str = Field(..., description="Emergency ID")


@emergencies_bp.get('')
@require_jwt
def list_emergencies():
    """List emergencies, optionally filtered by status."""
    user_context = current_user_context()
    pagination = RequestParser.get_pagination_params()
    filters = RequestParser.get_filter_params(['status'])

    result = current_app.store.list_emergencies(**filters, **pagination)
    return jsonify(ResponseBuilder.paginated("emergency", result, user_context, filters)), 200


@emergencies_bp.post('')
@require_jwt
def create_emergency():
    """Report an emergency (fire stations only)."""
    user_context = current_user_context()
    emergency = current_app.workflow.create_emergency(user_context, get_json_body())
    return jsonify(ResponseBuilder.entity("emergency", emergency, user_context)), 201


@emergencies_bp.patch('/<emergency_id>')
@require_jwt
def update_emergency_status(path: EmergencyPath):
    """Resolve an emergency (reporting station only)."""
    user_context = current_user_context()
    emergency = current_app.workflow.update_emergency_status(user_context, path.emergency_id, get_json_body())
    return jsonify(ResponseBuilder.entity("emergency", emergency, user_context)), 200
