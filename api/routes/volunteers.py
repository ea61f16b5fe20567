# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Volunteer endpoints: residents register with a fire station, which then
manages their availability status.
"""

from flask import jsonify, current_app
from flask_openapi3 import APIBlueprint, Tag
from pydantic import BaseModel, Field
import logging

from middleware.auth import require_jwt, current_user_context
from middleware.validation import get_json_body
from models.enums import UserRole
from utils.request import RequestParser, ResponseBuilder

logger = logging.getLogger(__name__)

volunteers_tag = Tag(name="Volunteers", description="Resident volunteer registrations")
volunteers_bp = APIBlueprint(
    'volunteers',
    __name__,
    url_prefix='/api/volunteers',
    abp_tags=[volunteers_tag]
)


class VolunteerPath(BaseModel):
    volunteer_id: str = Field(..., description="Volunteer registration ID")


@volunteers_bp.get('')
@require_jwt
def list_volunteers():
    """
    List volunteer registrations.

    Fire stations default to their own volunteers and residents to their own
    registrations; fire_station_id and user_id override the default.
    """
    user_context = current_user_context()
    pagination = RequestParser.get_pagination_params()
    filters = RequestParser.get_filter_params(['fire_station_id', 'user_id'])

    if not filters:
        if user_context.role == UserRole.FIRE_STATION.value:
            filters['fire_station_id'] = user_context.user_id
        elif user_context.role == UserRole.RESIDENT.value:
            filters['user_id'] = user_context.user_id

    result = current_app.store.list_volunteers(**filters, **pagination)
    return jsonify(ResponseBuilder.paginated("volunteer", result, user_context, filters)), 200


@volunteers_bp.post('')
@require_jwt
def create_volunteer():
    """Register the calling resident as a volunteer."""
    user_context = current_user_context()
    volunteer = current_app.workflow.create_volunteer(user_context, get_json_body())
    return jsonify(ResponseBuilder.entity("volunteer", volunteer, user_context)), 201


@volunteers_bp.patch('/<volunteer_id>')
@require_jwt
def update_volunteer_status(path: VolunteerPath):
    """Change a volunteer's status (the station they registered with only)."""
    user_context = current_user_context()
    volunteer = current_app.workflow.update_volunteer_status(user_context, path.volunteer_id, get_json_body())
    return jsonify(ResponseBuilder.entity("volunteer", volunteer, user_context)), 200
