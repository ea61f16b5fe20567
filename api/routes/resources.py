# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Inventory endpoints for fire stations and NGOs.
"""

from flask import jsonify, current_app
from flask_openapi3 import APIBlueprint, Tag
from pydantic import BaseModel, Field
import logging

from middleware.auth import require_jwt, current_user_context
from middleware.error_handler import NotFoundException
from middleware.validation import get_json_body
from utils.request import RequestParser, ResponseBuilder

logger = logging.getLogger(__name__)

resources_tag = Tag(name="Resources", description="Station and NGO inventory")
resources_bp = APIBlueprint(
    'resources',
    __name__,
    url_prefix='/api/resources',
    abp_tags=[resources_tag]
)


class ResourcePath(BaseModel):
    resource_id: str = Field(..., description="Resource ID")


@resources_bp.get('')
@require_jwt
def list_resources():
    """List inventory items, optionally for one owner."""
    user_context = current_user_context()
    pagination = RequestParser.get_pagination_params()
    filters = RequestParser.get_filter_params(['owner_id'])

    result = current_app.store.list_resources(**filters, **pagination)
    return jsonify(ResponseBuilder.paginated("resource", result, user_context, filters)), 200


@resources_bp.post('')
@require_jwt
def create_resource():
    """Add an inventory item owned by the caller."""
    user_context = current_user_context()
    resource = current_app.workflow.create_resource(user_context, get_json_body())
    return jsonify(ResponseBuilder.entity("resource", resource, user_context)), 201


@resources_bp.get('/<resource_id>')
@require_jwt
def get_resource(path: ResourcePath):
    resource = current_app.store.get_resource(path.resource_id)
    if resource is None:
        raise NotFoundException(f"Resource {path.resource_id} not found")

    return jsonify(ResponseBuilder.entity("resource", resource, current_user_context())), 200


@resources_bp.patch('/<resource_id>')
@require_jwt
def update_resource_quantity(path: ResourcePath):
    """Set the quantity on hand (owner only)."""
    user_context = current_user_context()
    resource = current_app.workflow.update_resource_quantity(user_context, path.resource_id, get_json_body())
    return jsonify(ResponseBuilder.entity("resource", resource, user_context)), 200
