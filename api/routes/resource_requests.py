# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Resource request endpoints.

Fire stations raise requests for supplies; NGOs and the station's residents
are notified, and any authenticated account may fulfil or cancel a pending
request.
"""

from flask import jsonify, current_app
from flask_openapi3 import APIBlueprint, Tag
from pydantic import BaseModel, Field
from opentelemetry import trace
import logging

from middleware.auth import require_jwt, current_user_context
from middleware.error_handler import NotFoundException
from middleware.validation import get_json_body
from utils.request import RequestParser, ResponseBuilder

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

resource_requests_tag = Tag(name="Resource Requests", description="Supply requests raised by fire stations")
resource_requests_bp = APIBlueprint(
    'resource_requests',
    __name__,
    url_prefix='/api/resource-requests',
    abp_tags=[resource_requests_tag]
)


class ResourceRequestPath(BaseModel):
    request_id: str = Field(..., description="Resource request ID")


@resource_requests_bp.get('')
@require_jwt
def list_resource_requests():
    """
    List resource requests, newest first.

    Query parameters: requester_id, status, page, page_size.
    """
    user_context = current_user_context()
    pagination = RequestParser.get_pagination_params()
    filters = RequestParser.get_filter_params(['requester_id', 'status'])

    with tracer.start_as_current_span("resource_requests.list") as span:
        span.set_attribute("query.filters", ",".join(sorted(filters)))
        result = current_app.store.list_resource_requests(**filters, **pagination)

    return jsonify(ResponseBuilder.paginated("resource_request", result, user_context, filters)), 200


@resource_requests_bp.post('')
@require_jwt
def create_resource_request():
    """Raise a resource request (fire stations only)."""
    user_context = current_user_context()
    resource_request = current_app.workflow.create_resource_request(user_context, get_json_body())
    return jsonify(ResponseBuilder.entity("resource_request", resource_request, user_context)), 201


@resource_requests_bp.get('/<request_id>')
@require_jwt
def get_resource_request(path: ResourceRequestPath):
    """Resource request detail."""
    resource_request = current_app.store.get_resource_request(path.request_id)
    if resource_request is None:
        raise NotFoundException(f"Resource request {path.request_id} not found")

    return jsonify(ResponseBuilder.entity("resource_request", resource_request, current_user_context())), 200


@resource_requests_bp.patch('/<request_id>')
@require_jwt
def update_resource_request_status(path: ResourceRequestPath):
    """Move a request to fulfilled or cancelled."""
    user_context = current_user_context()
    resource_request = current_app.workflow.update_resource_request_status(
        user_context, path.request_id, get_json_body()
    )
    return jsonify(ResponseBuilder.entity("resource_request", resource_request, user_context)), 200
