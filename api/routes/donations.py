# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Donation endpoints.

A donation carries either resources or money. Monetary donations move the
amount between wallet balances when they are recorded.
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

donations_tag = Tag(name="Donations", description="Resource and monetary donations")
donations_bp = APIBlueprint(
    'donations',
    __name__,
    url_prefix='/api/donations',
    abp_tags=[donations_tag]
)


class DonationPath(BaseModel):
    donation_id: str = Field(..., description="Donation ID")


@donations_bp.get('')
@require_jwt
def list_donations():
    """
    List donations.

    Without donor_id or recipient_id the caller's own donations (given or
    received) are listed.
    """
    user_context = current_user_context()
    pagination = RequestParser.get_pagination_params()
    filters = RequestParser.get_filter_params(['donor_id', 'recipient_id'])

    query = dict(filters)
    if not query:
        query['participant_id'] = user_context.user_id

    with tracer.start_as_current_span("donations.list"):
        result = current_app.store.list_donations(**query, **pagination)

    return jsonify(ResponseBuilder.paginated("donation", result, user_context, filters)), 200


@donations_bp.post('')
@require_jwt
def create_donation():
    """Record a donation from the caller to a recipient."""
    user_context = current_user_context()
    donation = current_app.workflow.create_donation(user_context, get_json_body())
    return jsonify(ResponseBuilder.entity("donation", donation, user_context)), 201


@donations_bp.get('/<donation_id>')
@require_jwt
def get_donation(path: DonationPath):
    """Donation detail."""
    donation = current_app.store.get_donation(path.donation_id)
    if donation is None:
        raise NotFoundException(f"Donation {path.donation_id} not found")

    return jsonify(ResponseBuilder.entity("donation", donation, current_user_context())), 200


@donations_bp.patch('/<donation_id>')
@require_jwt
def update_donation_status(path: DonationPath):
    """Reconcile a pending donation as completed or failed (recipient only)."""
    user_context = current_user_context()
    donation = current_app.workflow.update_donation_status(user_context, path.donation_id, get_json_body())
    return jsonify(ResponseBuilder.entity("donation", donation, user_context)), 200
