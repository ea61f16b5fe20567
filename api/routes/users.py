# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Account directory endpoints: station and NGO rosters, the caller's
assigned fire station, and single account lookup.
"""

from flask import jsonify, current_app
from flask_openapi3 import APIBlueprint, Tag
from pydantic import BaseModel, Field
from opentelemetry import trace
import logging

from middleware.auth import require_jwt, current_user_context
from middleware.error_handler import NotFoundException
from models.enums import UserRole

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

users_tag = Tag(name="Users", description="Fire stations, NGOs and account lookup")
users_bp = APIBlueprint(
    'users',
    __name__,
    url_prefix='/api',
    abp_tags=[users_tag]
)


class UserPath(BaseModel):
    user_id: str = Field(..., description="Account ID")


def _roster(role: UserRole, path: str):
    user_context = current_user_context()
    with tracer.start_as_current_span("users.roster") as span:
        span.set_attribute("user.role", role.value)
        users = [user.public_dict() for user in current_app.store.list_users_by_role(role)]

    return current_app.hal_formatter.format_collection(
        "user", users, len(users), 1, max(len(users), 1), user_context, collection_path=path
    )


@users_bp.get('/fire-stations')
@require_jwt
def list_fire_stations():
    """List all fire stations with their postal code coverage."""
    return jsonify(_roster(UserRole.FIRE_STATION, "/api/fire-stations")), 200


@users_bp.get('/ngos')
@require_jwt
def list_ngos():
    """List all registered NGOs."""
    return jsonify(_roster(UserRole.NGO, "/api/ngos")), 200


@users_bp.get('/assigned-fire-station')
@require_jwt
def get_assigned_fire_station():
    """Return the fire station the caller was assigned to at registration."""
    user_context = current_user_context()
    store = current_app.store

    user = store.get_user(user_context.user_id)
    station_id = getattr(user, "assigned_fire_station_id", None) if user else None
    if not station_id:
        raise NotFoundException("No fire station is assigned to this account")

    station = store.get_user(station_id)
    if station is None:
        raise NotFoundException(f"Fire station {station_id} not found")

    return jsonify(current_app.hal_formatter.format_entity("user", station.public_dict(), user_context)), 200


@users_bp.get('/users/<user_id>')
@require_jwt
def get_user(path: UserPath):
    """Public view of an account."""
    user = current_app.store.get_user(path.user_id)
    if user is None:
        raise NotFoundException(f"User {path.user_id} not found")

    return jsonify(current_app.hal_formatter.format_entity("user", user.public_dict(), current_user_context())), 200
