# SPDX-License-Identifier: Apache-2.0

"""
Notification inbox endpoints.

Notifications are created by fan-out when requests, donations, volunteer
registrations and emergencies are recorded. Users read their own inbox and
mark entries as read.
"""

from flask import jsonify, current_app
from flask_openapi3 import APIBlueprint, Tag
from pydantic import BaseModel, Field
import logging

from middleware.auth import require_jwt, current_user_context
from utils.request import RequestParser, ResponseBuilder

logger = logging.getLogger(__name__)

notifications_tag = Tag(name="Notifications", description="Per-user notification inbox")
notifications_bp = APIBlueprint(
    'notifications',
    __name__,
    url_prefix='/api/notifications',
    abp_tags=[notifications_tag]
)


class NotificationPath(BaseModel):
    notification_id: str = Field(..., description="Notification ID")


@notifications_bp.get('')
@require_jwt
def list_notifications():
    """List the caller's notifications, newest first. Pass unread=true for unread only."""
    user_context = current_user_context()
    pagination = RequestParser.get_pagination_params()
    filters = RequestParser.get_filter_params(['unread'], {'unread': bool})

    result = current_app.store.list_notifications_for_user(
        user_context.user_id,
        unread_only=filters.get('unread', False),
        **pagination
    )
    return jsonify(ResponseBuilder.paginated("notification", result, user_context, filters)), 200


@notifications_bp.patch('/<notification_id>')
@require_jwt
def mark_notification_read(path: NotificationPath):
    """Mark a notification as read. Repeating the call has no further effect."""
    user_context = current_user_context()
    notification = current_app.workflow.mark_notification_read(user_context, path.notification_id)
    return jsonify(ResponseBuilder.entity("notification", notification, user_context)), 200
