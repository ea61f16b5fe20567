# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Notification fan-out.

Resolves an event's audience against the entity store and persists one
notification per recipient. Delivery is best-effort: a failure for one
recipient is logged and the remaining recipients are still notified.
"""

import logging
from dataclasses import dataclass, field
from typing import List

from opentelemetry import trace

from domain.notifications import Audience, NotificationEvent, build_notifications
from models.entities import Notification

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)


@dataclass
class FanoutResult:
    """Outcome of publishing one event."""
    delivered: List[Notification] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)


class NotificationFanout:
    """Publishes workflow events as per-recipient notifications."""

    def __init__(self, store):
        self.store = store

    def resolve_recipients(self, audience: Audience) -> List[str]:
        """Expand an audience into recipient ids (duplicates allowed)."""
        recipient_ids: List[str] = []

        for role in audience.roles:
            recipient_ids.extend(user.id for user in self.store.list_users_by_role(role))

        if audience.residents_of_station:
            recipient_ids.extend(
                resident.id for resident in self.store.list_residents_for_station(audience.residents_of_station)
            )

        recipient_ids.extend(audience.user_ids)
        return recipient_ids

    def publish(self, event: NotificationEvent) -> FanoutResult:
        """
        Persist notifications for every recipient of an event.

        Args:
            event: Event built by the notification domain

        Returns:
            FanoutResult listing delivered notifications and failed recipient ids
        """
        with tracer.start_as_current_span("fanout.publish") as span:
            span.set_attributes({
                "notification.type": str(event.notification_type.value),
                "notification.source_id": event.source_id
            })

            notifications = build_notifications(event, self.resolve_recipients(event.audience))
            result = FanoutResult()

            for notification in notifications:
                try:
                    self.store.create_notification(notification)
                    result.delivered.append(notification)
                except Exception as e:
                    result.failed.append(notification.user_id)
                    logger.error(
                        f"Failed to deliver notification: {e}",
                        extra={
                            "recipient_id": notification.user_id,
                            "notification_type": event.notification_type.value,
                            "source_id": event.source_id
                        }
                    )

            span.set_attributes({
                "notification.delivered": len(result.delivered),
                "notification.failed": len(result.failed)
            })

            logger.info(
                "Notification fan-out completed",
                extra={
                    "notification_type": event.notification_type.value,
                    "source_id": event.source_id,
                    "delivered": len(result.delivered),
                    "failed": len(result.failed)
                }
            )

            return result
