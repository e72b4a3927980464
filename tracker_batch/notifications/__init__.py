"""Outbound notification gateways."""

from tracker_batch.notifications.gateway import (
    DeliveryResult,
    LogNotificationGateway,
    NotificationGateway,
    SmtpNotificationGateway,
)

__all__ = [
    "DeliveryResult",
    "LogNotificationGateway",
    "NotificationGateway",
    "SmtpNotificationGateway",
]
