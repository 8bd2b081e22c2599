"""
Notification Fan-Out
====================

Pull-based notifications: rows are written here and polled by clients.

FAN-OUT STRATEGY:
-----------------
One notify() per follower, sequential, each its own INSERT. There is no
transaction around the batch: if the 7th write fails, the first 6 stay and
the error propagates to the caller. A retried fan-out therefore produces
duplicates for the first 6, which is acceptable because notify() never
deduplicates anyway.

Fan-out is always invoked AFTER the originating write committed, so a
failing notification never rolls back a like, a comment or a step update.
"""
import logging
from typing import List

from django.contrib.auth.models import User

from .accounts import resolve_user
from .exceptions import AuthorizationError, NotFoundError
from .graph import follower_ids
from .models import Notification

logger = logging.getLogger(__name__)

NotificationType = Notification.NotificationType


def notify(recipient_id: int, sender_id: int, notification_type: str,
           content: str, entity_id) -> Notification:
    """Create one notification. No deduplication, no self-check."""
    notification = Notification.objects.create(
        recipient_id=recipient_id,
        sender_id=sender_id,
        notification_type=notification_type,
        content=content,
        entity_id=str(entity_id),
    )
    logger.debug(f"{notification_type} notification {sender_id} -> {recipient_id}")
    return notification


def fan_out_to_followers(owner: User, notification_type: str, content: str,
                         entity_id) -> List[Notification]:
    """Notify every follower of `owner`, in follower order."""
    created = []
    for follower_id in follower_ids(owner):
        created.append(
            notify(follower_id, owner.id, notification_type, content, entity_id)
        )
    logger.info(f"Fanned out {notification_type} from {owner.id} to {len(created)} followers")
    return created


def list_notifications(recipient_email: str):
    """Newest first."""
    user = resolve_user(recipient_email)
    return (
        Notification.objects
        .filter(recipient=user)
        .select_related('sender__profile')
        .order_by('-created_at', '-id')
    )


def unread_count(recipient_email: str) -> int:
    user = resolve_user(recipient_email)
    return Notification.objects.filter(recipient=user, read=False).count()


def mark_read(recipient_email: str, notification_id: int) -> Notification:
    """Idempotent: marking an already-read notification is a no-op save."""
    user = resolve_user(recipient_email)
    notification = Notification.objects.filter(pk=notification_id).first()
    if notification is None:
        raise NotFoundError("Notification not found")
    if notification.recipient_id != user.id:
        raise AuthorizationError("You are not authorized to access this notification")

    if not notification.read:
        notification.read = True
        notification.save(update_fields=['read'])
    return notification


def mark_all_read(recipient_email: str) -> int:
    """
    Flip every unread notification of the user, one row at a time.

    Returns how many were flipped.
    """
    user = resolve_user(recipient_email)
    flipped = 0
    for notification in Notification.objects.filter(recipient=user, read=False):
        notification.read = True
        notification.save(update_fields=['read'])
        flipped += 1
    return flipped
