import logging

from .models import Notification

logger = logging.getLogger(__name__)


def notify(user, type, title, message, link='', priority='normal', action_required=False, related_object_id=''):
    """
    Create a notification for a user.

    Raises ValueError when the recipient, message or type is missing; callers
    inside a deal flow let that propagate so a broken notification is not
    silently dropped.
    """
    if user is None:
        raise ValueError('Notification recipient is required')
    if not message:
        raise ValueError('Notification message is required')
    if type not in dict(Notification.TYPE_CHOICES):
        raise ValueError(f'Unknown notification type: {type}')

    notification = Notification.objects.create(
        user=user,
        type=type,
        title=title or message[:80],
        message=message,
        link=link or '',
        priority=priority,
        action_required=action_required,
        related_object_id=str(related_object_id or ''),
    )
    logger.debug(f"Notification {notification.id} ({type}) created for user {user.pk}")
    return notification


def notify_dealer(dealer, *args, **kwargs):
    return notify(dealer.owner, *args, **kwargs)
