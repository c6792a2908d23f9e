"""In-app notifications written after a reservation change commits"""
import logging
from typing import List

from courtbook.models.actor import Actor
from courtbook.models.notification import Notification

logger = logging.getLogger(__name__)


class NotificationService:
    def __init__(self, store):
        self.store = store

    def notify(self, user_id: int, title: str, body: str) -> None:
        """
        Record a notification for the user.
        Best effort: a failure here never undoes or blocks the booking change.
        """
        try:
            with self.store.transaction() as tx:
                tx.notifications.create(Notification(user_id=user_id, title=title, body=body))
            logger.info(f"Notified user {user_id}: {title}")
        except Exception:
            logger.exception(f"Could not record notification '{title}' for user {user_id}")

    def list_for_user(self, actor: Actor) -> List[Notification]:
        with self.store.transaction() as tx:
            return tx.notifications.get_by_user(actor.user_id)

    def mark_read(self, actor: Actor, notification_id: int) -> bool:
        with self.store.transaction() as tx:
            return tx.notifications.mark_read(notification_id, actor.user_id)
