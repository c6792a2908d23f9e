"""Repository for in-app notifications"""
from typing import List

from courtbook.models.notification import Notification


class NotificationRepository:
    def __init__(self, conn):
        self.conn = conn

    def create(self, notification: Notification) -> Notification:
        """Create a new notification record"""
        with self.conn.cursor() as cur:
            cur.execute(
                """
                INSERT INTO notifications (user_id, title, body, is_read, created_at)
                VALUES (%s, %s, %s, %s, %s)
                RETURNING id
                """,
                (
                    notification.user_id,
                    notification.title,
                    notification.body,
                    notification.is_read,
                    notification.created_at,
                ),
            )
            notification.id = cur.fetchone()["id"]
        return notification

    def get_by_user(self, user_id: int) -> List[Notification]:
        """Get all notifications for a specific user, newest first"""
        with self.conn.cursor() as cur:
            cur.execute(
                """
                SELECT id, user_id, title, body, is_read, created_at
                FROM notifications
                WHERE user_id = %s
                ORDER BY created_at DESC
                """,
                (user_id,),
            )
            rows = cur.fetchall()
        return [Notification(**row) for row in rows]

    def mark_read(self, notification_id: int, user_id: int) -> bool:
        with self.conn.cursor() as cur:
            cur.execute(
                "UPDATE notifications SET is_read = TRUE WHERE id = %s AND user_id = %s",
                (notification_id, user_id),
            )
            return cur.rowcount > 0
