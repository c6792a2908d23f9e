"""Repository for the administrators' booking-request inbox"""
from typing import List

from courtbook.models.admin_notification import AdminNotification


class AdminNotificationRepository:
    def __init__(self, conn):
        self.conn = conn

    def create(self, notification: AdminNotification) -> AdminNotification:
        with self.conn.cursor() as cur:
            cur.execute(
                """
                INSERT INTO admin_notifications (reservation_id, kind, message, is_read, created_at)
                VALUES (%s, %s, %s, %s, %s)
                RETURNING id
                """,
                (
                    notification.reservation_id,
                    notification.kind,
                    notification.message,
                    notification.is_read,
                    notification.created_at,
                ),
            )
            notification.id = cur.fetchone()["id"]
        return notification

    def get_unread(self, limit: int = 50) -> List[AdminNotification]:
        """Unread entries, newest first"""
        with self.conn.cursor() as cur:
            cur.execute(
                """
                SELECT id, reservation_id, kind, message, is_read, created_at
                FROM admin_notifications
                WHERE is_read = FALSE
                ORDER BY created_at DESC
                LIMIT %s
                """,
                (limit,),
            )
            rows = cur.fetchall()
        return [AdminNotification(**row) for row in rows]

    def mark_read(self, notification_id: int) -> bool:
        with self.conn.cursor() as cur:
            cur.execute("UPDATE admin_notifications SET is_read = TRUE WHERE id = %s", (notification_id,))
            return cur.rowcount > 0

    def mark_read_for_reservation(self, reservation_id: int) -> int:
        with self.conn.cursor() as cur:
            cur.execute(
                "UPDATE admin_notifications SET is_read = TRUE WHERE reservation_id = %s AND is_read = FALSE",
                (reservation_id,),
            )
            return cur.rowcount
