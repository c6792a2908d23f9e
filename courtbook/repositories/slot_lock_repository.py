from datetime import date, datetime, time
from typing import List

from courtbook.models.slot_lock import SlotLock


class SlotLockRepository:
    def __init__(self, conn):
        self.conn = conn

    def create(self, lock: SlotLock) -> SlotLock:
        with self.conn.cursor() as cur:
            cur.execute(
                """
                INSERT INTO slot_locks (court_id, user_id, date, start_time, end_time, expires_at)
                VALUES (%s, %s, %s, %s, %s, %s)
                RETURNING id
                """,
                (lock.court_id, lock.user_id, lock.date, lock.start_time, lock.end_time, lock.expires_at),
            )
            lock.id = cur.fetchone()["id"]
        return lock

    def delete_expired(self, court_id: int, day: date, now: datetime) -> int:
        with self.conn.cursor() as cur:
            cur.execute(
                "DELETE FROM slot_locks WHERE court_id = %s AND date = %s AND expires_at <= %s",
                (court_id, day, now),
            )
            return cur.rowcount

    def delete_all_expired(self, now: datetime) -> List[int]:
        """Purge abandoned locks on every court and date. Returns the removed ids."""
        with self.conn.cursor() as cur:
            cur.execute("DELETE FROM slot_locks WHERE expires_at <= %s RETURNING id", (now,))
            rows = cur.fetchall()
        return [row["id"] for row in rows]

    def find_overlapping(self, court_id: int, day: date, start: time, end: time, now: datetime) -> List[SlotLock]:
        with self.conn.cursor() as cur:
            cur.execute(
                """
                SELECT id, court_id, user_id, date, start_time, end_time, expires_at
                FROM slot_locks
                WHERE court_id = %s
                AND date = %s
                AND expires_at > %s
                AND start_time < %s
                AND end_time > %s
                """,
                (court_id, day, now, end, start),
            )
            rows = cur.fetchall()
        return [SlotLock(**row) for row in rows]

    def delete_for_user(self, user_id: int, court_id: int, day: date) -> int:
        with self.conn.cursor() as cur:
            cur.execute(
                "DELETE FROM slot_locks WHERE user_id = %s AND court_id = %s AND date = %s",
                (user_id, court_id, day),
            )
            return cur.rowcount
