from typing import List, Optional

from courtbook.models.court import Court


class CourtRepository:
    def __init__(self, conn):
        self.conn = conn

    def find_all(self) -> List[Court]:
        with self.conn.cursor() as cur:
            cur.execute("SELECT id, name, category, hourly_rate, is_active FROM courts ORDER BY id")
            rows = cur.fetchall()
        return [Court(**row) for row in rows]

    def find_by_id(self, court_id: int) -> Optional[Court]:
        with self.conn.cursor() as cur:
            cur.execute(
                "SELECT id, name, category, hourly_rate, is_active FROM courts WHERE id = %s",
                (court_id,),
            )
            row = cur.fetchone()
        return Court(**row) if row else None

    def find_for_update(self, court_id: int) -> Optional[Court]:
        # Serialises reservation and slot lock inserts on the same court.
        with self.conn.cursor() as cur:
            cur.execute(
                "SELECT id, name, category, hourly_rate, is_active FROM courts WHERE id = %s FOR UPDATE",
                (court_id,),
            )
            row = cur.fetchone()
        return Court(**row) if row else None

    def create(self, court: Court) -> Court:
        with self.conn.cursor() as cur:
            cur.execute(
                "INSERT INTO courts (name, category, hourly_rate, is_active) VALUES (%s, %s, %s, %s) RETURNING id",
                (court.name, court.category, court.hourly_rate, court.is_active),
            )
            court.id = cur.fetchone()["id"]
        return court
