from datetime import date, datetime, time
from typing import List, Optional

from courtbook.models.reservation import (
    BOOKED,
    CONFIRMED,
    LIVE_STATUSES,
    PENDING,
    Reservation,
)

COLUMNS = """
    id, user_id, court_id, date, start_time, end_time, total_price, status,
    checkin_token, token_valid_from, token_valid_until, checked_in,
    checked_in_at, status_reason, created_at
"""


class ReservationRepository:
    def __init__(self, conn):
        self.conn = conn

    def _fetch_one(self, query: str, params: tuple) -> Optional[Reservation]:
        with self.conn.cursor() as cur:
            cur.execute(query, params)
            row = cur.fetchone()
        return Reservation(**row) if row else None

    def _fetch_all(self, query: str, params: tuple) -> List[Reservation]:
        with self.conn.cursor() as cur:
            cur.execute(query, params)
            rows = cur.fetchall()
        return [Reservation(**row) for row in rows]

    def create(self, reservation: Reservation) -> Reservation:
        with self.conn.cursor() as cur:
            cur.execute(
                """
                INSERT INTO reservations (user_id, court_id, date, start_time, end_time, total_price,
                                          status, checkin_token, token_valid_from, token_valid_until,
                                          checked_in, created_at)
                VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
                RETURNING id
                """,
                (reservation.user_id, reservation.court_id, reservation.date,
                 reservation.start_time, reservation.end_time, reservation.total_price,
                 reservation.status, reservation.checkin_token, reservation.token_valid_from,
                 reservation.token_valid_until, reservation.checked_in, reservation.created_at)
            )
            reservation.id = cur.fetchone()["id"]
        return reservation

    def update(self, reservation: Reservation) -> None:
        with self.conn.cursor() as cur:
            cur.execute(
                """
                UPDATE reservations
                SET status = %s, checkin_token = %s, token_valid_from = %s, token_valid_until = %s,
                    checked_in = %s, checked_in_at = %s, status_reason = %s
                WHERE id = %s
                """,
                (reservation.status, reservation.checkin_token, reservation.token_valid_from,
                 reservation.token_valid_until, reservation.checked_in, reservation.checked_in_at,
                 reservation.status_reason, reservation.id)
            )

    def find_by_id(self, reservation_id: int) -> Optional[Reservation]:
        return self._fetch_one(f"SELECT {COLUMNS} FROM reservations WHERE id = %s", (reservation_id,))

    def find_for_update(self, reservation_id: int) -> Optional[Reservation]:
        return self._fetch_one(
            f"SELECT {COLUMNS} FROM reservations WHERE id = %s FOR UPDATE", (reservation_id,)
        )

    def find_by_token_for_update(self, token: str) -> Optional[Reservation]:
        return self._fetch_one(
            f"SELECT {COLUMNS} FROM reservations WHERE checkin_token = %s FOR UPDATE", (token,)
        )

    def find_overlapping(self, court_id: int, day: date, start: time, end: time) -> List[Reservation]:
        """Live reservations on the court whose range intersects [start, end)."""
        # Overlap: (StartA < EndB) and (StartB < EndA)
        query = f"""
            SELECT {COLUMNS} FROM reservations
            WHERE court_id = %s
            AND date = %s
            AND status = ANY(%s)
            AND start_time < %s
            AND end_time > %s
        """
        return self._fetch_all(query, (court_id, day, list(LIVE_STATUSES), end, start))

    def find_by_user(self, user_id: int) -> List[Reservation]:
        return self._fetch_all(
            f"SELECT {COLUMNS} FROM reservations WHERE user_id = %s ORDER BY date DESC, start_time DESC",
            (user_id,),
        )

    def find_by_status(self, status: str) -> List[Reservation]:
        return self._fetch_all(
            f"SELECT {COLUMNS} FROM reservations WHERE status = %s ORDER BY created_at ASC",
            (status,),
        )

    def find_no_show_candidates(self, started_before: datetime) -> List[Reservation]:
        query = f"""
            SELECT {COLUMNS} FROM reservations
            WHERE status = %s
            AND checked_in = FALSE
            AND (date + start_time) < %s
            ORDER BY date, start_time
        """
        return self._fetch_all(query, (BOOKED, started_before))

    def find_completion_candidates(self, ended_before: datetime) -> List[Reservation]:
        query = f"""
            SELECT {COLUMNS} FROM reservations
            WHERE status = %s
            AND (date + end_time) < %s
            ORDER BY date, end_time
        """
        return self._fetch_all(query, (CONFIRMED, ended_before))

    def find_stale_pending(self, started_by: datetime) -> List[Reservation]:
        query = f"""
            SELECT {COLUMNS} FROM reservations
            WHERE status = %s
            AND (date + start_time) <= %s
            ORDER BY date, start_time
        """
        return self._fetch_all(query, (PENDING, started_by))
