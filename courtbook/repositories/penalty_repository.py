from typing import List, Optional

from courtbook.models.penalty import PenaltyRecord

COLUMNS = "id, user_id, reservation_id, kind, amount, description, resolved, created_at"


class PenaltyRepository:
    """Append-only audit log of applied penalties."""

    def __init__(self, conn):
        self.conn = conn

    def create(self, record: PenaltyRecord) -> PenaltyRecord:
        with self.conn.cursor() as cur:
            cur.execute(
                """
                INSERT INTO penalties (user_id, reservation_id, kind, amount, description, resolved, created_at)
                VALUES (%s, %s, %s, %s, %s, %s, %s)
                RETURNING id
                """,
                (record.user_id, record.reservation_id, record.kind, record.amount,
                 record.description, record.resolved, record.created_at),
            )
            record.id = cur.fetchone()["id"]
        return record

    def find_by_id(self, penalty_id: int) -> Optional[PenaltyRecord]:
        with self.conn.cursor() as cur:
            cur.execute(f"SELECT {COLUMNS} FROM penalties WHERE id = %s", (penalty_id,))
            row = cur.fetchone()
        return PenaltyRecord(**row) if row else None

    def find_by_user(self, user_id: int) -> List[PenaltyRecord]:
        with self.conn.cursor() as cur:
            cur.execute(
                f"SELECT {COLUMNS} FROM penalties WHERE user_id = %s ORDER BY created_at DESC",
                (user_id,),
            )
            rows = cur.fetchall()
        return [PenaltyRecord(**row) for row in rows]

    def mark_resolved(self, penalty_id: int) -> None:
        with self.conn.cursor() as cur:
            cur.execute("UPDATE penalties SET resolved = TRUE WHERE id = %s", (penalty_id,))
