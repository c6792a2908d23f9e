from typing import Optional

import psycopg2.extras

from courtbook.models.topup import TopUp


class TopUpRepository:
    def __init__(self, conn):
        self.conn = conn

    def create(self, topup: TopUp) -> TopUp:
        with self.conn.cursor() as cur:
            cur.execute(
                """
                INSERT INTO topups (user_id, coins, amount_cents, currency, status, gateway_ref, details, created_at)
                VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
                RETURNING id
                """,
                (
                    topup.user_id,
                    topup.coins,
                    topup.amount_cents,
                    topup.currency,
                    topup.status,
                    topup.gateway_ref,
                    psycopg2.extras.Json(topup.details),
                    topup.created_at,
                ),
            )
            topup.id = cur.fetchone()["id"]
        return topup

    def find_by_gateway_ref_for_update(self, gateway_ref: str) -> Optional[TopUp]:
        with self.conn.cursor() as cur:
            cur.execute(
                """
                SELECT id, user_id, coins, amount_cents, currency, status, gateway_ref, details, created_at
                FROM topups WHERE gateway_ref = %s FOR UPDATE
                """,
                (gateway_ref,),
            )
            row = cur.fetchone()
        return TopUp(**row) if row else None

    def update_status(self, topup_id: int, new_status: str) -> None:
        with self.conn.cursor() as cur:
            cur.execute("UPDATE topups SET status = %s WHERE id = %s", (new_status, topup_id))
