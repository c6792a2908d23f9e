from typing import Optional

from courtbook.models.user import User


class UserRepository:
    def __init__(self, conn):
        self.conn = conn

    def create(self, user: User) -> User:
        query = """
        INSERT INTO users (balance, penalty, suspended_from, suspended_until, suspension_reason)
        VALUES (%s, %s, %s, %s, %s)
        RETURNING id;
        """
        with self.conn.cursor() as cur:
            cur.execute(
                query,
                (
                    user.balance,
                    user.penalty,
                    user.suspended_from,
                    user.suspended_until,
                    user.suspension_reason,
                ),
            )
            user.id = cur.fetchone()["id"]
        return user

    def find_by_id(self, user_id: int) -> Optional[User]:
        with self.conn.cursor() as cur:
            cur.execute("SELECT * FROM users WHERE id = %s;", (user_id,))
            row = cur.fetchone()
        return User(**row) if row else None

    def find_for_update(self, user_id: int) -> Optional[User]:
        """Row-locks the user until the surrounding transaction ends."""
        with self.conn.cursor() as cur:
            cur.execute("SELECT * FROM users WHERE id = %s FOR UPDATE;", (user_id,))
            row = cur.fetchone()
        return User(**row) if row else None

    def update_balance(self, user: User) -> None:
        with self.conn.cursor() as cur:
            cur.execute(
                "UPDATE users SET balance = %s, penalty = %s WHERE id = %s;",
                (user.balance, user.penalty, user.id),
            )

    def update_suspension(self, user: User) -> None:
        query = """
        UPDATE users SET suspended_from = %s, suspended_until = %s, suspension_reason = %s
        WHERE id = %s;
        """
        with self.conn.cursor() as cur:
            cur.execute(
                query,
                (user.suspended_from, user.suspended_until, user.suspension_reason, user.id),
            )
