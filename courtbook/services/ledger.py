import logging
from typing import Optional

from courtbook.core.errors import InsufficientFundsError, InvalidRequestError, NotFoundError
from courtbook.models.penalty import PenaltyRecord
from courtbook.models.user import User

logger = logging.getLogger(__name__)


class Ledger:
    """Balance and penalty bookkeeping.

    Every method except ``top_up`` takes the caller's transaction handle so
    the money movement commits or rolls back together with the reservation
    change it belongs to.
    """

    def __init__(self, store, clock):
        self.store = store
        self.clock = clock

    def _locked_user(self, tx, user_id: int) -> User:
        user = tx.users.find_for_update(user_id)
        if not user:
            raise NotFoundError(f"User {user_id} not found.")
        return user

    @staticmethod
    def _check_amount(amount: int) -> None:
        if amount < 0:
            raise InvalidRequestError("Amount must not be negative.")

    def debit(self, tx, user_id: int, amount: int) -> User:
        self._check_amount(amount)
        user = self._locked_user(tx, user_id)
        if user.balance < amount:
            raise InsufficientFundsError(
                f"Not enough coins: balance {user.balance}, required {amount}.",
                balance=user.balance,
                required=amount,
            )
        user.balance -= amount
        tx.users.update_balance(user)
        return user

    def credit(self, tx, user_id: int, amount: int) -> User:
        self._check_amount(amount)
        user = self._locked_user(tx, user_id)
        user.balance += amount
        tx.users.update_balance(user)
        return user

    def apply_penalty(
        self,
        tx,
        user_id: int,
        amount: int,
        kind: str,
        reservation_id: Optional[int] = None,
        description: str = "",
    ) -> PenaltyRecord:
        self._check_amount(amount)
        user = self._locked_user(tx, user_id)
        user.penalty += amount
        tx.users.update_balance(user)
        record = PenaltyRecord(
            user_id=user_id,
            kind=kind,
            amount=amount,
            reservation_id=reservation_id,
            description=description,
            created_at=self.clock.now(),
        )
        return tx.penalties.create(record)

    def reset_penalty(self, tx, user_id: int) -> User:
        user = self._locked_user(tx, user_id)
        user.penalty = 0
        tx.users.update_balance(user)
        return user

    def top_up(self, user_id: int, amount: int, tx=None) -> User:
        """Add purchased coins. Runs as its own transaction unless one is passed in."""
        if amount <= 0:
            raise InvalidRequestError("Top-up amount must be positive.")
        if tx is None:
            with self.store.transaction() as tx:
                user = self.credit(tx, user_id, amount)
        else:
            user = self.credit(tx, user_id, amount)
        logger.info(f"User {user_id} topped up {amount} coins, balance {user.balance}")
        return user
