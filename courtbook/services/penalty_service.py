import logging
from datetime import timedelta
from typing import List, Optional

from courtbook.core.errors import ForbiddenError, InvalidRequestError, NotFoundError
from courtbook.models.actor import Actor
from courtbook.models.penalty import PenaltyRecord
from courtbook.models.user import User
from courtbook.services.ledger import Ledger

logger = logging.getLogger(__name__)


class PenaltyService:
    """Administrator-issued penalties and suspensions."""

    def __init__(self, store, ledger: Ledger, notifier, clock):
        self.store = store
        self.ledger = ledger
        self.notifier = notifier
        self.clock = clock

    @staticmethod
    def _require_admin(actor: Actor) -> None:
        if not actor.is_admin:
            raise ForbiddenError("Only administrators can manage penalties.")

    def penalize(
        self,
        actor: Actor,
        user_id: int,
        amount: int,
        kind: str,
        description: str = "",
        reservation_id: Optional[int] = None,
        suspension_days: int = 0,
    ) -> PenaltyRecord:
        self._require_admin(actor)
        if suspension_days < 0:
            raise InvalidRequestError("Suspension days must not be negative.")
        today = self.clock.now().date()
        with self.store.transaction() as tx:
            record = self.ledger.apply_penalty(
                tx, user_id, amount, kind, reservation_id=reservation_id, description=description
            )
            if suspension_days > 0:
                user = tx.users.find_for_update(user_id)
                user.suspended_from = today
                user.suspended_until = today + timedelta(days=suspension_days)
                user.suspension_reason = kind
                tx.users.update_suspension(user)

        logger.info(
            f"Admin {actor.user_id} penalised user {user_id}: {kind} {amount} coins, "
            f"{suspension_days} days suspension"
        )
        self.notifier.notify(
            user_id,
            "Penalty Applied",
            f"A penalty has been applied to your account. Type: {kind}. {description}",
        )
        return record

    def resolve(self, actor: Actor, penalty_id: int) -> PenaltyRecord:
        """Mark the audit record as handled. The accumulator is left alone."""
        self._require_admin(actor)
        with self.store.transaction() as tx:
            record = tx.penalties.find_by_id(penalty_id)
            if not record:
                raise NotFoundError(f"Penalty {penalty_id} not found.")
            tx.penalties.mark_resolved(penalty_id)
        record.resolved = True
        return record

    def lift_suspension(self, actor: Actor, user_id: int) -> User:
        self._require_admin(actor)
        with self.store.transaction() as tx:
            user = tx.users.find_for_update(user_id)
            if not user:
                raise NotFoundError(f"User {user_id} not found.")
            user.suspended_from = None
            user.suspended_until = None
            user.suspension_reason = None
            tx.users.update_suspension(user)
        logger.info(f"Admin {actor.user_id} lifted suspension of user {user_id}")
        return user

    def list_for_user(self, actor: Actor, user_id: int) -> List[PenaltyRecord]:
        if not actor.is_admin and actor.user_id != user_id:
            raise ForbiddenError("You can only see your own penalties.")
        with self.store.transaction() as tx:
            return tx.penalties.find_by_user(user_id)
