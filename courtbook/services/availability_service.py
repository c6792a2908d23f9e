from datetime import date, time
from typing import List, Optional, Tuple

from courtbook.core.errors import InvalidRequestError, NotFoundError
from courtbook.models.court import Court
from courtbook.models.reservation import Reservation
from courtbook.models.slot_lock import SlotLock


class AvailabilityService:
    """Answers whether a court range is free of live reservations and foreign locks."""

    def __init__(self, store, clock):
        self.store = store
        self.clock = clock

    def find_conflicts(
        self, tx, court_id: int, day: date, start: time, end: time, user_id: Optional[int] = None
    ) -> Tuple[List[Reservation], List[SlotLock]]:
        reservations = tx.reservations.find_overlapping(court_id, day, start, end)
        locks = [
            lock for lock in tx.locks.find_overlapping(court_id, day, start, end, self.clock.now())
            if user_id is None or lock.user_id != user_id
        ]
        return reservations, locks

    def check_availability(
        self, court_id: int, day: date, start: time, end: time, user_id: Optional[int] = None
    ) -> bool:
        """Locks held by ``user_id`` itself do not count against availability."""
        check_range(start, end)
        with self.store.transaction() as tx:
            reservations, locks = self.find_conflicts(tx, court_id, day, start, end, user_id)
        return not reservations and not locks

    def list_courts(self, include_inactive: bool = False) -> List[Court]:
        with self.store.transaction() as tx:
            courts = tx.courts.find_all()
        return [c for c in courts if include_inactive or c.is_active]

    def get_court(self, court_id: int) -> Court:
        with self.store.transaction() as tx:
            court = tx.courts.find_by_id(court_id)
        if not court:
            raise NotFoundError(f"Court {court_id} not found.")
        return court


def check_range(start: time, end: time) -> None:
    if start >= end:
        raise InvalidRequestError("Start time must be before end time.")
