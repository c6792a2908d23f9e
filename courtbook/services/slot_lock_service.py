import logging
from datetime import date, time, timedelta

from courtbook.core.errors import ConflictError, NotFoundError, SlotLockedError
from courtbook.models.actor import Actor
from courtbook.models.slot_lock import SlotLock
from courtbook.services.availability_service import AvailabilityService, check_range

logger = logging.getLogger(__name__)


class SlotLockService:
    """Short-lived holds that keep two checkouts from racing for the same range.

    A lock only narrows the window between the availability check and the
    paying transaction; the re-check inside ``ReservationService.create``
    stays authoritative.
    """

    def __init__(self, store, availability: AvailabilityService, clock, ttl_minutes: int = 10):
        self.store = store
        self.availability = availability
        self.clock = clock
        self.ttl = timedelta(minutes=ttl_minutes)

    def lock(self, actor: Actor, court_id: int, day: date, start: time, end: time) -> SlotLock:
        check_range(start, end)
        now = self.clock.now()
        with self.store.transaction() as tx:
            if not tx.courts.find_for_update(court_id):
                raise NotFoundError(f"Court {court_id} not found.")
            tx.locks.delete_expired(court_id, day, now)
            reservations, locks = self.availability.find_conflicts(
                tx, court_id, day, start, end, actor.user_id
            )
            if locks:
                raise SlotLockedError("This slot is being booked by someone else. Try again shortly.")
            if reservations:
                raise ConflictError("Time slot not available.")
            # One lock per user, court and day: a new attempt replaces the old one.
            tx.locks.delete_for_user(actor.user_id, court_id, day)
            slot_lock = tx.locks.create(SlotLock(
                court_id=court_id,
                user_id=actor.user_id,
                date=day,
                start_time=start,
                end_time=end,
                expires_at=now + self.ttl,
            ))
        logger.info(
            f"User {actor.user_id} locked court {court_id} on {day} {start}-{end} until {slot_lock.expires_at}"
        )
        return slot_lock

    def release(self, actor: Actor, court_id: int, day: date) -> int:
        with self.store.transaction() as tx:
            return self.release_in(tx, actor.user_id, court_id, day)

    def release_in(self, tx, user_id: int, court_id: int, day: date) -> int:
        return tx.locks.delete_for_user(user_id, court_id, day)
