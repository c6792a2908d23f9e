import logging
from datetime import date, datetime, time, timedelta
from typing import List, Optional

from courtbook.core.config import Settings
from courtbook.core.errors import (
    ConflictError,
    ForbiddenError,
    InvalidRequestError,
    InvalidStateError,
    NotFoundError,
    SlotLockedError,
    SuspendedError,
)
from courtbook.core.security import generate_checkin_token
from courtbook.models import penalty as penalty_kinds
from courtbook.models.actor import Actor
from courtbook.models.admin_notification import NEW_BOOKING, AdminNotification
from courtbook.models.reservation import (
    BOOKED,
    CANCELLED,
    COMPLETED,
    CONFIRMED,
    NO_SHOW,
    PENDING,
    Reservation,
)
from courtbook.services.availability_service import AvailabilityService, check_range
from courtbook.services.ledger import Ledger
from courtbook.services.slot_lock_service import SlotLockService

logger = logging.getLogger(__name__)


class ReservationService:
    """Owns the reservation lifecycle.

    Every transition runs in a single store transaction together with the
    ledger movements it implies, and is the only code that writes a
    reservation's status. Notifications go out after the commit.
    """

    def __init__(
        self,
        store,
        ledger: Ledger,
        availability: AvailabilityService,
        locks: SlotLockService,
        notifier,
        clock,
        settings: Settings,
    ):
        self.store = store
        self.ledger = ledger
        self.availability = availability
        self.locks = locks
        self.notifier = notifier
        self.clock = clock
        self.settings = settings

    # -- helpers -----------------------------------------------------------

    def _load_for_update(self, tx, reservation_id: int) -> Reservation:
        reservation = tx.reservations.find_for_update(reservation_id)
        if not reservation:
            raise NotFoundError(f"Reservation {reservation_id} not found.")
        return reservation

    @staticmethod
    def _transition(reservation: Reservation, new_status: str) -> None:
        if not reservation.can_transition_to(new_status):
            raise InvalidStateError(
                f"Reservation {reservation.id} cannot go from {reservation.status} to {new_status}.",
                status=reservation.status,
            )
        reservation.status = new_status

    @staticmethod
    def _issue_token(reservation: Reservation) -> None:
        reservation.checkin_token = generate_checkin_token(reservation.id)
        reservation.token_valid_from = reservation.starts_at
        reservation.token_valid_until = reservation.ends_at

    @staticmethod
    def _require_admin(actor: Actor) -> None:
        if not actor.is_admin:
            raise ForbiddenError("Only administrators can do this.")

    @staticmethod
    def _require_system(actor: Actor) -> None:
        if not actor.is_system:
            raise ForbiddenError("Only the scheduler can do this.")

    @staticmethod
    def _check_owner(actor: Actor, reservation: Reservation) -> None:
        # Other users' reservations look the same as missing ones.
        if not (actor.is_admin or actor.is_system) and reservation.user_id != actor.user_id:
            raise NotFoundError(f"Reservation {reservation.id} not found.")

    # -- transitions -------------------------------------------------------

    def create(self, actor: Actor, court_id: int, day: date, start: time, end: time) -> Reservation:
        check_range(start, end)
        now = self.clock.now()
        if datetime.combine(day, start) < now:
            raise InvalidRequestError("Cannot book a slot in the past.")

        with self.store.transaction() as tx:
            court = tx.courts.find_for_update(court_id)
            if not court or not court.is_active:
                raise NotFoundError(f"Court {court_id} not found or inactive.")
            user = tx.users.find_for_update(actor.user_id)
            if not user:
                raise NotFoundError(f"User {actor.user_id} not found.")
            if user.is_suspended(now.date()):
                raise SuspendedError(
                    f"Account suspended until {user.suspended_until}. Reason: {user.suspension_reason}",
                    until=user.suspended_until,
                    reason=user.suspension_reason,
                )

            reservations, locks = self.availability.find_conflicts(
                tx, court_id, day, start, end, actor.user_id
            )
            if reservations:
                raise ConflictError("Time slot not available.")
            if locks:
                raise SlotLockedError("This slot is being booked by someone else. Try again shortly.")

            minutes = int((datetime.combine(day, end) - datetime.combine(day, start)).total_seconds() // 60)
            # The accrued penalty is folded into this price, then cleared.
            total_price = court.price_for(minutes) + user.penalty
            self.ledger.debit(tx, user.id, total_price)
            self.ledger.reset_penalty(tx, user.id)

            status = PENDING if self.settings.require_approval else BOOKED
            reservation = tx.reservations.create(Reservation(
                user_id=user.id,
                court_id=court_id,
                date=day,
                start_time=start,
                end_time=end,
                total_price=total_price,
                status=status,
                created_at=now,
            ))
            if status == BOOKED:
                self._issue_token(reservation)
                tx.reservations.update(reservation)
            else:
                tx.admin_notifications.create(AdminNotification(
                    reservation_id=reservation.id,
                    kind=NEW_BOOKING,
                    message=f"New booking request from user #{user.id} for {day}",
                ))
            self.locks.release_in(tx, user.id, court_id, day)

        logger.info(
            f"Reservation {reservation.id} created as {status} for user {user.id} "
            f"on court {court_id} {day} {start}-{end}, charged {total_price}"
        )
        if status == PENDING:
            self.notifier.notify(
                user.id,
                "Booking Request Submitted",
                "Your booking request has been submitted. Please wait for admin approval.",
            )
        else:
            self.notifier.notify(
                user.id, "Booking Confirmed", f"Your booking for {day} {start}-{end} is confirmed."
            )
        return reservation

    def approve(self, actor: Actor, reservation_id: int) -> Reservation:
        self._require_admin(actor)
        with self.store.transaction() as tx:
            reservation = self._load_for_update(tx, reservation_id)
            if reservation.status != PENDING:
                raise InvalidStateError(
                    f"Reservation {reservation_id} is {reservation.status}, not pending.",
                    status=reservation.status,
                )
            self._transition(reservation, BOOKED)
            self._issue_token(reservation)
            tx.reservations.update(reservation)
            tx.admin_notifications.mark_read_for_reservation(reservation.id)

        logger.info(f"Reservation {reservation_id} approved by admin {actor.user_id}")
        self.notifier.notify(
            reservation.user_id,
            "Booking Approved",
            f"Your booking for {reservation.date} has been approved! Check your receipt for the QR code.",
        )
        return reservation

    def reject(self, actor: Actor, reservation_id: int, reason: Optional[str] = None) -> Reservation:
        self._require_admin(actor)
        with self.store.transaction() as tx:
            reservation = self._load_for_update(tx, reservation_id)
            if reservation.status != PENDING:
                raise InvalidStateError(
                    f"Reservation {reservation_id} is {reservation.status}, not pending.",
                    status=reservation.status,
                )
            self._transition(reservation, CANCELLED)
            reservation.status_reason = reason
            self.ledger.credit(tx, reservation.user_id, reservation.total_price)
            tx.reservations.update(reservation)
            tx.admin_notifications.mark_read_for_reservation(reservation.id)

        logger.info(f"Reservation {reservation_id} rejected, refunded {reservation.total_price}")
        self.notifier.notify(
            reservation.user_id,
            "Booking Rejected",
            f"Your booking request was rejected. Reason: {reason or 'Not specified'}. Full refund issued.",
        )
        return reservation

    def cancel(self, actor: Actor, reservation_id: int, reason: Optional[str] = None) -> Reservation:
        now = self.clock.now()
        with self.store.transaction() as tx:
            reservation = self._load_for_update(tx, reservation_id)
            self._check_owner(actor, reservation)
            if reservation.is_terminal:
                raise InvalidStateError(
                    f"Reservation {reservation_id} is already {reservation.status}.",
                    status=reservation.status,
                )
            if not actor.is_admin:
                if reservation.status not in (PENDING, BOOKED):
                    raise InvalidStateError(
                        "Checked-in reservations can only be cancelled by an administrator.",
                        status=reservation.status,
                    )
                if now >= reservation.starts_at:
                    raise InvalidStateError(
                        "Cannot cancel a reservation that has already started.",
                        status=reservation.status,
                    )
            was_pending = reservation.status == PENDING
            self._transition(reservation, CANCELLED)
            reservation.status_reason = reason
            self.ledger.credit(tx, reservation.user_id, reservation.total_price)
            tx.reservations.update(reservation)
            if was_pending:
                tx.admin_notifications.mark_read_for_reservation(reservation.id)

        logger.info(
            f"Reservation {reservation_id} cancelled by {actor.role} {actor.user_id}, "
            f"refunded {reservation.total_price}"
        )
        if actor.is_admin:
            self.notifier.notify(
                reservation.user_id,
                "Booking Cancelled by Admin",
                f"Your booking was cancelled. Reason: {reason or 'Maintenance or event'}. Full refund issued.",
            )
        else:
            self.notifier.notify(
                reservation.user_id,
                "Booking Cancelled",
                "Your booking has been cancelled and refunded.",
            )
        return reservation

    def complete(self, actor: Actor, reservation_id: int) -> Reservation:
        now = self.clock.now()
        late = False
        with self.store.transaction() as tx:
            reservation = self._load_for_update(tx, reservation_id)
            self._check_owner(actor, reservation)
            if reservation.status != CONFIRMED:
                raise InvalidStateError(
                    f"Reservation {reservation_id} is {reservation.status}, not confirmed.",
                    status=reservation.status,
                )
            if actor.is_system:
                if now <= reservation.ends_at:
                    raise InvalidStateError(
                        f"Reservation {reservation_id} has not ended yet.", status=reservation.status
                    )
                grace = timedelta(minutes=self.settings.checkout_grace_minutes)
                late = now > reservation.ends_at + grace
                if late:
                    self.ledger.apply_penalty(
                        tx,
                        reservation.user_id,
                        self.settings.late_checkout_penalty,
                        penalty_kinds.LATE_CHECKOUT,
                        reservation_id=reservation.id,
                        description=f"No checkout within {self.settings.checkout_grace_minutes} minutes of end time",
                    )
            self._transition(reservation, COMPLETED)
            tx.reservations.update(reservation)

        logger.info(f"Reservation {reservation_id} completed{' with late penalty' if late else ''}")
        body = "Your booking session has ended. Thank you for using our facilities!"
        if late:
            body += f" A late checkout penalty of {self.settings.late_checkout_penalty} coins was added."
        self.notifier.notify(reservation.user_id, "Booking Completed", body)
        return reservation

    def mark_no_show(self, actor: Actor, reservation_id: int) -> Reservation:
        self._require_system(actor)
        now = self.clock.now()
        with self.store.transaction() as tx:
            reservation = self._load_for_update(tx, reservation_id)
            if reservation.status != BOOKED or reservation.checked_in:
                raise InvalidStateError(
                    f"Reservation {reservation_id} is {reservation.status}, not an open booking.",
                    status=reservation.status,
                )
            grace = timedelta(minutes=self.settings.no_show_grace_minutes)
            if now <= reservation.starts_at + grace:
                raise InvalidStateError(
                    f"Reservation {reservation_id} is still inside its check-in grace period.",
                    status=reservation.status,
                )
            self._transition(reservation, NO_SHOW)
            self.ledger.apply_penalty(
                tx,
                reservation.user_id,
                self.settings.no_show_penalty,
                penalty_kinds.NO_SHOW,
                reservation_id=reservation.id,
                description=f"No check-in within {self.settings.no_show_grace_minutes} minutes of start time",
            )
            tx.reservations.update(reservation)

        logger.info(f"Reservation {reservation_id} marked as no-show")
        self.notifier.notify(
            reservation.user_id,
            "Missed Booking",
            f"You did not check in for your booking on {reservation.date}. "
            f"A no-show penalty of {self.settings.no_show_penalty} coins will be added to your next booking.",
        )
        return reservation

    def expire_pending(self, actor: Actor, reservation_id: int) -> Reservation:
        """Cancel and refund a request that was never approved before its start."""
        self._require_system(actor)
        now = self.clock.now()
        with self.store.transaction() as tx:
            reservation = self._load_for_update(tx, reservation_id)
            if reservation.status != PENDING:
                raise InvalidStateError(
                    f"Reservation {reservation_id} is {reservation.status}, not pending.",
                    status=reservation.status,
                )
            if now < reservation.starts_at:
                raise InvalidStateError(
                    f"Reservation {reservation_id} has not started yet.", status=reservation.status
                )
            self._transition(reservation, CANCELLED)
            reservation.status_reason = "Not approved before start time"
            self.ledger.credit(tx, reservation.user_id, reservation.total_price)
            tx.reservations.update(reservation)
            tx.admin_notifications.mark_read_for_reservation(reservation.id)

        logger.info(f"Pending reservation {reservation_id} expired and refunded")
        self.notifier.notify(
            reservation.user_id,
            "Booking Cancelled",
            "Your booking request was not approved in time and has been refunded.",
        )
        return reservation

    def confirm_check_in(self, tx, reservation: Reservation, now: datetime) -> Reservation:
        """booked -> confirmed inside the check-in validator's transaction."""
        self._transition(reservation, CONFIRMED)
        reservation.checked_in = True
        reservation.checked_in_at = now
        tx.reservations.update(reservation)
        return reservation

    # -- queries -----------------------------------------------------------

    def get(self, actor: Actor, reservation_id: int) -> Reservation:
        with self.store.transaction() as tx:
            reservation = tx.reservations.find_by_id(reservation_id)
        if not reservation:
            raise NotFoundError(f"Reservation {reservation_id} not found.")
        self._check_owner(actor, reservation)
        return reservation

    def list_for_user(self, actor: Actor) -> List[Reservation]:
        with self.store.transaction() as tx:
            return tx.reservations.find_by_user(actor.user_id)

    def list_pending(self, actor: Actor) -> List[Reservation]:
        self._require_admin(actor)
        with self.store.transaction() as tx:
            return tx.reservations.find_by_status(PENDING)

    def admin_inbox(self, actor: Actor, limit: int = 50) -> List[AdminNotification]:
        """Unread booking requests for administrators, newest first."""
        self._require_admin(actor)
        with self.store.transaction() as tx:
            return tx.admin_notifications.get_unread(limit)

    def mark_admin_notification_read(self, actor: Actor, notification_id: int) -> bool:
        self._require_admin(actor)
        with self.store.transaction() as tx:
            return tx.admin_notifications.mark_read(notification_id)
