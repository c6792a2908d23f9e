import logging

from courtbook.core.errors import AlreadyUsedError, ExpiredError, NotFoundError, NotYetValidError
from courtbook.models.reservation import BOOKED, Reservation
from courtbook.services.reservation_service import ReservationService

logger = logging.getLogger(__name__)


class CheckInService:
    """Validates a presented check-in token and confirms the reservation."""

    def __init__(self, store, reservations: ReservationService, clock):
        self.store = store
        self.reservations = reservations
        self.clock = clock

    def validate(self, token: str) -> Reservation:
        now = self.clock.now()
        with self.store.transaction() as tx:
            reservation = tx.reservations.find_by_token_for_update(token) if token else None
            if not reservation:
                raise NotFoundError("Invalid QR code or booking not found.")
            if reservation.checked_in:
                raise AlreadyUsedError("QR code already used.")
            if reservation.status != BOOKED:
                raise NotFoundError("Invalid QR code or booking not found.")
            if now < reservation.token_valid_from:
                raise NotYetValidError(
                    f"QR code not yet valid. Valid from {reservation.token_valid_from}.",
                    valid_from=reservation.token_valid_from,
                )
            if now > reservation.token_valid_until:
                raise ExpiredError("QR code expired. Booking time has passed.")
            reservation = self.reservations.confirm_check_in(tx, reservation, now)

        logger.info(f"Reservation {reservation.id} checked in at {now}")
        return reservation
