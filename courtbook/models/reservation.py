from dataclasses import dataclass, field
from datetime import date, datetime, time
from typing import Optional

PENDING = "pending"
BOOKED = "booked"
CONFIRMED = "confirmed"
COMPLETED = "completed"
CANCELLED = "cancelled"
NO_SHOW = "no_show"

LIVE_STATUSES = (PENDING, BOOKED, CONFIRMED)
TERMINAL_STATUSES = (COMPLETED, CANCELLED, NO_SHOW)

# Legal edges of the lifecycle; terminal states have none.
TRANSITIONS = {
    PENDING: {BOOKED, CANCELLED},
    BOOKED: {CONFIRMED, CANCELLED, NO_SHOW},
    CONFIRMED: {COMPLETED, CANCELLED},
    COMPLETED: set(),
    CANCELLED: set(),
    NO_SHOW: set(),
}


def ranges_overlap(start_a: time, end_a: time, start_b: time, end_b: time) -> bool:
    """Half-open interval test: touching endpoints do not conflict."""
    return start_a < end_b and start_b < end_a


@dataclass
class Reservation:
    user_id: int
    court_id: int
    date: date
    start_time: time
    end_time: time
    total_price: int
    status: str = BOOKED
    checkin_token: Optional[str] = None
    token_valid_from: Optional[datetime] = None
    token_valid_until: Optional[datetime] = None
    checked_in: bool = False
    checked_in_at: Optional[datetime] = None
    status_reason: Optional[str] = None
    id: Optional[int] = None
    created_at: datetime = field(default_factory=datetime.now)

    @property
    def starts_at(self) -> datetime:
        return datetime.combine(self.date, self.start_time)

    @property
    def ends_at(self) -> datetime:
        return datetime.combine(self.date, self.end_time)

    @property
    def is_live(self) -> bool:
        return self.status in LIVE_STATUSES

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def can_transition_to(self, new_status: str) -> bool:
        return new_status in TRANSITIONS.get(self.status, set())

    def overlaps(self, start: time, end: time) -> bool:
        return ranges_overlap(self.start_time, self.end_time, start, end)
