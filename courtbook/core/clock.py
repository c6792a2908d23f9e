from datetime import datetime, timedelta
from typing import Optional


class SystemClock:
    """Wall clock in local time; slot dates and times are stored as local wall time."""

    def now(self) -> datetime:
        return datetime.now()


class FrozenClock:
    """Clock that only moves when told to. Used by tests and simulations."""

    def __init__(self, start: Optional[datetime] = None):
        self.current = start or datetime.now().replace(microsecond=0)

    def now(self) -> datetime:
        return self.current

    def advance(self, **delta) -> datetime:
        self.current = self.current + timedelta(**delta)
        return self.current

    def set(self, moment: datetime) -> None:
        self.current = moment
