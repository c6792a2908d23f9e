from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Optional

from courtbook.models.reservation import ranges_overlap


@dataclass
class SlotLock:
    court_id: int
    user_id: int
    date: date
    start_time: time
    end_time: time
    expires_at: datetime
    id: Optional[int] = None

    def is_active(self, now: datetime) -> bool:
        return self.expires_at > now

    def overlaps(self, start: time, end: time) -> bool:
        return ranges_overlap(self.start_time, self.end_time, start, end)
