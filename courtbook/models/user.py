from dataclasses import dataclass
from datetime import date
from typing import Optional


@dataclass
class User:
    id: int
    balance: int = 0
    penalty: int = 0
    suspended_from: Optional[date] = None
    suspended_until: Optional[date] = None
    suspension_reason: Optional[str] = None

    def is_suspended(self, today: date) -> bool:
        if self.suspended_until is None or self.suspended_until <= today:
            return False
        return self.suspended_from is None or self.suspended_from <= today
