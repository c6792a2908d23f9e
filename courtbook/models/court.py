import math
from dataclasses import dataclass
from typing import Optional


@dataclass
class Court:
    name: str
    category: str
    hourly_rate: int
    is_active: bool = True
    id: Optional[int] = None

    def price_for(self, minutes: int) -> int:
        """Rate for the given duration, rounded up to whole coins."""
        return math.ceil(self.hourly_rate * minutes / 60)
