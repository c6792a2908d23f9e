from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

NEW_BOOKING = "new_booking"


@dataclass
class AdminNotification:
    """Inbox entry for administrators: a booking request waiting for a decision."""
    reservation_id: int
    kind: str
    message: str
    is_read: bool = False
    id: Optional[int] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
